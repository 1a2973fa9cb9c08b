from __future__ import annotations

import logging
import sys


def setup_logging(debug: bool = False, log_file: str | None = None) -> logging.Logger:
    """Configure the `streetgen` logger.

    Console output goes to stdout without timestamps; an optional log file
    gets the detailed format.
    """
    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger("streetgen")
    logger.setLevel(level)

    # Clear existing handlers so repeated calls don't duplicate output
    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("[streetgen] %(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logger.addHandler(file_handler)
        # the file always gets everything; the console filters on its own level
        logger.setLevel(logging.DEBUG)

    return logger
