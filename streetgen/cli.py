from __future__ import annotations

import argparse
import random
from typing import Sequence

from streetgen.config import (
    APP_VERSION,
    DEFAULT_HEADLESS_FRAMES,
    DEFAULT_LOAD_RADIUS,
    DEFAULT_MAX_SPEED,
    DEFAULT_SEED,
    DEFAULT_WORKERS,
    MAX_RESULTS_PER_UPDATE,
)
from streetgen.log import setup_logging


def _parse_seed(value: str) -> int:
    if value.lower() == "random":
        return random.randint(0, 2**32 - 1)
    try:
        seed = int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"seed must be an integer or 'random', got {value!r}")
    if not 0 <= seed <= 0xFFFFFFFF:
        raise argparse.ArgumentTypeError(f"seed must fit in 32 unsigned bits, got {seed}")
    return seed


def _non_negative(value: str) -> int:
    n = int(value)
    if n < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {n}")
    return n


def _positive(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {n}")
    return n


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="streetgen", description=f"Endless procedural city drive (ModernGL + pygame) v{APP_VERSION}")
    p.add_argument("--seed", type=_parse_seed, default=DEFAULT_SEED, help=f"u32 world seed or 'random' (default: {DEFAULT_SEED})")
    p.add_argument("--load-radius", type=_non_negative, default=DEFAULT_LOAD_RADIUS, help="chunks kept around the car (Chebyshev radius)")
    p.add_argument("--workers", type=_positive, default=DEFAULT_WORKERS, help="generation worker threads")
    p.add_argument(
        "--max-results",
        type=_non_negative,
        default=MAX_RESULTS_PER_UPDATE,
        help="chunks materialized per frame (0 = all that are ready)",
    )
    p.add_argument("--speed", type=float, default=DEFAULT_MAX_SPEED, help="max forward speed (world units / sec)")
    p.add_argument("--debug", action="store_true", help="enable debug overlay and logs")
    p.add_argument("--log-file", default=None, help="also write a detailed log to this file")
    p.add_argument("--headless", action="store_true", help="drive without a window and print streaming stats")
    p.add_argument("--frames", type=_positive, default=DEFAULT_HEADLESS_FRAMES, help="frames to simulate in --headless mode")
    return p.parse_args(argv)


def run(argv: Sequence[str] | None = None) -> dict | None:
    """Parse arguments and run; returns the headless stats, or None after the window closes."""
    args = _parse_args(argv)
    log = setup_logging(debug=args.debug, log_file=args.log_file)
    log.info("world seed %d, load radius %d, %d worker(s)", args.seed, args.load_radius, args.workers)

    if args.headless:
        from streetgen.headless import run_headless

        return run_headless(
            seed=args.seed,
            frames=args.frames,
            speed=args.speed,
            load_radius=args.load_radius,
            workers=args.workers,
            max_results_per_update=args.max_results or None,
        )

    from streetgen.app import run_app

    run_app(
        seed=args.seed,
        load_radius=args.load_radius,
        workers=args.workers,
        max_speed=args.speed,
        debug=args.debug,
        max_results_per_update=args.max_results or None,
    )
    return None


def main(argv: Sequence[str] | None = None) -> None:
    run(argv)


if __name__ == "__main__":
    main()
