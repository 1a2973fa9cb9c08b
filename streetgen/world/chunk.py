from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, List

from streetgen.world.types import ChunkData


class ChunkState(enum.Enum):
    ABSENT = "absent"
    REQUESTED = "requested"
    RESIDENT = "resident"


@dataclass
class LoadedChunk:
    data: ChunkData
    drawables: List[Any] = field(default_factory=list)  # renderer handles
    colliders: List[Any] = field(default_factory=list)  # physics handles

    @property
    def key(self) -> str:
        return self.data.chunk_id.key
