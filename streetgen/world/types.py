from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, Tuple, Union

from streetgen.config import CHUNK_SIZE

RoadKind = Literal["primary", "secondary", "residential"]
Archetype = Literal["residential", "office", "industrial"]

ROAD_KINDS: Tuple[str, ...] = ("primary", "secondary", "residential")
ARCHETYPES: Tuple[str, ...] = ("residential", "office", "industrial")


@dataclass(frozen=True)
class Vec2:
    x: float
    y: float


@dataclass(frozen=True)
class Vec3:
    x: float
    y: float
    z: float


@dataclass(frozen=True, order=True)
class ChunkId:
    x: int
    y: int

    @property
    def key(self) -> str:
        return f"{self.x},{self.y}"

    @classmethod
    def from_world(cls, x: float, z: float, chunk_size: float = CHUNK_SIZE) -> "ChunkId":
        # world z maps onto chunk y
        return cls(int(math.floor(x / chunk_size)), int(math.floor(z / chunk_size)))

    def origin(self, chunk_size: float = CHUNK_SIZE) -> Vec2:
        return Vec2(float(self.x * chunk_size), float(self.y * chunk_size))

    def chebyshev(self, other: "ChunkId") -> int:
        return max(abs(self.x - other.x), abs(self.y - other.y))

    def distance(self, other: "ChunkId") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class RoadSegment:
    points: Tuple[Vec2, ...]  # ordered polyline
    kind: RoadKind


@dataclass(frozen=True)
class Intersection:
    pos: Vec2
    id: str


@dataclass(frozen=True)
class Building:
    footprint: Tuple[Vec2, ...]
    height: float
    archetype: Archetype

    def bounds(self) -> tuple[float, float, float, float]:
        """(min_x, min_y, max_x, max_y) of the footprint."""
        xs = [p.x for p in self.footprint]
        ys = [p.y for p in self.footprint]
        return min(xs), min(ys), max(xs), max(ys)


@dataclass(frozen=True)
class BoxPrimitive:
    position: Vec3  # centre, world space
    size: Vec3  # full extents
    rotation: float = 0.0  # yaw, radians


@dataclass(frozen=True)
class CapsulePrimitive:
    position: Vec3
    radius: float
    height: float  # cylinder length between the cap centres
    rotation: float = 0.0


CollisionPrimitive = Union[BoxPrimitive, CapsulePrimitive]


@dataclass(frozen=True)
class ChunkData:
    chunk_id: ChunkId
    roads: Tuple[RoadSegment, ...]
    intersections: Tuple[Intersection, ...]
    buildings: Tuple[Building, ...]
    collision_primitives: Tuple[CollisionPrimitive, ...]

    @property
    def key(self) -> str:
        return self.chunk_id.key
