from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Union

from streetgen.config import CHUNK_SIZE, ROAD_STRIP_WIDTH
from streetgen.world.types import ChunkData, Vec2, Vec3


@dataclass(frozen=True)
class GroundTile:
    center: Vec3
    size: float


@dataclass(frozen=True)
class RoadStrip:
    start: Vec2
    end: Vec2
    width: float
    kind: str

    @property
    def length(self) -> float:
        return math.hypot(self.end.x - self.start.x, self.end.y - self.start.y)

    @property
    def angle(self) -> float:
        return math.atan2(self.end.y - self.start.y, self.end.x - self.start.x)


@dataclass(frozen=True)
class BuildingBox:
    center: Vec3
    size: Vec3
    archetype: str


Drawable = Union[GroundTile, RoadStrip, BuildingBox]


def describe_chunk(data: ChunkData, chunk_size: float = CHUNK_SIZE) -> Iterator[Drawable]:
    """Yield renderer descriptors for a chunk: ground, then roads, then buildings."""
    origin = data.chunk_id.origin(chunk_size)
    yield GroundTile(center=Vec3(origin.x + chunk_size / 2, 0.0, origin.y + chunk_size / 2), size=float(chunk_size))

    for road in data.roads:
        width = ROAD_STRIP_WIDTH.get(road.kind, ROAD_STRIP_WIDTH["residential"])
        for a, b in zip(road.points, road.points[1:]):
            yield RoadStrip(start=a, end=b, width=width, kind=road.kind)

    for b in data.buildings:
        if len(b.footprint) < 3:
            continue
        min_x, min_y, max_x, max_y = b.bounds()
        yield BuildingBox(
            center=Vec3((min_x + max_x) / 2, b.height / 2, (min_y + max_y) / 2),
            size=Vec3(max_x - min_x, b.height, max_y - min_y),
            archetype=b.archetype,
        )


def point_segment_distance(px: float, py: float, a: Vec2, b: Vec2) -> float:
    dx = b.x - a.x
    dy = b.y - a.y
    len2 = dx * dx + dy * dy
    if len2 <= 0.0:
        return math.hypot(px - a.x, py - a.y)
    t = ((px - a.x) * dx + (py - a.y) * dy) / len2
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (a.x + t * dx), py - (a.y + t * dy))
