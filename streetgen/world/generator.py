from __future__ import annotations

import math

from streetgen.config import (
    BLOCK_SIZE,
    BUILDING_JITTER,
    BUILDINGS_PER_BLOCK,
    CHUNK_SIZE,
    HEIGHT_RANGES,
    ROAD_WIDTH,
)
from streetgen.world.rng import SeededRNG, hash_chunk, noise2d
from streetgen.world.types import (
    BoxPrimitive,
    Building,
    ChunkData,
    ChunkId,
    Intersection,
    RoadSegment,
    Vec2,
    Vec3,
)


def classify_block(noise_value: float) -> str:
    if noise_value < 0.4:
        return "residential"
    if noise_value < 0.7:
        return "office"
    return "industrial"


def grid_offsets(chunk_size: float = CHUNK_SIZE, block_size: float = BLOCK_SIZE) -> list[float]:
    """Road line offsets from the chunk origin, both edges included."""
    n = int(math.ceil(chunk_size / block_size))
    return [float(min(i * block_size, chunk_size)) for i in range(n + 1)]


def generate_chunk(
    chunk_id: ChunkId,
    world_seed: int,
    *,
    chunk_size: float = CHUNK_SIZE,
    block_size: float = BLOCK_SIZE,
    road_width: float = ROAD_WIDTH,
) -> ChunkData:
    """Generate the road grid, buildings and colliders of one chunk.

    Pure: the result depends only on (chunk_id, world_seed) and the layout
    constants. Each call owns its RNG, so calls may run in parallel.
    """
    seed = hash_chunk(world_seed, chunk_id.x, chunk_id.y)
    rng = SeededRNG(seed)

    origin_x = float(chunk_id.x * chunk_size)
    origin_y = float(chunk_id.y * chunk_size)
    offsets = grid_offsets(chunk_size, block_size)

    roads: list[RoadSegment] = []
    for i, off in enumerate(offsets):
        kind = "primary" if i % 2 == 0 else "secondary"
        roads.append(RoadSegment(
            points=(Vec2(origin_x, origin_y + off), Vec2(origin_x + chunk_size, origin_y + off)),
            kind=kind,
        ))
    for i, off in enumerate(offsets):
        kind = "primary" if i % 2 == 0 else "secondary"
        roads.append(RoadSegment(
            points=(Vec2(origin_x + off, origin_y), Vec2(origin_x + off, origin_y + chunk_size)),
            kind=kind,
        ))

    intersections: list[Intersection] = []
    for row, oy in enumerate(offsets):
        for col, ox in enumerate(offsets):
            intersections.append(Intersection(
                pos=Vec2(origin_x + ox, origin_y + oy),
                id=f"{chunk_id.key}:{col},{row}",
            ))

    buildings: list[Building] = []
    primitives: list[BoxPrimitive] = []
    n_blocks = len(offsets) - 1
    for bx in range(n_blocks):
        for by in range(n_blocks):
            block_x = origin_x + offsets[bx] + road_width
            block_y = origin_y + offsets[by] + road_width
            block_w = offsets[bx + 1] - offsets[bx] - road_width * 2
            block_d = offsets[by + 1] - offsets[by] - road_width * 2
            if block_w <= 0 or block_d <= 0:
                continue

            archetype = classify_block(noise2d(block_x, block_y, seed))
            h_lo, h_hi = HEIGHT_RANGES[archetype]

            count = rng.next_int(*BUILDINGS_PER_BLOCK)
            per_side = int(math.ceil(math.sqrt(count)))
            cell_w = block_w / per_side
            cell_d = block_d / per_side

            for i in range(count):
                row, col = divmod(i, per_side)
                x = block_x + col * cell_w + rng.next_float(0.0, BUILDING_JITTER)
                y = block_y + row * cell_d + rng.next_float(0.0, BUILDING_JITTER)
                w = cell_w * rng.next_float(0.7, 0.95)
                d = cell_d * rng.next_float(0.7, 0.95)
                height = rng.next_float(h_lo, h_hi)

                # keep the footprint inside the buildable rectangle
                x = min(x, block_x + block_w - w)
                y = min(y, block_y + block_d - d)

                buildings.append(Building(
                    footprint=(Vec2(x, y), Vec2(x + w, y), Vec2(x + w, y + d), Vec2(x, y + d)),
                    height=height,
                    archetype=archetype,
                ))
                primitives.append(BoxPrimitive(
                    position=Vec3(x + w / 2, height / 2, y + d / 2),
                    size=Vec3(w, height, d),
                    rotation=0.0,
                ))

    return ChunkData(
        chunk_id=chunk_id,
        roads=tuple(roads),
        intersections=tuple(intersections),
        buildings=tuple(buildings),
        collision_primitives=tuple(primitives),
    )
