from __future__ import annotations

import logging
import numbers
from types import MappingProxyType
from typing import Any, Dict, Mapping

from streetgen.config import CHUNK_SIZE, DEFAULT_LOAD_RADIUS, MAX_RESULTS_PER_UPDATE, ROAD_STRIP_WIDTH
from streetgen.world.channel import GenerationChannel, ThreadedChannel
from streetgen.world.chunk import ChunkState, LoadedChunk
from streetgen.world.geometry import describe_chunk, point_segment_distance
from streetgen.world.protocol import (
    MSG_ERROR,
    ProtocolError,
    decode_chunk,
    decode_error,
    encode_request,
    message_chunk_id,
    message_type,
)
from streetgen.world.types import BoxPrimitive, CapsulePrimitive, ChunkData, ChunkId, CollisionPrimitive

log = logging.getLogger(__name__)


def _observer_xz(position: Any) -> tuple[float, float]:
    if hasattr(position, "x") and hasattr(position, "z"):
        return float(position.x), float(position.z)
    return float(position[0]), float(position[2])


class ChunkManager:
    """Keeps the resident chunk set converging on the observer's neighbourhood.

    Per key the lifecycle is Absent -> Requested -> Resident -> Absent. Chunks
    inside the Chebyshev square of `load_radius` are requested and never
    dropped; a chunk outside that square is evicted (or its request
    cancelled) only once its Euclidean distance also exceeds
    `load_radius + 1`, so an observer hovering on a boundary does not thrash.

    `renderer` must provide `create_drawable(descriptor) -> handle` and
    `remove_drawable(handle)`; `physics` must provide
    `create_static_box(position, size, rotation)`,
    `create_static_capsule(position, radius, height, rotation)` and
    `remove_collider(handle)`. Handles are opaque and owned by the manager
    from creation until eviction.
    """

    def __init__(
        self,
        renderer,
        physics,
        world_seed: int,
        *,
        load_radius: int = DEFAULT_LOAD_RADIUS,
        channel: GenerationChannel | None = None,
        max_results_per_update: int | None = MAX_RESULTS_PER_UPDATE,
        chunk_size: float = CHUNK_SIZE,
    ) -> None:
        if isinstance(world_seed, bool) or not isinstance(world_seed, numbers.Integral):
            raise ValueError(f"world seed must be an integer, got {world_seed!r}")
        if not 0 <= int(world_seed) <= 0xFFFFFFFF:
            raise ValueError(f"world seed must fit in 32 unsigned bits, got {world_seed}")
        if int(load_radius) < 0:
            raise ValueError(f"load radius must be >= 0, got {load_radius}")

        self.renderer = renderer
        self.physics = physics
        self.world_seed = int(world_seed)
        self.load_radius = int(load_radius)
        self.chunk_size = float(chunk_size)
        self.max_results_per_update = max_results_per_update or None
        self.channel = channel if channel is not None else ThreadedChannel()

        self._resident: Dict[str, LoadedChunk] = {}
        self._requested: Dict[str, ChunkId] = {}
        self._disposed = False
        self.observer_chunk: ChunkId | None = None
        self._stats = {
            "requested": 0,
            "materialized": 0,
            "discarded": 0,
            "cancelled": 0,
            "evicted": 0,
            "failed": 0,
            "malformed": 0,
        }

    def __enter__(self) -> "ChunkManager":
        return self

    def __exit__(self, *exc) -> None:
        self.dispose()

    # --- queries ---

    def get_resident_chunks(self) -> Mapping[str, LoadedChunk]:
        return MappingProxyType(self._resident)

    @property
    def pending(self) -> frozenset[str]:
        return frozenset(self._requested)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def state(self, chunk_id: ChunkId) -> ChunkState:
        key = chunk_id.key
        if key in self._resident:
            return ChunkState.RESIDENT
        if key in self._requested:
            return ChunkState.REQUESTED
        return ChunkState.ABSENT

    def stats(self) -> dict:
        out = dict(self._stats)
        out["resident"] = len(self._resident)
        out["pending"] = len(self._requested)
        return out

    def chunk_at(self, x: float, z: float) -> LoadedChunk | None:
        return self._resident.get(ChunkId.from_world(x, z, self.chunk_size).key)

    def is_on_road(self, x: float, z: float) -> bool:
        """True if (x, z) lies on a road of a resident chunk. Unknown ground is not road."""
        chunk = self.chunk_at(x, z)
        if chunk is None:
            return False
        for road in chunk.data.roads:
            half = ROAD_STRIP_WIDTH.get(road.kind, ROAD_STRIP_WIDTH["residential"]) / 2
            for a, b in zip(road.points, road.points[1:]):
                if point_segment_distance(x, z, a, b) <= half:
                    return True
        return False

    # --- streaming ---

    def update(self, observer_position) -> None:
        if self._disposed:
            raise RuntimeError("ChunkManager has been disposed")

        self.ingest_ready()

        ox, oz = _observer_xz(observer_position)
        center = ChunkId.from_world(ox, oz, self.chunk_size)
        if center != self.observer_chunk:
            log.debug("observer entered chunk %s", center.key)
        self.observer_chunk = center

        r = self.load_radius
        for dx in range(-r, r + 1):
            for dy in range(-r, r + 1):
                chunk_id = ChunkId(center.x + dx, center.y + dy)
                key = chunk_id.key
                if key in self._resident or key in self._requested:
                    continue
                self._request(chunk_id)

        for key in [k for k, ch in self._resident.items() if self._out_of_range(ch.data.chunk_id, center)]:
            self.evict(key)

        # Cancellation is advisory: the worker still runs, its result is dropped.
        for key in [k for k, cid in self._requested.items() if self._out_of_range(cid, center)]:
            del self._requested[key]
            self._stats["cancelled"] += 1

    def _out_of_range(self, chunk_id: ChunkId, center: ChunkId) -> bool:
        r = self.load_radius
        return chunk_id.chebyshev(center) > r and chunk_id.distance(center) > r + 1

    def ingest_ready(self, max_items: int | None = None) -> int:
        """Consume finished generation results; returns how many chunks became resident."""
        limit = max_items if max_items is not None else self.max_results_per_update
        loaded = 0
        for msg in self.channel.poll(limit):
            if self.on_generation_result(msg) is not None:
                loaded += 1
        return loaded

    def _request(self, chunk_id: ChunkId) -> None:
        self.channel.submit(encode_request(chunk_id, self.world_seed))
        self._requested[chunk_id.key] = chunk_id
        self._stats["requested"] += 1
        log.debug("requested chunk %s", chunk_id.key)

    def on_generation_result(self, result) -> LoadedChunk | None:
        if isinstance(result, ChunkData):
            data = result
        else:
            try:
                if message_type(result) == MSG_ERROR:
                    chunk_id, error = decode_error(result)
                    log.warning("generation failed for chunk %s: %s", chunk_id.key, error)
                    self._requested.pop(chunk_id.key, None)
                    self._stats["failed"] += 1
                    return None
                data = decode_chunk(result)
            except ProtocolError as e:
                log.warning("dropping malformed generation message: %s", e)
                self._stats["malformed"] += 1
                # free the key so the next update asks for it again
                chunk_id = message_chunk_id(result)
                if chunk_id is not None:
                    self._requested.pop(chunk_id.key, None)
                return None

        key = data.key
        if key in self._resident:
            log.debug("chunk %s already resident, discarding duplicate result", key)
            self._stats["discarded"] += 1
            return None
        if key not in self._requested:
            log.debug("chunk %s no longer wanted, discarding result", key)
            self._stats["discarded"] += 1
            return None

        del self._requested[key]
        return self._materialize(data)

    # --- resources ---

    def _create_collider(self, primitive: CollisionPrimitive):
        if isinstance(primitive, BoxPrimitive):
            return self.physics.create_static_box(primitive.position, primitive.size, primitive.rotation)
        if isinstance(primitive, CapsulePrimitive):
            return self.physics.create_static_capsule(
                primitive.position, primitive.radius, primitive.height, primitive.rotation
            )
        raise TypeError(f"unknown collision primitive {type(primitive).__name__}")

    def _materialize(self, data: ChunkData) -> LoadedChunk | None:
        chunk = LoadedChunk(data=data)
        try:
            for desc in describe_chunk(data, self.chunk_size):
                chunk.drawables.append(self.renderer.create_drawable(desc))
            for primitive in data.collision_primitives:
                chunk.colliders.append(self._create_collider(primitive))
        except Exception:
            log.exception("failed to materialize chunk %s, leaving it unloaded", data.key)
            self._release(chunk)
            self._stats["failed"] += 1
            return None

        self._resident[data.key] = chunk
        self._stats["materialized"] += 1
        log.debug(
            "chunk %s resident (%d drawables, %d colliders)",
            data.key, len(chunk.drawables), len(chunk.colliders),
        )
        return chunk

    def _release(self, chunk: LoadedChunk) -> None:
        for handle in chunk.drawables:
            try:
                self.renderer.remove_drawable(handle)
            except Exception:
                log.exception("failed to remove drawable of chunk %s", chunk.key)
        for handle in chunk.colliders:
            try:
                self.physics.remove_collider(handle)
            except Exception:
                log.exception("failed to remove collider of chunk %s", chunk.key)
        chunk.drawables.clear()
        chunk.colliders.clear()

    def evict(self, key: str) -> bool:
        chunk = self._resident.pop(key, None)
        if chunk is None:
            return False
        self._release(chunk)
        self._stats["evicted"] += 1
        log.debug("evicted chunk %s", key)
        return True

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self.channel.close()
        for key in list(self._resident):
            self.evict(key)
        self._requested.clear()
        log.debug("chunk manager disposed")
