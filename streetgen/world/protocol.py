"""Messages exchanged across the generation boundary.

Everything that crosses between the manager and the workers is a plain
dict of str/int/float/list values, so the two sides never share mutable
objects. Decoders validate shape and raise `ProtocolError` on anything
unexpected.
"""
from __future__ import annotations

from typing import Any, Mapping

from streetgen.world.types import (
    ARCHETYPES,
    ROAD_KINDS,
    BoxPrimitive,
    Building,
    CapsulePrimitive,
    ChunkData,
    ChunkId,
    CollisionPrimitive,
    Intersection,
    RoadSegment,
    Vec2,
    Vec3,
)

MSG_GENERATE = "generate"
MSG_CHUNK = "chunk"
MSG_ERROR = "error"


class ProtocolError(ValueError):
    """A message from the generation boundary is malformed or unexpected."""


def _require(msg: Any, key: str) -> Any:
    if not isinstance(msg, Mapping):
        raise ProtocolError(f"expected a mapping, got {type(msg).__name__}")
    if key not in msg:
        raise ProtocolError(f"missing field {key!r}")
    return msg[key]


def _num(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProtocolError(f"{what} must be a number, got {value!r}")
    return float(value)


def _int(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError(f"{what} must be an integer, got {value!r}")
    return value


def _list(value: Any, what: str) -> list:
    if not isinstance(value, (list, tuple)):
        raise ProtocolError(f"{what} must be a list, got {type(value).__name__}")
    return list(value)


def _vec2(v: Vec2) -> dict:
    return {"x": v.x, "y": v.y}


def _vec3(v: Vec3) -> dict:
    return {"x": v.x, "y": v.y, "z": v.z}


def _read_vec2(raw: Any) -> Vec2:
    return Vec2(_num(_require(raw, "x"), "x"), _num(_require(raw, "y"), "y"))


def _read_vec3(raw: Any) -> Vec3:
    return Vec3(
        _num(_require(raw, "x"), "x"),
        _num(_require(raw, "y"), "y"),
        _num(_require(raw, "z"), "z"),
    )


def _read_chunk_id(raw: Any) -> ChunkId:
    return ChunkId(_int(_require(raw, "x"), "chunkId.x"), _int(_require(raw, "y"), "chunkId.y"))


# --- requests ---

def encode_request(chunk_id: ChunkId, world_seed: int) -> dict:
    return {
        "type": MSG_GENERATE,
        "chunkId": {"x": chunk_id.x, "y": chunk_id.y},
        "worldSeed": int(world_seed),
    }


def decode_request(msg: Any) -> tuple[ChunkId, int]:
    if _require(msg, "type") != MSG_GENERATE:
        raise ProtocolError(f"unexpected request type {msg['type']!r}")
    chunk_id = _read_chunk_id(_require(msg, "chunkId"))
    seed = _int(_require(msg, "worldSeed"), "worldSeed")
    if not 0 <= seed <= 0xFFFFFFFF:
        raise ProtocolError(f"worldSeed out of u32 range: {seed}")
    return chunk_id, seed


# --- responses ---

def _encode_primitive(p: CollisionPrimitive) -> dict:
    if isinstance(p, BoxPrimitive):
        return {"type": "box", "position": _vec3(p.position), "size": _vec3(p.size), "rotation": p.rotation}
    if isinstance(p, CapsulePrimitive):
        return {
            "type": "capsule",
            "position": _vec3(p.position),
            "radius": p.radius,
            "height": p.height,
            "rotation": p.rotation,
        }
    raise TypeError(f"unknown collision primitive {type(p).__name__}")


def _decode_primitive(raw: Any) -> CollisionPrimitive:
    kind = _require(raw, "type")
    position = _read_vec3(_require(raw, "position"))
    rotation = _num(raw.get("rotation", 0.0), "rotation")
    if kind == "box":
        return BoxPrimitive(position=position, size=_read_vec3(_require(raw, "size")), rotation=rotation)
    if kind == "capsule":
        return CapsulePrimitive(
            position=position,
            radius=_num(_require(raw, "radius"), "radius"),
            height=_num(_require(raw, "height"), "height"),
            rotation=rotation,
        )
    raise ProtocolError(f"unknown collision primitive type {kind!r}")


def encode_chunk(data: ChunkData) -> dict:
    return {
        "type": MSG_CHUNK,
        "chunkId": {"x": data.chunk_id.x, "y": data.chunk_id.y},
        "roads": [
            {"segments": [_vec2(p) for p in r.points], "type": r.kind}
            for r in data.roads
        ],
        "intersections": [{"pos": _vec2(i.pos), "id": i.id} for i in data.intersections],
        "buildings": [
            {"footprint": [_vec2(p) for p in b.footprint], "height": b.height, "archetype": b.archetype}
            for b in data.buildings
        ],
        "collisionPrimitives": [_encode_primitive(p) for p in data.collision_primitives],
    }


def encode_error(chunk_id: ChunkId, error: str) -> dict:
    return {"type": MSG_ERROR, "chunkId": {"x": chunk_id.x, "y": chunk_id.y}, "error": str(error)}


def decode_chunk(msg: Any) -> ChunkData:
    if _require(msg, "type") != MSG_CHUNK:
        raise ProtocolError(f"unexpected response type {msg['type']!r}")
    chunk_id = _read_chunk_id(_require(msg, "chunkId"))

    roads = []
    for raw in _list(_require(msg, "roads"), "roads"):
        kind = _require(raw, "type")
        if kind not in ROAD_KINDS:
            raise ProtocolError(f"unknown road type {kind!r}")
        points = tuple(_read_vec2(p) for p in _list(_require(raw, "segments"), "segments"))
        if len(points) < 2:
            raise ProtocolError("road polyline needs at least two points")
        roads.append(RoadSegment(points=points, kind=kind))

    intersections = []
    for raw in _list(_require(msg, "intersections"), "intersections"):
        ident = _require(raw, "id")
        if not isinstance(ident, str):
            raise ProtocolError(f"intersection id must be a string, got {ident!r}")
        intersections.append(Intersection(pos=_read_vec2(_require(raw, "pos")), id=ident))

    buildings = []
    for raw in _list(_require(msg, "buildings"), "buildings"):
        archetype = _require(raw, "archetype")
        if archetype not in ARCHETYPES:
            raise ProtocolError(f"unknown archetype {archetype!r}")
        footprint = tuple(_read_vec2(p) for p in _list(_require(raw, "footprint"), "footprint"))
        if len(footprint) < 3:
            raise ProtocolError("building footprint needs at least three points")
        buildings.append(Building(
            footprint=footprint,
            height=_num(_require(raw, "height"), "height"),
            archetype=archetype,
        ))

    primitives = tuple(
        _decode_primitive(raw)
        for raw in _list(_require(msg, "collisionPrimitives"), "collisionPrimitives")
    )

    return ChunkData(
        chunk_id=chunk_id,
        roads=tuple(roads),
        intersections=tuple(intersections),
        buildings=tuple(buildings),
        collision_primitives=primitives,
    )


def message_type(msg: Any) -> str:
    kind = _require(msg, "type")
    if kind not in (MSG_CHUNK, MSG_ERROR):
        raise ProtocolError(f"unexpected message type {kind!r}")
    return kind


def message_chunk_id(msg: Any) -> ChunkId | None:
    """Best-effort chunk id of a result message, None when it cannot be read."""
    try:
        return _read_chunk_id(_require(msg, "chunkId"))
    except ProtocolError:
        return None


def decode_error(msg: Any) -> tuple[ChunkId, str]:
    if _require(msg, "type") != MSG_ERROR:
        raise ProtocolError(f"unexpected response type {msg['type']!r}")
    return _read_chunk_id(_require(msg, "chunkId")), str(msg.get("error", ""))
