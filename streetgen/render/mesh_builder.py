from __future__ import annotations

import numpy as np

from streetgen.util.math import model_matrix
from streetgen.world.geometry import BuildingBox, GroundTile, RoadStrip

ROAD_LIFT = 0.05  # keeps road quads above the ground tile

GROUND_COLOR = (0x22 / 255, 0x8B / 255, 0x22 / 255)
ROAD_COLOR = (0x40 / 255, 0x40 / 255, 0x40 / 255)
ARCHETYPE_COLORS = {
    "residential": (0xD4 / 255, 0xA5 / 255, 0x74 / 255),
    "office": (0x8B / 255, 0x9D / 255, 0xC3 / 255),
    "industrial": (0x9B / 255, 0x9B / 255, 0x9B / 255),
}

MESH_QUAD = "quad"
MESH_BOX = "box"


def build_quad_mesh() -> np.ndarray:
    """Unit quad in the XZ plane centred on the origin, normal +Y.

    Vertex format: pos (3) + norm (3), two triangles, CCW from above.
    """
    p = [(-0.5, 0.0, -0.5), (-0.5, 0.0, 0.5), (0.5, 0.0, 0.5), (0.5, 0.0, -0.5)]
    tris = [p[0], p[1], p[2], p[0], p[2], p[3]]
    return np.array([[*v, 0.0, 1.0, 0.0] for v in tris], dtype=np.float32)


def build_box_mesh() -> np.ndarray:
    """Unit cube centred on the origin with flat per-face normals (36 vertices)."""
    out: list[list[float]] = []
    for axis in range(3):
        for sign in (-1.0, 1.0):
            n = [0.0, 0.0, 0.0]
            n[axis] = sign
            u_axis = (axis + 1) % 3
            v_axis = (axis + 2) % 3
            corners = []
            for du, dv in ((-0.5, -0.5), (0.5, -0.5), (0.5, 0.5), (-0.5, 0.5)):
                v = [0.0, 0.0, 0.0]
                v[axis] = 0.5 * sign
                v[u_axis] = du
                v[v_axis] = dv
                corners.append(v)
            if sign < 0:
                corners.reverse()
            for i in (0, 1, 2, 0, 2, 3):
                out.append(corners[i] + n)
    return np.array(out, dtype=np.float32)


def descriptor_transform(desc) -> tuple[str, np.ndarray, tuple[float, float, float]]:
    """Map a geometry descriptor onto (mesh kind, column-major model matrix, rgb)."""
    if isinstance(desc, GroundTile):
        c = desc.center
        return MESH_QUAD, model_matrix((c.x, c.y, c.z), (desc.size, 1.0, desc.size)), GROUND_COLOR
    if isinstance(desc, RoadStrip):
        mx = (desc.start.x + desc.end.x) / 2
        mz = (desc.start.y + desc.end.y) / 2
        # map y is world z; yaw turns local +X onto the strip direction
        m = model_matrix((mx, ROAD_LIFT, mz), (desc.length, 1.0, desc.width), -desc.angle)
        return MESH_QUAD, m, ROAD_COLOR
    if isinstance(desc, BuildingBox):
        c, s = desc.center, desc.size
        color = ARCHETYPE_COLORS.get(desc.archetype, ARCHETYPE_COLORS["industrial"])
        return MESH_BOX, model_matrix((c.x, c.y, c.z), (s.x, s.y, s.z)), color
    raise TypeError(f"unknown drawable descriptor {type(desc).__name__}")
