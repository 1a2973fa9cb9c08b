from __future__ import annotations

import itertools
from typing import Dict

import numpy as np


def _xyz(v) -> tuple[float, float, float]:
    if hasattr(v, "x"):
        return float(v.x), float(v.y), float(v.z)
    return float(v[0]), float(v[1]), float(v[2])


class StaticColliders:
    """Static collision world: yaw-rotated boxes and vertical capsules.

    No dynamics; the vehicle only asks whether a sphere at its position
    touches anything. Queries are vectorized over all live colliders.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._boxes: Dict[int, tuple[float, ...]] = {}  # cx, cy, cz, hx, hy, hz, yaw
        self._capsules: Dict[int, tuple[float, ...]] = {}  # cx, cy, cz, radius, half_len
        self._box_arr: np.ndarray | None = None
        self._cap_arr: np.ndarray | None = None

    def __len__(self) -> int:
        return len(self._boxes) + len(self._capsules)

    def __contains__(self, handle: int) -> bool:
        return handle in self._boxes or handle in self._capsules

    def create_static_box(self, position, size, rotation: float = 0.0) -> int:
        cx, cy, cz = _xyz(position)
        sx, sy, sz = _xyz(size)
        if sx < 0 or sy < 0 or sz < 0:
            raise ValueError(f"box size must be non-negative, got {(sx, sy, sz)}")
        handle = next(self._ids)
        self._boxes[handle] = (cx, cy, cz, sx / 2, sy / 2, sz / 2, float(rotation))
        self._box_arr = None
        return handle

    def create_static_capsule(self, position, radius: float, height: float, rotation: float = 0.0) -> int:
        # a vertical capsule is symmetric about its axis, so yaw does not matter
        cx, cy, cz = _xyz(position)
        if radius < 0 or height < 0:
            raise ValueError(f"capsule radius/height must be non-negative, got {(radius, height)}")
        handle = next(self._ids)
        self._capsules[handle] = (cx, cy, cz, float(radius), float(height) / 2)
        self._cap_arr = None
        return handle

    def remove_collider(self, handle: int) -> None:
        if self._boxes.pop(handle, None) is not None:
            self._box_arr = None
        elif self._capsules.pop(handle, None) is not None:
            self._cap_arr = None
        else:
            raise KeyError(f"unknown collider handle {handle!r}")

    def _arrays(self) -> tuple[np.ndarray, np.ndarray]:
        if self._box_arr is None:
            self._box_arr = np.array(list(self._boxes.values()), dtype=np.float64).reshape(-1, 7)
        if self._cap_arr is None:
            self._cap_arr = np.array(list(self._capsules.values()), dtype=np.float64).reshape(-1, 5)
        return self._box_arr, self._cap_arr

    def overlaps(self, x: float, y: float, z: float, radius: float = 0.0) -> bool:
        """True if a sphere of `radius` at (x, y, z) touches any collider."""
        boxes, caps = self._arrays()
        r2 = float(radius) * float(radius)

        if boxes.shape[0]:
            dx = x - boxes[:, 0]
            dy = y - boxes[:, 1]
            dz = z - boxes[:, 2]
            # rotate into each box frame (yaw about +Y)
            c = np.cos(-boxes[:, 6])
            s = np.sin(-boxes[:, 6])
            lx = c * dx + s * dz
            lz = -s * dx + c * dz
            qx = lx - np.clip(lx, -boxes[:, 3], boxes[:, 3])
            qy = dy - np.clip(dy, -boxes[:, 4], boxes[:, 4])
            qz = lz - np.clip(lz, -boxes[:, 5], boxes[:, 5])
            if np.any(qx * qx + qy * qy + qz * qz <= r2):
                return True

        if caps.shape[0]:
            dy = y - caps[:, 1]
            dy = dy - np.clip(dy, -caps[:, 4], caps[:, 4])
            d2 = (x - caps[:, 0]) ** 2 + dy * dy + (z - caps[:, 2]) ** 2
            reach = caps[:, 3] + float(radius)
            if np.any(d2 <= reach * reach):
                return True

        return False
