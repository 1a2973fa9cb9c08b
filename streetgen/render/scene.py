from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Dict, Iterator

import numpy as np

from streetgen.render.mesh_builder import descriptor_transform


class ResourceExhausted(RuntimeError):
    """The renderer cannot hold any more drawables."""


@dataclass
class DrawItem:
    mesh: str
    model: np.ndarray  # column-major 4x4 float32
    color: tuple[float, float, float]


class SceneDrawables:
    """Handle-based store of drawables; the GL renderer draws from it.

    Usable on its own (headless runs) since nothing here touches the GPU.
    """

    def __init__(self, *, max_drawables: int | None = None) -> None:
        self.max_drawables = max_drawables
        self._ids = itertools.count(1)
        self._items: Dict[int, DrawItem] = {}
        self.created = 0
        self.removed = 0

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, handle: int) -> bool:
        return handle in self._items

    def items(self) -> Iterator[DrawItem]:
        return iter(self._items.values())

    def create_drawable(self, descriptor) -> int:
        if self.max_drawables is not None and len(self._items) >= self.max_drawables:
            raise ResourceExhausted(f"drawable capacity {self.max_drawables} reached")
        mesh, model, color = descriptor_transform(descriptor)
        handle = next(self._ids)
        self._items[handle] = DrawItem(mesh=mesh, model=model, color=color)
        self.created += 1
        return handle

    def remove_drawable(self, handle: int) -> None:
        if self._items.pop(handle, None) is None:
            raise KeyError(f"unknown drawable handle {handle!r}")
        self.removed += 1
