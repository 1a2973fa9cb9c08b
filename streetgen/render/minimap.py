from __future__ import annotations

from typing import Mapping

import numpy as np
import pygame

from streetgen.world.chunk import LoadedChunk

BACKGROUND = (20, 20, 20, 230)
PRIMARY_ROAD = (136, 136, 136, 255)
SECONDARY_ROAD = (102, 102, 102, 255)
BUILDING = (100, 100, 100, 160)
MARKER = (255, 68, 68, 255)


class MiniMap:
    """Heading-up top-down map of the resident chunks around the vehicle."""

    def __init__(self, size: int = 240, scale: float = 1.0) -> None:
        self.size = int(size)
        self.scale = float(scale)  # pixels per world unit
        self.surface = pygame.Surface((self.size, self.size), pygame.SRCALPHA)

    @property
    def radius(self) -> float:
        """World units visible from the centre to the edge."""
        return self.size / 2 / self.scale

    def _project(self, pts: np.ndarray, x: float, z: float, yaw: float) -> np.ndarray:
        # forward = (sin yaw, cos yaw); right = (-cos yaw, sin yaw); forward points up
        d = pts - np.array([x, z], dtype=np.float64)
        fwd = np.array([np.sin(yaw), np.cos(yaw)])
        right = np.array([-np.cos(yaw), np.sin(yaw)])
        c = self.size / 2
        sx = c + (d @ right) * self.scale
        sy = c - (d @ fwd) * self.scale
        return np.stack([sx, sy], axis=-1)

    def draw(self, chunks: Mapping[str, LoadedChunk], x: float, z: float, yaw: float) -> pygame.Surface:
        surf = self.surface
        surf.fill(BACKGROUND)
        reach = self.radius * 1.5  # rotated corners reach past the half-size

        for chunk in chunks.values():
            for road in chunk.data.roads:
                pts = np.array([(p.x, p.y) for p in road.points], dtype=np.float64)
                if np.all(np.abs(pts[:, 0] - x) > reach) and np.all(np.abs(pts[:, 1] - z) > reach):
                    continue
                scr = self._project(pts, x, z, yaw)
                primary = road.kind == "primary"
                pygame.draw.lines(
                    surf,
                    PRIMARY_ROAD if primary else SECONDARY_ROAD,
                    False,
                    [tuple(p) for p in scr],
                    4 if primary else 2,
                )

        for chunk in chunks.values():
            for b in chunk.data.buildings:
                if len(b.footprint) < 3:
                    continue
                pts = np.array([(p.x, p.y) for p in b.footprint], dtype=np.float64)
                if np.min(np.abs(pts[:, 0] - x)) > reach or np.min(np.abs(pts[:, 1] - z)) > reach:
                    continue
                pygame.draw.polygon(surf, BUILDING, [tuple(p) for p in self._project(pts, x, z, yaw)])

        c = self.size / 2
        pygame.draw.polygon(surf, MARKER, [(c, c - 12), (c - 8, c + 8), (c + 8, c + 8)])
        pygame.draw.rect(surf, (51, 51, 51, 255), surf.get_rect(), 2)
        return surf
