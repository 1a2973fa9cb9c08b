from __future__ import annotations

import logging
import time

from streetgen.config import DEFAULT_HEADLESS_DT, DEFAULT_LOAD_RADIUS, DEFAULT_MAX_SPEED, DEFAULT_WORKERS
from streetgen.physics import StaticColliders
from streetgen.render.scene import SceneDrawables
from streetgen.vehicle import Vehicle
from streetgen.world.channel import ThreadedChannel
from streetgen.world.chunk_manager import ChunkManager

log = logging.getLogger(__name__)


def run_headless(
    *,
    seed: int,
    frames: int,
    speed: float = DEFAULT_MAX_SPEED,
    load_radius: int = DEFAULT_LOAD_RADIUS,
    workers: int = DEFAULT_WORKERS,
    dt: float = DEFAULT_HEADLESS_DT,
    max_results_per_update: int | None = None,
) -> dict:
    """Drive straight down +Z with no window and report streaming statistics.

    The car starts on the primary road at x == 0, so it never hits a building.
    Resources are torn down before returning; `drawables_live` and
    `colliders_live` report what was left behind (should be zero).
    """
    scene = SceneDrawables()
    colliders = StaticColliders()
    vehicle = Vehicle(max_speed=speed)

    t0 = time.perf_counter()
    peak_resident = 0
    manager = ChunkManager(
        scene,
        colliders,
        seed,
        load_radius=load_radius,
        channel=ThreadedChannel(workers),
        max_results_per_update=max_results_per_update,
    )
    with manager:
        for frame in range(int(frames)):
            vehicle.update(dt, throttle=1.0, turn=0.0, colliders=colliders)
            manager.update(vehicle.position)
            stats = manager.stats()
            peak_resident = max(peak_resident, stats["resident"])
            if frame % 120 == 0:
                log.info(
                    "frame=%d z=%.1f chunk=%s resident=%d pending=%d drawables=%d colliders=%d",
                    frame, vehicle.z, manager.observer_chunk.key, stats["resident"], stats["pending"],
                    len(scene), len(colliders),
                )
        final = manager.stats()

    final.update(
        peak_resident=peak_resident,
        drawables_live=len(scene),
        colliders_live=len(colliders),
        drawables_created=scene.created,
        drawables_removed=scene.removed,
        x=vehicle.x,
        z=vehicle.z,
        elapsed_s=time.perf_counter() - t0,
    )
    log.info(
        "headless run done: %d frames, %d materialized, %d evicted, %d discarded in %.2fs",
        frames, final["materialized"], final["evicted"], final["discarded"], final["elapsed_s"],
    )
    return final
