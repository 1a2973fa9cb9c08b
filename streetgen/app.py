from __future__ import annotations

import logging
import time

import moderngl
import numpy as np
import pygame

from streetgen.config import (
    APP_VERSION,
    FOG_END,
    FOG_START,
    FPS_CAP,
    LIGHT_DIR,
    WINDOW_HEIGHT,
    WINDOW_WIDTH,
)
from streetgen.physics import StaticColliders
from streetgen.render.camera import ChaseCamera
from streetgen.render.minimap import MiniMap
from streetgen.render.renderer import Renderer
from streetgen.util.math import normalize
from streetgen.vehicle import Vehicle
from streetgen.world.channel import ThreadedChannel
from streetgen.world.chunk_manager import ChunkManager

log = logging.getLogger(__name__)


def _init_pygame_gl() -> None:
    pygame.init()
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_MAJOR_VERSION, 3)
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_MINOR_VERSION, 3)
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_PROFILE_MASK, pygame.GL_CONTEXT_PROFILE_CORE)
    pygame.display.gl_set_attribute(pygame.GL_DEPTH_SIZE, 24)
    pygame.display.gl_set_attribute(pygame.GL_DOUBLEBUFFER, 1)


def _surface_to_rgba_bytes(surf: pygame.Surface) -> tuple[bytes, int, int]:
    s = surf.convert_alpha()
    w, h = s.get_size()
    data = pygame.image.tostring(s, "RGBA", True)  # bottom row first, as GL expects
    return data, w, h


def _read_controls() -> tuple[float, float]:
    keys = pygame.key.get_pressed()
    throttle = float(keys[pygame.K_UP]) - float(keys[pygame.K_DOWN])
    turn = float(keys[pygame.K_RIGHT]) - float(keys[pygame.K_LEFT])
    return throttle, turn


def _hud_surface(font: pygame.font.Font, lines: list[str], minimap: pygame.Surface) -> pygame.Surface:
    pad = 6
    line_h = font.get_linesize()
    text_w = max(font.size(line)[0] for line in lines)
    w = max(text_w, minimap.get_width()) + pad * 2
    h = line_h * len(lines) + minimap.get_height() + pad * 3
    surf = pygame.Surface((w, h), pygame.SRCALPHA)
    surf.fill((0, 0, 0, 130))
    y = pad
    for line in lines:
        surf.blit(font.render(line, True, (255, 255, 255)), (pad, y))
        y += line_h
    surf.blit(minimap, (pad, y + pad))
    return surf


def run_app(
    *,
    seed: int,
    load_radius: int,
    workers: int,
    max_speed: float,
    debug: bool,
    max_results_per_update: int | None,
) -> None:
    _init_pygame_gl()

    flags = pygame.OPENGL | pygame.DOUBLEBUF | pygame.RESIZABLE
    pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT), flags)
    pygame.display.set_caption(f"streetgen v{APP_VERSION} (seed={seed})")

    try:
        ctx = moderngl.create_context()
    except Exception as e:
        pygame.quit()
        raise RuntimeError("Failed to create ModernGL context (need OpenGL 3.2+)") from e

    log.debug(
        "moderngl ctx version_code=%s vendor=%s renderer=%s",
        ctx.version_code, ctx.info.get("GL_VENDOR"), ctx.info.get("GL_RENDERER"),
    )
    ctx.viewport = (0, 0, WINDOW_WIDTH, WINDOW_HEIGHT)

    renderer = Renderer(ctx, WINDOW_WIDTH, WINDOW_HEIGHT)
    colliders = StaticColliders()
    vehicle = Vehicle(max_speed=max_speed)
    cam = ChaseCamera()
    cam.snap(vehicle)

    world = ChunkManager(
        renderer,
        colliders,
        seed,
        load_radius=load_radius,
        channel=ThreadedChannel(workers),
        max_results_per_update=max_results_per_update,
    )

    light_dir = normalize(np.array(LIGHT_DIR, dtype=np.float32))
    pygame.font.init()
    font = pygame.font.SysFont("Menlo", 16) or pygame.font.Font(None, 16)
    minimap = MiniMap(size=220, scale=0.8)

    clock = pygame.time.Clock()
    running = True
    last_t = time.perf_counter()
    last_log = last_t
    last_hud = 0.0
    fps_est = 0.0

    try:
        while running:
            now = time.perf_counter()
            dt = min(now - last_t, 0.05)
            last_t = now

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                    running = False
                elif event.type == pygame.VIDEORESIZE:
                    w, h = max(64, event.w), max(64, event.h)
                    pygame.display.set_mode((w, h), flags)
                    renderer.resize(w, h)

            throttle, turn = _read_controls()
            vehicle.update(dt, throttle=throttle, turn=turn, colliders=colliders)
            cam.update(dt, vehicle)

            world.update(vehicle.position)

            if dt > 0:
                inst_fps = 1.0 / dt
                fps_est = (0.9 * fps_est + 0.1 * inst_fps) if fps_est > 0 else inst_fps

            renderer.begin_frame()
            renderer.set_common_uniforms(
                view=cam.view_matrix(),
                cam_pos=cam.eye(),
                light_dir=light_dir,
                fog_start=FOG_START,
                fog_end=FOG_END,
            )
            renderer.draw_scene()

            if now - last_hud >= 0.12:
                last_hud = now
                stats = world.stats()
                lines = [
                    f"streetgen v{APP_VERSION} seed={seed}",
                    f"speed={abs(vehicle.speed) * 3.6:.0f} km/h  fps~{fps_est:.0f}",
                    f"chunk={world.observer_chunk.key} on_road={'yes' if world.is_on_road(vehicle.x, vehicle.z) else 'no'}",
                ]
                if debug:
                    lines.append(f"resident={stats['resident']} pending={stats['pending']} evicted={stats['evicted']}")
                    lines.append(f"drawables={len(renderer)} colliders={len(colliders)}")
                surf = _hud_surface(font, lines, minimap.draw(world.get_resident_chunks(), vehicle.x, vehicle.z, vehicle.yaw))
                rgba, tw, th = _surface_to_rgba_bytes(surf)
                renderer.hud_update_rgba(rgba, tw, th)
            renderer.draw_hud()

            if debug and now - last_log >= 1.0:
                last_log = now
                log.debug("fps~%.0f %s", fps_est, world.stats())

            pygame.display.flip()

            if FPS_CAP and FPS_CAP > 0:
                clock.tick(FPS_CAP)
            else:
                clock.tick()
    finally:
        world.dispose()
        renderer.release()
        pygame.quit()
