from __future__ import annotations

import logging

import moderngl
import numpy as np

from streetgen.config import FAR, FOV_DEG, HUD_MARGIN_PX, NEAR, SKY_HORIZON, SKY_ZENITH
from streetgen.render.mesh_builder import MESH_BOX, MESH_QUAD, build_box_mesh, build_quad_mesh
from streetgen.render.scene import SceneDrawables
from streetgen.render.shaders import hud_shader_sources, scene_shader_sources, sky_shader_sources
from streetgen.util.math import perspective

log = logging.getLogger(__name__)


def hud_quad(viewport: tuple[int, int], size: tuple[int, int], margin: int = HUD_MARGIN_PX) -> np.ndarray:
    """Two triangles (pos.xy, uv) placing a `size` pixel overlay at the top-left of `viewport`."""
    vw, vh = viewport
    w, h = size
    x0 = -1.0 + 2.0 * margin / vw
    x1 = -1.0 + 2.0 * (margin + w) / vw
    y0 = 1.0 - 2.0 * margin / vh
    y1 = 1.0 - 2.0 * (margin + h) / vh
    # the HUD bytes are uploaded bottom row first, so v = 1 is the top edge
    return np.array([
        x0, y0, 0.0, 1.0,
        x1, y0, 1.0, 1.0,
        x0, y1, 0.0, 0.0,
        x1, y0, 1.0, 1.0,
        x1, y1, 1.0, 0.0,
        x0, y1, 0.0, 0.0,
    ], dtype=np.float32)


class Renderer(SceneDrawables):
    """moderngl renderer for the city.

    Every drawable is one of two shared unit meshes (quad, box) drawn with
    its own model matrix and flat colour; handles come from `SceneDrawables`.
    """

    def __init__(self, ctx: moderngl.Context, width: int, height: int, *, max_drawables: int | None = None) -> None:
        super().__init__(max_drawables=max_drawables)
        self.ctx = ctx
        self.width = width
        self.height = height

        vert, frag = scene_shader_sources(ctx.version_code)
        self.prog = ctx.program(vertex_shader=vert, fragment_shader=frag)
        self.prog["u_fog_color"].value = SKY_HORIZON

        self._meshes: dict[str, tuple[moderngl.Buffer, moderngl.VertexArray]] = {}
        for kind, data in ((MESH_QUAD, build_quad_mesh()), (MESH_BOX, build_box_mesh())):
            vbo = ctx.buffer(data.tobytes())
            self._meshes[kind] = (vbo, ctx.vertex_array(self.prog, [(vbo, "3f 3f", "in_pos", "in_norm")]))

        vert, frag = sky_shader_sources(ctx.version_code)
        self._sky_prog = ctx.program(vertex_shader=vert, fragment_shader=frag)
        self._sky_prog["u_horizon"].value = SKY_HORIZON
        self._sky_prog["u_zenith"].value = SKY_ZENITH
        strip = np.array([-1.0, -1.0, 1.0, -1.0, -1.0, 1.0, 1.0, 1.0], dtype=np.float32)
        self._sky_vbo = ctx.buffer(strip.tobytes())
        self._sky_vao = ctx.vertex_array(self._sky_prog, [(self._sky_vbo, "2f", "in_pos")])

        vert, frag = hud_shader_sources(ctx.version_code)
        self._hud_prog = ctx.program(vertex_shader=vert, fragment_shader=frag)
        self._hud_vbo = ctx.buffer(reserve=6 * 4 * 4, dynamic=True)
        self._hud_vao = ctx.vertex_array(self._hud_prog, [(self._hud_vbo, "2f 2f", "in_pos", "in_uv")])
        self._hud_tex: moderngl.Texture | None = None

        self._update_projection()
        ctx.enable(moderngl.DEPTH_TEST)

    def _update_projection(self) -> None:
        self._proj = perspective(FOV_DEG, self.width / self.height, NEAR, FAR).astype(np.float32)
        self.prog["u_proj"].write(self._proj.tobytes())

    @property
    def proj(self) -> np.ndarray:
        return self._proj

    def release(self) -> None:
        objs: list = [self._sky_vao, self._sky_vbo, self._sky_prog, self._hud_vao, self._hud_vbo, self._hud_prog]
        for vbo, vao in self._meshes.values():
            objs += [vao, vbo]
        objs.append(self.prog)
        if self._hud_tex is not None:
            objs.append(self._hud_tex)
        for obj in objs:
            try:
                obj.release()
            except Exception:
                log.debug("GL release failed for %r", obj, exc_info=True)

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.ctx.viewport = (0, 0, width, height)
        self._update_projection()
        if self._hud_tex is not None:
            self._hud_vbo.write(hud_quad((width, height), self._hud_tex.size).tobytes())

    def begin_frame(self) -> None:
        self.ctx.clear(*SKY_HORIZON, 1.0)
        self.ctx.disable(moderngl.DEPTH_TEST)
        self._sky_vao.render(mode=moderngl.TRIANGLE_STRIP)
        self.ctx.enable(moderngl.DEPTH_TEST)

    def set_common_uniforms(
        self,
        view: np.ndarray,
        cam_pos: np.ndarray,
        light_dir: np.ndarray,
        fog_start: float,
        fog_end: float,
    ) -> None:
        self.prog["u_view"].write(view.astype(np.float32).tobytes())
        self.prog["u_cam_pos"].value = tuple(float(v) for v in cam_pos[:3])
        self.prog["u_light_dir"].value = tuple(float(v) for v in light_dir[:3])
        self.prog["u_fog_start"].value = float(fog_start)
        self.prog["u_fog_end"].value = float(fog_end)

    def draw_scene(self) -> None:
        model = self.prog["u_model"]
        color = self.prog["u_color"]
        for item in self.items():
            model.write(item.model.tobytes())
            color.value = item.color
            self._meshes[item.mesh][1].render(mode=moderngl.TRIANGLES)

    # --- HUD ---

    def hud_update_rgba(self, rgba_bytes: bytes, w: int, h: int) -> None:
        if self._hud_tex is not None and self._hud_tex.size == (w, h):
            self._hud_tex.write(rgba_bytes)
            return
        if self._hud_tex is not None:
            self._hud_tex.release()
        self._hud_tex = self.ctx.texture((w, h), 4, data=rgba_bytes)
        self._hud_tex.filter = (moderngl.NEAREST, moderngl.NEAREST)
        self._hud_tex.repeat_x = False
        self._hud_tex.repeat_y = False
        self._hud_vbo.write(hud_quad((self.width, self.height), (w, h)).tobytes())

    def draw_hud(self) -> None:
        if self._hud_tex is None:
            return
        self.ctx.disable(moderngl.DEPTH_TEST)
        self.ctx.enable(moderngl.BLEND)
        self.ctx.blend_func = (moderngl.SRC_ALPHA, moderngl.ONE_MINUS_SRC_ALPHA)
        self._hud_tex.use(location=0)
        self._hud_prog["u_tex"].value = 0
        self._hud_vao.render(mode=moderngl.TRIANGLES)
        self.ctx.disable(moderngl.BLEND)
        self.ctx.enable(moderngl.DEPTH_TEST)
