from __future__ import annotations


def glsl_version(ctx_version_code: int) -> int:
    """GLSL 330 on 3.3+ contexts, 150 on 3.2 core."""
    return 330 if ctx_version_code >= 330 else 150


_SCENE_VERT = """
in vec3 in_pos;
in vec3 in_norm;

uniform mat4 u_proj;
uniform mat4 u_view;
uniform mat4 u_model;

out vec3 v_world_pos;
out vec3 v_norm;

void main() {
    vec4 world = u_model * vec4(in_pos, 1.0);
    v_world_pos = world.xyz;
    // yaw + axis scale only, so the upper 3x3 keeps face normals usable
    v_norm = normalize(mat3(u_model) * in_norm);
    gl_Position = u_proj * u_view * world;
}
"""

_SCENE_FRAG = """
in vec3 v_world_pos;
in vec3 v_norm;

uniform vec3 u_color;
uniform vec3 u_light_dir;
uniform vec3 u_cam_pos;
uniform vec3 u_fog_color;
uniform float u_fog_start;
uniform float u_fog_end;

out vec4 f_color;

void main() {
    vec3 n = normalize(v_norm);
    float sun = max(dot(n, normalize(u_light_dir)), 0.0);

    // sky above, asphalt bounce below
    float hemi = n.y * 0.5 + 0.5;
    vec3 ambient = mix(vec3(0.30, 0.29, 0.27), vec3(0.55, 0.60, 0.68), hemi);

    // darken facades towards street level
    float ground_ao = mix(0.75, 1.0, clamp(v_world_pos.y / 6.0, 0.0, 1.0));
    vec3 col = u_color * (ambient + 0.65 * sun) * ground_ao;

    float dist = length(v_world_pos.xz - u_cam_pos.xz);
    col = mix(col, u_fog_color, smoothstep(u_fog_start, u_fog_end, dist));
    f_color = vec4(col, 1.0);
}
"""

_SKY_VERT = """
in vec2 in_pos;
out float v_t;

void main() {
    v_t = in_pos.y * 0.5 + 0.5;
    gl_Position = vec4(in_pos, 0.0, 1.0);
}
"""

_SKY_FRAG = """
in float v_t;
uniform vec3 u_horizon;
uniform vec3 u_zenith;
out vec4 f_color;

void main() {
    // haze band sits in the lower half of the screen behind the skyline
    f_color = vec4(mix(u_horizon, u_zenith, smoothstep(0.35, 1.0, v_t)), 1.0);
}
"""

_HUD_VERT = """
in vec2 in_pos;
in vec2 in_uv;
out vec2 v_uv;

void main() {
    v_uv = in_uv;
    gl_Position = vec4(in_pos, 0.0, 1.0);
}
"""

_HUD_FRAG = """
uniform sampler2D u_tex;
in vec2 v_uv;
out vec4 f_color;

void main() {
    f_color = texture(u_tex, v_uv);
}
"""


def _with_version(ver: int, vert: str, frag: str) -> tuple[str, str]:
    prefix = f"#version {ver}\n"
    return prefix + vert, prefix + frag


def scene_shader_sources(ctx_version_code: int) -> tuple[str, str]:
    return _with_version(glsl_version(ctx_version_code), _SCENE_VERT, _SCENE_FRAG)


def sky_shader_sources(ctx_version_code: int) -> tuple[str, str]:
    return _with_version(glsl_version(ctx_version_code), _SKY_VERT, _SKY_FRAG)


def hud_shader_sources(ctx_version_code: int) -> tuple[str, str]:
    return _with_version(glsl_version(ctx_version_code), _HUD_VERT, _HUD_FRAG)
