from __future__ import annotations

# Window
WINDOW_WIDTH = 1280
WINDOW_HEIGHT = 720
FPS_CAP = 0  # 0 = uncapped

# App
APP_VERSION = "0.4.0"

# World
DEFAULT_SEED = 12345

# Generation constants (fixed; changing them changes every world)
CHUNK_SIZE = 256  # world units per chunk side
BLOCK_SIZE = 64  # road grid spacing, sub-multiple of CHUNK_SIZE
ROAD_WIDTH = 8  # block inset on each side
BUILDING_JITTER = 5.0  # max footprint offset inside its sub-cell
BUILDINGS_PER_BLOCK = (1, 4)  # half-open range for next_int

# Archetype height ranges (world units)
HEIGHT_RANGES = {
    "residential": (8.0, 20.0),
    "office": (20.0, 60.0),
    "industrial": (6.0, 15.0),
}

# Road strip width by classification
ROAD_STRIP_WIDTH = {
    "primary": 12.0,
    "secondary": 8.0,
    "residential": 6.0,
}

# Streaming
DEFAULT_LOAD_RADIUS = 3  # Chebyshev radius in chunks; unload at > radius + 1 (Euclidean)
DEFAULT_WORKERS = 2
MAX_RESULTS_PER_UPDATE = 6  # materializations per tick; 0 = drain everything
WORKER_POLL_TIMEOUT = 0.1
WORKER_JOIN_TIMEOUT = 1.0

# Vehicle
DEFAULT_MAX_SPEED = 30.0
DEFAULT_ACCEL = 9.0
DEFAULT_BRAKE = 14.0
DEFAULT_DRAG = 0.25
DEFAULT_TURN_RATE = 1.4  # rad/sec at low speed
DEFAULT_VEHICLE_RADIUS = 1.8

# Camera
CAM_DISTANCE = 14.0
CAM_HEIGHT = 6.0
CAM_SMOOTH_K = 5.0

# Rendering
FOV_DEG = 70.0
NEAR = 0.1
FAR = 1200.0
FOG_START = 450.0
FOG_END = 900.0
SKY_HORIZON = (0.74, 0.78, 0.82)  # also the fog colour
SKY_ZENITH = (0.36, 0.52, 0.74)
HUD_MARGIN_PX = 10
LIGHT_DIR = (0.35, 0.9, 0.2)  # will be normalized in shader

# Headless
DEFAULT_HEADLESS_FRAMES = 600
DEFAULT_HEADLESS_DT = 1.0 / 60.0
