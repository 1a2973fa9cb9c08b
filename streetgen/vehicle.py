from __future__ import annotations

import numpy as np

from streetgen.config import (
    DEFAULT_ACCEL,
    DEFAULT_BRAKE,
    DEFAULT_DRAG,
    DEFAULT_MAX_SPEED,
    DEFAULT_TURN_RATE,
    DEFAULT_VEHICLE_RADIUS,
)
from streetgen.util.math import clamp
from streetgen.world.types import Vec3


class Vehicle:
    """Kinematic car on the ground plane; the observer the chunk manager follows.

    Coordinate conventions:
    - +Z is "forward" when yaw == 0.
    - turn > 0 steers right, which decreases yaw.
    """

    def __init__(
        self,
        *,
        max_speed: float = DEFAULT_MAX_SPEED,
        accel: float = DEFAULT_ACCEL,
        brake: float = DEFAULT_BRAKE,
        drag: float = DEFAULT_DRAG,
        turn_rate: float = DEFAULT_TURN_RATE,
        radius: float = DEFAULT_VEHICLE_RADIUS,
        x: float = 0.0,
        z: float = 0.0,
        yaw: float = 0.0,
    ) -> None:
        self.max_speed = float(max_speed)
        self.accel = float(accel)
        self.brake = float(brake)
        self.drag = float(drag)
        self.turn_rate = float(turn_rate)
        self.radius = float(radius)

        self.x = float(x)
        self.y = 0.0
        self.z = float(z)
        self.yaw = float(yaw)
        self.speed = 0.0
        self.blocked = False

    @property
    def position(self) -> Vec3:
        return Vec3(self.x, self.y, self.z)

    def forward(self) -> np.ndarray:
        return np.array([np.sin(self.yaw), 0.0, np.cos(self.yaw)], dtype=np.float32)

    def update(self, dt: float, *, throttle: float, turn: float, colliders=None) -> None:
        """Advance the car.

        Args:
            throttle: -1..1 (reverse..forward)
            turn: -1..1 (left..right)
            colliders: optional object with `overlaps(x, y, z, radius)`; the
                car stops instead of entering a collider.
        """
        dt = float(dt)
        throttle = clamp(float(throttle), -1.0, 1.0)
        turn = clamp(float(turn), -1.0, 1.0)

        speed_target = throttle * self.max_speed
        delta = speed_target - self.speed
        limit = self.accel if abs(speed_target) > abs(self.speed) else self.brake
        self.speed += clamp(delta, -limit * dt, limit * dt)
        if self.drag > 0.0:
            self.speed *= float(np.exp(-self.drag * dt))

        # steering authority fades at standstill, like a real car
        speed_norm = 0.0 if self.max_speed <= 1e-6 else clamp(abs(self.speed) / self.max_speed, 0.0, 1.0)
        direction = 1.0 if self.speed >= 0.0 else -1.0
        self.yaw -= turn * self.turn_rate * min(1.0, speed_norm * 4.0) * direction * dt

        if self.speed == 0.0:
            return
        fwd = self.forward()
        nx = self.x + float(fwd[0]) * self.speed * dt
        nz = self.z + float(fwd[2]) * self.speed * dt
        if colliders is not None and colliders.overlaps(nx, self.radius, nz, self.radius):
            self.speed = 0.0
            self.blocked = True
            return
        self.blocked = False
        self.x, self.z = nx, nz
