from __future__ import annotations

import numpy as np

from streetgen.config import CAM_DISTANCE, CAM_HEIGHT, CAM_SMOOTH_K
from streetgen.util.math import exp_smooth, exp_smooth_angle, look_at


class ChaseCamera:
    """Third-person camera trailing the vehicle.

    The view yaw lags behind the car's yaw so turns read as having weight.
    """

    def __init__(self, distance: float = CAM_DISTANCE, height: float = CAM_HEIGHT, smooth_k: float = CAM_SMOOTH_K) -> None:
        self.distance = float(distance)
        self.height = float(height)
        self.smooth_k = float(smooth_k)

        self.x = 0.0
        self.y = self.height
        self.z = -self.distance
        self._yaw = 0.0
        self._target = np.zeros(3, dtype=np.float32)

    def snap(self, vehicle) -> None:
        self._yaw = float(vehicle.yaw)
        self.update(0.0, vehicle)
        fwd = np.array([np.sin(self._yaw), 0.0, np.cos(self._yaw)], dtype=np.float32)
        self.x = float(vehicle.x - fwd[0] * self.distance)
        self.z = float(vehicle.z - fwd[2] * self.distance)
        self.y = float(vehicle.y + self.height)

    def update(self, dt: float, vehicle) -> None:
        self._yaw = exp_smooth_angle(self._yaw, vehicle.yaw, self.smooth_k, dt)
        fwd = np.array([np.sin(self._yaw), 0.0, np.cos(self._yaw)], dtype=np.float32)

        self.x = exp_smooth(self.x, float(vehicle.x - fwd[0] * self.distance), self.smooth_k, dt)
        self.z = exp_smooth(self.z, float(vehicle.z - fwd[2] * self.distance), self.smooth_k, dt)
        self.y = exp_smooth(self.y, float(vehicle.y + self.height), self.smooth_k, dt)
        self._target = np.array([vehicle.x, vehicle.y + 1.5, vehicle.z], dtype=np.float32)

    def eye(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float32)

    def view_matrix(self) -> np.ndarray:
        up = np.array([0.0, 1.0, 0.0], dtype=np.float32)
        return look_at(self.eye(), self._target, up)
