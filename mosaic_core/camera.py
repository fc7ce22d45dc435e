"""Perspective projection of the flat position buffer onto a screen."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

Vec3 = Tuple[float, float, float]


@dataclass
class PerspectiveCamera:
    """Pinhole camera with a vertical field of view in degrees."""

    fov: float = 25.0
    aspect: float = 1.0
    near: float = 0.1
    position: Vec3 = (0.0, 0.0, 7.0)
    target: Vec3 = (0.0, 0.0, 0.0)

    @property
    def fov_radians(self) -> float:
        return math.radians(max(1e-3, self.fov))

    def basis(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return the (right, up, forward) unit vectors of the view."""
        eye = np.asarray(self.position, dtype=np.float64)
        forward = np.asarray(self.target, dtype=np.float64) - eye
        forward /= np.linalg.norm(forward) or 1.0
        world_up = np.array([0.0, 1.0, 0.0])
        right = np.cross(forward, world_up)
        norm = np.linalg.norm(right)
        if norm < 1e-9:
            # looking straight along y; any horizontal right vector will do
            right = np.array([1.0, 0.0, 0.0])
        else:
            right /= norm
        up = np.cross(right, forward)
        return right, up, forward

    def project(self, points: np.ndarray, width: int, height: int) -> np.ndarray:
        """Project (N, 3) world points to (N, 2) pixel coordinates.

        Points at or behind the near plane come back as NaN.
        """
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        right, up, forward = self.basis()
        rel = pts - np.asarray(self.position, dtype=np.float64)
        x_cam = rel @ right
        y_cam = rel @ up
        depth = rel @ forward
        half_h = math.tan(self.fov_radians / 2)
        half_w = half_h * self.aspect
        visible = depth > self.near
        safe_depth = np.where(visible, depth, 1.0)
        ndc_x = x_cam / (safe_depth * half_w)
        ndc_y = y_cam / (safe_depth * half_h)
        screen = np.empty((pts.shape[0], 2), dtype=np.float64)
        screen[:, 0] = (ndc_x + 1.0) * 0.5 * width
        screen[:, 1] = (1.0 - ndc_y) * 0.5 * height
        screen[~visible] = np.nan
        return screen


def pointer_camera_position(
    center: Tuple[float, float],
    pointer: Tuple[float, float],
    viewport: Tuple[int, int],
    sway: float = 4.0,
    distance: float = 7.0,
) -> Vec3:
    """Camera position swayed away from the centre by the pointer's offset.

    A pointer in the middle of the viewport leaves the camera straight above
    the centre; towards the left edge moves it right, towards the top moves it
    down, giving a parallax tilt.
    """
    width, height = viewport
    px, py = pointer
    mouse_x = (width / 2 - px) / width if width else 0.0
    mouse_y = (height / 2 - py) / height if height else 0.0
    return (center[0] + mouse_x * sway, center[1] - mouse_y * sway, distance)


__all__ = ["PerspectiveCamera", "pointer_camera_position"]
