"""Angular bookkeeping relative to the lattice's global centre."""
from __future__ import annotations

import math
from typing import Sequence

from .lattice import SLOT_BOTTOM, SLOT_LEFT, SLOT_RIGHT, SLOT_TOP, Triangle

ANGLE_SLOTS = (SLOT_TOP, SLOT_BOTTOM, SLOT_LEFT, SLOT_RIGHT)


def normalize_angle(angle: float) -> float:
    """Wrap an angle into (-pi, pi]."""
    wrapped = math.fmod(angle + math.pi, 2 * math.pi)
    if wrapped <= 0:
        wrapped += 2 * math.pi
    return wrapped - math.pi


def compute_angular_relationships(triangles: Sequence[Triangle]) -> None:
    """Set ``global_angle`` and per-neighbour ``angle_changes`` on every triangle.

    A change of 0 means the neighbour lies further out along this triangle's
    own bearing from the centre; +/-pi means it lies back towards the centre;
    positive values are anticlockwise. Safe to call repeatedly.
    """
    for tri in triangles:
        tri.global_angle = math.atan2(tri.global_offset_y, tri.global_offset_x)
        changes = {}
        for slot in ANGLE_SLOTS:
            idx = tri.neighbor(slot)
            if idx is None:
                continue
            other = triangles[idx]
            bearing = math.atan2(other.center_y - tri.center_y, other.center_x - tri.center_x)
            changes[slot] = normalize_angle(bearing - tri.global_angle)
        tri.angle_changes = changes


__all__ = ["ANGLE_SLOTS", "normalize_angle", "compute_angular_relationships"]
