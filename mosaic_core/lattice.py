"""Triangular lattice construction: anchors, triangles and their adjacency."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np


LOG = logging.getLogger("mosaic_core.lattice")

DEG30 = math.pi / 6
DEG60 = math.pi / 3

# Triangle neighbour slots; the back slot is the edge opposite the tip.
SLOT_LEFT = "t_left"
SLOT_RIGHT = "t_right"
SLOT_TOP = "t_top"
SLOT_BOTTOM = "t_bottom"


@dataclass
class Anchor:
    """A lattice point with directional neighbours and the triangles it anchors."""

    row: int
    col: int
    x: float
    y: float
    left: Optional[int] = None
    right: Optional[int] = None
    top_left: Optional[int] = None
    top_right: Optional[int] = None
    bottom_left: Optional[int] = None
    bottom_right: Optional[int] = None
    tri_top: Optional[int] = None
    tri_bottom: Optional[int] = None
    tri_left_top: Optional[int] = None
    tri_right_top: Optional[int] = None
    tri_left_bottom: Optional[int] = None
    tri_right_bottom: Optional[int] = None


@dataclass
class Triangle:
    """One face of the tessellation.

    ``a_top`` is set for triangles pointing up, ``a_bottom`` for triangles
    pointing down; never both. Neighbour links are triangle indices.
    """

    index: int
    a_left: int
    a_right: int
    a_top: Optional[int] = None
    a_bottom: Optional[int] = None
    t_left: Optional[int] = None
    t_right: Optional[int] = None
    t_top: Optional[int] = None
    t_bottom: Optional[int] = None
    position: Tuple[float, ...] = ()
    center_x: float = 0.0
    center_y: float = 0.0
    global_offset_x: float = 0.0
    global_offset_y: float = 0.0
    global_angle: Optional[float] = None
    angle_changes: Dict[str, float] = field(default_factory=dict)

    @property
    def points_up(self) -> bool:
        return self.a_top is not None

    @property
    def tip_anchor(self) -> int:
        return self.a_top if self.a_top is not None else self.a_bottom

    @property
    def back_slot(self) -> str:
        return SLOT_BOTTOM if self.points_up else SLOT_TOP

    def neighbor(self, slot: str) -> Optional[int]:
        return getattr(self, slot)

    def neighbor_slots(self) -> Tuple[str, str, str]:
        """Slots crossed by a walker, in selection order: left, right, back."""
        return (SLOT_LEFT, SLOT_RIGHT, self.back_slot)


@dataclass
class Lattice:
    rows: int
    cols: int
    distance: float
    padding: float
    anchors: List[Anchor] = field(default_factory=list)
    triangles: List[Triangle] = field(default_factory=list)
    center: Tuple[float, float] = (0.0, 0.0)

    def anchor_index(self, row: int, col: int) -> Optional[int]:
        if 0 <= row < self.rows and 0 <= col < self.cols:
            return row * self.cols + col
        return None

    def anchor_at(self, row: int, col: int) -> Optional[Anchor]:
        idx = self.anchor_index(row, col)
        return None if idx is None else self.anchors[idx]


# ------------------------- Anchors ----------------------------
def _place_anchors(lattice: Lattice) -> None:
    distance = lattice.distance
    col_inc = math.cos(DEG60) * distance
    row_inc = math.sin(DEG60) * distance
    for row in range(lattice.rows):
        for col in range(lattice.cols):
            x = col * distance + (row % 2) * col_inc
            lattice.anchors.append(Anchor(row=row, col=col, x=x, y=row * row_inc))


def _link_anchors(lattice: Lattice) -> None:
    rows, cols = lattice.rows, lattice.cols
    for anchor in lattice.anchors:
        row, col = anchor.row, anchor.col
        # parity decides which columns of the adjacent rows are diagonal neighbours
        col_left = col - 1 if row % 2 == 0 else col
        col_right = col if row % 2 == 0 else col + 1
        if col > 0:
            anchor.left = lattice.anchor_index(row, col - 1)
        if col < cols - 1:
            anchor.right = lattice.anchor_index(row, col + 1)
        if row > 0:
            if col_left >= 0:
                anchor.bottom_left = lattice.anchor_index(row - 1, col_left)
            if col_right < cols:
                anchor.bottom_right = lattice.anchor_index(row - 1, col_right)
        if row < rows - 1:
            if col_left >= 0:
                anchor.top_left = lattice.anchor_index(row + 1, col_left)
            if col_right < cols:
                anchor.top_right = lattice.anchor_index(row + 1, col_right)


# ------------------------ Triangles ---------------------------
def _new_triangle(lattice: Lattice, **corners: int) -> int:
    idx = len(lattice.triangles)
    lattice.triangles.append(Triangle(index=idx, **corners))
    return idx


def _create_triangles(lattice: Lattice) -> None:
    anchors = lattice.anchors
    for ai, a in enumerate(anchors):
        if a.tri_top is None and a.top_left is not None and a.top_right is not None:
            t = _new_triangle(lattice, a_bottom=ai, a_left=a.top_left, a_right=a.top_right)
            a.tri_top = anchors[a.top_left].tri_right_bottom = anchors[a.top_right].tri_left_bottom = t
        if a.tri_bottom is None and a.bottom_left is not None and a.bottom_right is not None:
            t = _new_triangle(lattice, a_top=ai, a_left=a.bottom_left, a_right=a.bottom_right)
            a.tri_bottom = anchors[a.bottom_left].tri_right_top = anchors[a.bottom_right].tri_left_top = t
        if a.tri_left_top is None and a.left is not None and a.top_left is not None:
            t = _new_triangle(lattice, a_right=ai, a_left=a.left, a_top=a.top_left)
            a.tri_left_top = anchors[a.left].tri_right_top = anchors[a.top_left].tri_bottom = t
        if a.tri_right_top is None and a.right is not None and a.top_right is not None:
            t = _new_triangle(lattice, a_left=ai, a_right=a.right, a_top=a.top_right)
            a.tri_right_top = anchors[a.right].tri_left_top = anchors[a.top_right].tri_bottom = t
        if a.tri_left_bottom is None and a.left is not None and a.bottom_left is not None:
            t = _new_triangle(lattice, a_right=ai, a_left=a.left, a_bottom=a.bottom_left)
            a.tri_left_bottom = anchors[a.left].tri_right_bottom = anchors[a.bottom_left].tri_top = t
        if a.tri_right_bottom is None and a.right is not None and a.bottom_right is not None:
            t = _new_triangle(lattice, a_left=ai, a_right=a.right, a_bottom=a.bottom_right)
            a.tri_right_bottom = anchors[a.right].tri_left_bottom = anchors[a.bottom_right].tri_top = t


def _resolve_triangles(lattice: Lattice) -> None:
    anchors = lattice.anchors
    padding = lattice.padding
    pad_x = math.cos(DEG30) * padding
    pad_y = math.sin(DEG30) * padding
    center_x, center_y = lattice.center
    for tri in lattice.triangles:
        left = anchors[tri.a_left]
        right = anchors[tri.a_right]
        if tri.points_up:
            top = anchors[tri.a_top]
            tri.t_left = left.tri_top
            tri.t_right = right.tri_top
            tri.t_bottom = right.tri_left_bottom
            tri.position = (
                top.x, top.y - padding, 0.0,
                right.x - pad_x, right.y + pad_y, 0.0,
                left.x + pad_x, left.y + pad_y, 0.0,
            )
        else:
            bottom = anchors[tri.a_bottom]
            tri.t_left = left.tri_bottom
            tri.t_right = right.tri_bottom
            tri.t_top = right.tri_left_top
            tri.position = (
                bottom.x, bottom.y + padding, 0.0,
                left.x + pad_x, left.y - pad_y, 0.0,
                right.x - pad_x, right.y - pad_y, 0.0,
            )
        pos = tri.position
        tri.center_x = (pos[0] + pos[3] + pos[6]) / 3
        tri.center_y = (pos[1] + pos[4] + pos[7]) / 3
        tri.global_offset_x = tri.center_x - center_x
        tri.global_offset_y = tri.center_y - center_y


def build_lattice(rows: int, cols: int, distance: float = 0.05, padding: float = 0.0) -> Lattice:
    """Build the anchor grid and the triangle set with adjacency and vertex positions.

    Deterministic. Row or column counts below 2 give an empty (or, for a single
    row, triangle-free) lattice rather than an error.
    """
    rows = max(0, int(rows))
    cols = max(0, int(cols))
    lattice = Lattice(rows=rows, cols=cols, distance=float(distance), padding=float(padding))
    _place_anchors(lattice)
    if lattice.anchors:
        # half the far corner, not the true centroid of the anchors
        far = lattice.anchors[-1]
        lattice.center = (far.x / 2, far.y / 2)
    _link_anchors(lattice)
    _create_triangles(lattice)
    _resolve_triangles(lattice)
    LOG.debug(
        "Built lattice %dx%d: %d anchors, %d triangles",
        rows, cols, len(lattice.anchors), len(lattice.triangles),
    )
    return lattice


def allocate_buffers(lattice: Lattice) -> Tuple[np.ndarray, np.ndarray]:
    """Return flat (positions, colors) float32 buffers, 9 floats per triangle.

    Positions hold each triangle's padded vertices; colors start black.
    """
    count = len(lattice.triangles)
    positions = np.zeros(count * 9, dtype=np.float32)
    colors = np.zeros(count * 9, dtype=np.float32)
    for tri in lattice.triangles:
        positions[tri.index * 9:tri.index * 9 + 9] = tri.position
    return positions, colors


__all__ = [
    "Anchor",
    "Triangle",
    "Lattice",
    "SLOT_LEFT",
    "SLOT_RIGHT",
    "SLOT_TOP",
    "SLOT_BOTTOM",
    "build_lattice",
    "allocate_buffers",
]
