"""Tests for lattice construction."""

import math

import numpy as np
import pytest

from mosaic_core.lattice import (
    SLOT_BOTTOM,
    SLOT_LEFT,
    SLOT_RIGHT,
    SLOT_TOP,
    Lattice,
    allocate_buffers,
    build_lattice,
)


def _vertices(tri):
    p = tri.position
    return [(p[0], p[1]), (p[3], p[4]), (p[6], p[7])]


def _inside(point, triangle):
    """Strict point-in-triangle test via signs of the edge cross products."""
    (x, y) = point
    signs = []
    for (x1, y1), (x2, y2) in zip(triangle, triangle[1:] + triangle[:1]):
        signs.append((x2 - x1) * (y - y1) - (y2 - y1) * (x - x1))
    return all(s > 0 for s in signs) or all(s < 0 for s in signs)


# =============================================================================
# Anchors
# =============================================================================

class TestAnchors:
    """Anchor placement and neighbour wiring."""

    def test_grid_size(self):
        """One anchor per row/column pair."""
        lattice = build_lattice(4, 5, 1.0)
        assert len(lattice.anchors) == 20
        assert lattice.anchor_at(3, 4).row == 3
        assert lattice.anchor_at(3, 4).col == 4

    def test_odd_rows_shifted_half_distance(self):
        """Odd rows are shifted right by D*cos(60)."""
        lattice = build_lattice(3, 3, 2.0)
        assert lattice.anchor_at(0, 1).x == pytest.approx(2.0)
        assert lattice.anchor_at(1, 1).x == pytest.approx(3.0)
        assert lattice.anchor_at(1, 0).y == pytest.approx(2.0 * math.sin(math.pi / 3))

    def test_horizontal_neighbours(self):
        """Left/right links stay inside the row."""
        lattice = build_lattice(3, 3, 1.0)
        a = lattice.anchor_at(1, 0)
        assert a.left is None
        assert a.right == lattice.anchor_index(1, 1)

    def test_even_row_diagonals(self):
        """Even rows reach columns c-1 and c of the adjacent rows."""
        lattice = build_lattice(3, 3, 1.0)
        a = lattice.anchor_at(0, 1)
        assert a.top_left == lattice.anchor_index(1, 0)
        assert a.top_right == lattice.anchor_index(1, 1)
        assert a.bottom_left is None and a.bottom_right is None

    def test_odd_row_diagonals(self):
        """Odd rows reach columns c and c+1 of the adjacent rows."""
        lattice = build_lattice(3, 3, 1.0)
        a = lattice.anchor_at(1, 1)
        assert a.top_left == lattice.anchor_index(2, 1)
        assert a.top_right == lattice.anchor_index(2, 2)
        assert a.bottom_left == lattice.anchor_index(0, 1)
        assert a.bottom_right == lattice.anchor_index(0, 2)

    def test_edge_anchor_has_fewer_links(self):
        """The last column of an odd row has no right-hand diagonals."""
        lattice = build_lattice(3, 3, 1.0)
        a = lattice.anchor_at(1, 2)
        assert a.right is None
        assert a.top_right is None
        assert a.bottom_right is None

    def test_diagonal_neighbours_are_one_distance_apart(self):
        """Every diagonal link spans exactly D."""
        lattice = build_lattice(5, 6, 0.5)
        for a in lattice.anchors:
            for idx in (a.top_left, a.top_right, a.bottom_left, a.bottom_right):
                if idx is None:
                    continue
                b = lattice.anchors[idx]
                assert math.hypot(b.x - a.x, b.y - a.y) == pytest.approx(0.5)


# =============================================================================
# Triangles
# =============================================================================

class TestTriangles:
    """Triangle detection, labelling and adjacency."""

    def test_three_by_three_scenario(self):
        """3x3 grid gives 8 triangles and anchor (1,1) anchors top and bottom triangles."""
        lattice = build_lattice(3, 3, 1.0, 0.0)
        assert len(lattice.triangles) == 8
        centre = lattice.anchor_at(1, 1)
        assert centre.tri_top is not None
        assert centre.tri_bottom is not None
        assert len(lattice.triangles[0].position) == 9

    @pytest.mark.parametrize("rows,cols", [(2, 2), (3, 3), (4, 5), (7, 3), (10, 12)])
    def test_triangle_count(self, rows, cols):
        """A full grid yields 2*(R-1)*(C-1) triangles."""
        lattice = build_lattice(rows, cols, 1.0)
        assert len(lattice.triangles) == 2 * (rows - 1) * (cols - 1)

    def test_indices_match_positions(self):
        """Triangle.index is its position in the list."""
        lattice = build_lattice(5, 5, 1.0)
        assert [t.index for t in lattice.triangles] == list(range(len(lattice.triangles)))

    @pytest.mark.parametrize("rows,cols", [(2, 2), (3, 3), (6, 9)])
    def test_corner_labelling(self, rows, cols):
        """Left and right anchors always set; exactly one tip anchor."""
        lattice = build_lattice(rows, cols, 1.0)
        for tri in lattice.triangles:
            assert tri.a_left is not None and tri.a_right is not None
            assert (tri.a_top is None) != (tri.a_bottom is None)

    def test_up_triangles_have_bottom_back_link_only(self):
        """Up triangles never use the top slot, down triangles never the bottom one."""
        lattice = build_lattice(6, 6, 1.0)
        for tri in lattice.triangles:
            if tri.points_up:
                assert tri.t_top is None
                assert tri.back_slot == SLOT_BOTTOM
            else:
                assert tri.t_bottom is None
                assert tri.back_slot == SLOT_TOP

    @pytest.mark.parametrize("rows,cols", [(2, 2), (3, 3), (8, 11)])
    def test_adjacency_symmetric(self, rows, cols):
        """Every neighbour link has a link pointing back."""
        lattice = build_lattice(rows, cols, 1.0)
        tris = lattice.triangles
        for tri in tris:
            for slot in (SLOT_LEFT, SLOT_RIGHT, SLOT_TOP, SLOT_BOTTOM):
                other = tri.neighbor(slot)
                if other is None:
                    continue
                back = [tris[other].neighbor(s) for s in (SLOT_LEFT, SLOT_RIGHT, SLOT_TOP, SLOT_BOTTOM)]
                assert tri.index in back

    def test_left_right_and_back_pairing(self):
        """Left links return through right links and back links through back links."""
        lattice = build_lattice(6, 7, 1.0)
        tris = lattice.triangles
        for tri in tris:
            if tri.t_left is not None:
                assert tris[tri.t_left].t_right == tri.index
            back = tri.neighbor(tri.back_slot)
            if back is not None:
                other = tris[back]
                assert other.neighbor(other.back_slot) == tri.index

    def test_neighbours_share_an_edge(self):
        """Adjacent triangles share exactly two anchors."""
        lattice = build_lattice(5, 5, 1.0)
        tris = lattice.triangles

        def corners(t):
            return {t.a_left, t.a_right, t.tip_anchor}

        for tri in tris:
            for slot in tri.neighbor_slots():
                other = tri.neighbor(slot)
                if other is not None:
                    assert len(corners(tri) & corners(tris[other])) == 2

    def test_interior_triangles_have_three_neighbours(self):
        """Triangles away from the border see all three edges populated."""
        lattice = build_lattice(8, 8, 1.0)
        full = [t for t in lattice.triangles if all(t.neighbor(s) is not None for s in t.neighbor_slots())]
        assert len(full) > len(lattice.triangles) // 2

    def test_build_is_deterministic(self):
        """Two builds with the same inputs are identical."""
        a = build_lattice(6, 6, 0.3, 0.02)
        b = build_lattice(6, 6, 0.3, 0.02)
        assert a.triangles == b.triangles
        assert a.anchors == b.anchors


# =============================================================================
# Positions
# =============================================================================

class TestPositions:
    """Vertex positions, centroids and the global centre."""

    def test_first_triangle_vertices(self):
        """Unpadded up triangle lists tip, right, left with z = 0."""
        lattice = build_lattice(3, 3, 1.0, 0.0)
        tri = lattice.triangles[0]
        assert tri.points_up
        h = math.sin(math.pi / 3)
        assert tri.position == pytest.approx((0.5, h, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.0))

    def test_centroid_is_vertex_mean(self):
        """center_x/center_y are the mean of the three vertices."""
        lattice = build_lattice(4, 4, 1.0, 0.1)
        for tri in lattice.triangles:
            xs = [v[0] for v in _vertices(tri)]
            ys = [v[1] for v in _vertices(tri)]
            assert tri.center_x == pytest.approx(sum(xs) / 3)
            assert tri.center_y == pytest.approx(sum(ys) / 3)

    def test_global_centre_is_half_far_corner(self):
        """The centre is half the far-corner anchor, not the anchor centroid."""
        lattice = build_lattice(3, 3, 1.0)
        far = lattice.anchor_at(2, 2)
        assert lattice.center == pytest.approx((far.x / 2, far.y / 2))
        tri = lattice.triangles[3]
        assert tri.global_offset_x == pytest.approx(tri.center_x - far.x / 2)
        assert tri.global_offset_y == pytest.approx(tri.center_y - far.y / 2)

    @pytest.mark.parametrize("padding", [0.01, 0.1, 0.3, 0.49])
    def test_padded_centroid_inside_unpadded_triangle(self, padding):
        """Padding keeps the centroid strictly inside the original triangle."""
        padded = build_lattice(4, 4, 1.0, padding)
        plain = build_lattice(4, 4, 1.0, 0.0)
        for tri, ref in zip(padded.triangles, plain.triangles):
            assert _inside((tri.center_x, tri.center_y), _vertices(ref))

    def test_padding_shrinks_edges(self):
        """Padded edges are shorter than the lattice distance."""
        lattice = build_lattice(3, 3, 1.0, 0.1)
        verts = _vertices(lattice.triangles[0])
        for (x1, y1), (x2, y2) in zip(verts, verts[1:] + verts[:1]):
            assert math.hypot(x2 - x1, y2 - y1) < 1.0


# =============================================================================
# Degenerate input
# =============================================================================

class TestDegenerate:
    """Small or invalid sizes degrade instead of failing."""

    @pytest.mark.parametrize("rows,cols", [(0, 0), (0, 5), (5, 0), (-3, 4), (1, 1), (1, 8), (8, 1)])
    def test_no_triangles(self, rows, cols):
        """Fewer than two rows or columns yields no triangles."""
        lattice = build_lattice(rows, cols, 1.0)
        assert lattice.triangles == []

    def test_empty_lattice_centre(self):
        """An empty lattice keeps the origin as its centre."""
        lattice = build_lattice(0, 0)
        assert lattice.anchors == []
        assert lattice.center == (0.0, 0.0)

    def test_anchor_at_out_of_range(self):
        """Out-of-range lookups return None."""
        lattice = build_lattice(2, 2)
        assert lattice.anchor_at(2, 0) is None
        assert lattice.anchor_at(0, -1) is None


# =============================================================================
# Buffers
# =============================================================================

class TestBuffers:
    """Flat position and colour buffers."""

    def test_sizes_and_dtype(self):
        """Both buffers hold 9 float32 values per triangle."""
        lattice = build_lattice(4, 4, 1.0)
        positions, colors = allocate_buffers(lattice)
        assert positions.shape == (len(lattice.triangles) * 9,)
        assert colors.shape == positions.shape
        assert positions.dtype == np.float32

    def test_positions_copied_and_colors_black(self):
        """Positions mirror each triangle; colours start black."""
        lattice = build_lattice(3, 4, 0.5, 0.05)
        positions, colors = allocate_buffers(lattice)
        for tri in lattice.triangles:
            np.testing.assert_allclose(positions[tri.index * 9:tri.index * 9 + 9], tri.position, rtol=1e-6)
        assert not colors.any()

    def test_empty_lattice_buffers(self):
        """No triangles means empty buffers."""
        positions, colors = allocate_buffers(Lattice(rows=0, cols=0, distance=1.0, padding=0.0))
        assert positions.size == 0 and colors.size == 0
