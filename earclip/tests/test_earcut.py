"""Tests for the ear-clipping triangulator."""

import warnings

import numpy as np
import pytest

from earclip import TriangulationWarning, deviation, earcut, has_cupy, triangulate
from earclip._predicates import Z_ORDER_SCALE
from earclip._ring import NEXT, arena_capacity, build_ring, index_curve, new_arena
from earclip.earcut import is_ear, is_ear_hashed


def _circle(n, radius=50.0):
    t = np.linspace(0, 2 * np.pi, n, endpoint=False)
    return np.column_stack([radius * np.cos(t), radius * np.sin(t)]).ravel()


def _star(n_tips, inner=20.0, outer=50.0):
    t = np.linspace(0, 2 * np.pi, 2 * n_tips, endpoint=False)
    r = np.where(np.arange(2 * n_tips) % 2 == 0, outer, inner)
    return np.column_stack([r * np.cos(t), r * np.sin(t)]).ravel()


class TestTriangulate:
    """Tests for triangulate on simple rings."""

    def test_indices_2d(self):
        indices = triangulate([10, 0, 0, 50, 60, 60, 70, 10])
        np.testing.assert_array_equal(indices, [1, 0, 3, 3, 2, 1])

    def test_indices_3d(self):
        """The z coordinate is carried but ignored."""
        indices = triangulate([10, 0, 0, 0, 50, 0, 60, 60, 0, 70, 10, 0], dim=3)
        np.testing.assert_array_equal(indices, [1, 0, 3, 3, 2, 1])

    def test_output_dtype(self):
        indices = triangulate(np.array([0, 0, 1, 0, 0, 1], dtype=np.float32))
        assert indices.dtype == np.int32

    def test_empty(self):
        indices = triangulate([])
        assert indices.dtype == np.int32
        assert len(indices) == 0

    def test_earcut_alias(self):
        verts = [10, 0, 0, 50, 60, 60, 70, 10]
        np.testing.assert_array_equal(earcut(verts), triangulate(verts))

    def test_single_triangle(self):
        indices = triangulate([0, 0, 1, 0, 0, 1])
        assert len(indices) == 3
        assert sorted(indices.tolist()) == [0, 1, 2]

    def test_closed_ring(self):
        """A repeated closing vertex is ignored."""
        verts = [0, 0, 1, 0, 1, 1, 0, 1, 0, 0]
        indices = triangulate(verts)
        assert len(indices) == 6
        assert indices.max() < 4

    def test_too_few_vertices(self):
        assert len(triangulate([0, 0, 1, 1])) == 0

    def test_collinear_ring(self):
        """A zero-area ring produces no triangles and no warning."""
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            indices = triangulate([0, 0, 1, 0, 2, 0, 3, 0])
        assert len(indices) == 0

    @pytest.mark.parametrize("reverse", [False, True])
    def test_winding_independent(self, reverse):
        ring = np.array([0, 0, 4, 0, 4, 3, 2, 1, 0, 3], dtype=np.float64).reshape(-1, 2)
        if reverse:
            ring = ring[::-1]
        verts = ring.ravel()
        indices = triangulate(verts)
        assert len(indices) == 9
        assert deviation(verts, triangles=indices) == pytest.approx(0, abs=1e-12)

    def test_triangles_are_vertex_indices(self):
        verts = _star(6)
        indices = triangulate(verts)
        assert indices.min() >= 0
        assert indices.max() < len(verts) // 2


class TestLargePolygons:
    """Polygons above the hashing threshold use the z-order ear test."""

    def test_circle(self):
        verts = _circle(200)
        indices = triangulate(verts)
        assert len(indices) == (200 - 2) * 3
        assert deviation(verts, triangles=indices) < 1e-12

    def test_star(self):
        verts = _star(100)
        indices = triangulate(verts)
        assert len(indices) == (200 - 2) * 3
        assert deviation(verts, triangles=indices) < 1e-12

    def test_star_3d(self):
        xy = _star(60).reshape(-1, 2)
        verts = np.column_stack([xy, np.arange(len(xy))]).ravel()
        indices = triangulate(verts, dim=3)
        assert len(indices) == (120 - 2) * 3
        assert deviation(verts, dim=3, triangles=indices) < 1e-12

    @pytest.mark.parametrize("seed", range(5))
    def test_hashed_ear_test_matches_brute_force(self, seed):
        rng = np.random.default_rng(seed)
        n = 150
        t = np.sort(rng.uniform(0, 2 * np.pi, n))
        r = rng.uniform(10.0, 50.0, n)
        data = np.column_stack([r * np.cos(t), r * np.sin(t)]).ravel()

        nodes, xy, top = new_arena(arena_capacity(n, 0))
        start = build_ring(data, 0, len(data), 2, True, nodes, xy, top)
        min_x, min_y = data[0::2].min(), data[1::2].min()
        size = max(data[0::2].max() - min_x, data[1::2].max() - min_y)
        inv_size = Z_ORDER_SCALE / size
        index_curve(nodes, xy, start, min_x, min_y, inv_size)

        p = start
        for _ in range(n):
            assert is_ear(nodes, xy, p) == is_ear_hashed(nodes, xy, p, min_x, min_y, inv_size)
            p = nodes[p, NEXT]
        assert p == start


class TestDegenerateInput:
    """Tests for self-touching and unbridgeable input."""

    def test_infinite_loop(self):
        """Coincident points between the outer ring and hole terminate."""
        indices = triangulate(
            [1, 2, 2, 2, 1, 2, 1, 1, 1, 2, 4, 1, 5, 1, 3, 2, 4, 2, 4, 1], [5], 2)
        np.testing.assert_array_equal(indices, [8, 5, 6])

    def test_hole_outside_outer_ring_warns(self):
        outer = [10, 0, 20, 0, 20, 10, 10, 10]
        hole = [0, 2, 2, 2, 2, 4, 0, 4]
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            indices = triangulate(outer + hole, [4])
            skipped = [x for x in w if issubclass(x.category, TriangulationWarning)]
            assert len(skipped) == 1
            assert "1 hole(s)" in str(skipped[0].message)
        # The outer ring is still triangulated
        assert len(indices) == 6
        assert indices.max() < 4

    def test_valid_polygon_does_not_warn(self):
        verts = [0, 0, 10, 0, 10, 10, 0, 10, 2, 2, 8, 2, 8, 8, 2, 8]
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            triangulate(verts, [4])
        assert not [w for w in caught if issubclass(w.category, TriangulationWarning)]


class TestValidation:
    """Tests for argument validation."""

    def test_bad_dim(self):
        with pytest.raises(ValueError, match="dim"):
            triangulate([0, 0, 0, 0], dim=4)

    def test_buffer_not_multiple_of_dim(self):
        with pytest.raises(ValueError, match="multiple"):
            triangulate([0, 0, 1, 0, 1])

    def test_hole_index_out_of_range(self):
        with pytest.raises(ValueError, match="hole_indices"):
            triangulate([0, 0, 1, 0, 1, 1, 0, 1], [5])

    def test_hole_indices_decreasing(self):
        verts = [0, 0, 10, 0, 10, 10, 0, 10, 1, 1, 2, 1, 2, 2, 3, 3, 4, 3, 4, 4]
        with pytest.raises(ValueError, match="hole_indices"):
            triangulate(verts, [7, 4])


@pytest.mark.skipif(not has_cupy, reason="cupy not available")
class TestCupyInput:
    """Device arrays are copied to the host."""

    def test_cupy_vertices(self):
        import cupy
        verts = cupy.asarray([10, 0, 0, 50, 60, 60, 70, 10], dtype=cupy.float64)
        indices = triangulate(verts)
        assert isinstance(indices, np.ndarray)
        np.testing.assert_array_equal(indices, [1, 0, 3, 3, 2, 1])
