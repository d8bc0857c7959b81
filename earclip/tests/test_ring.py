"""Tests for the node arena and ring primitives."""

import numpy as np
import pytest

from earclip._predicates import signed_area, z_order
from earclip._ring import (
    IDX,
    NEXT,
    NEXT_Z,
    PREV,
    PREV_Z,
    Z,
    arena_capacity,
    build_ring,
    filter_points,
    get_leftmost,
    new_arena,
    sort_linked,
    split_ring,
)

SQUARE = np.array([0, 0, 1, 0, 1, 1, 0, 1], dtype=np.float64)


def _ring_indices(nodes, start):
    out = []
    p = start
    while True:
        out.append(int(nodes[p, IDX]))
        p = nodes[p, NEXT]
        if p == start:
            break
    return out


def _ring_size(nodes, start):
    return len(_ring_indices(nodes, start))


def _build(data, clockwise=True, dim=2):
    nodes, xy, top = new_arena(arena_capacity(len(data) // dim, 0))
    last = build_ring(data, 0, len(data), dim, clockwise, nodes, xy, top)
    return nodes, xy, top, last


class TestSignedArea:

    def test_square(self):
        assert signed_area(SQUARE, 0, len(SQUARE), 2) == 2.0

    def test_reversed_square(self):
        reverse = SQUARE.reshape(-1, 2)[::-1].ravel().copy()
        assert signed_area(reverse, 0, len(reverse), 2) == -2.0


class TestBuildRing:
    """Tests for build_ring."""

    def test_forward(self):
        nodes, xy, top, last = _build(SQUARE, clockwise=True)
        assert top[0] == 4
        assert _ring_indices(nodes, last) == [3, 0, 1, 2]

    def test_backward(self):
        nodes, xy, top, last = _build(SQUARE, clockwise=False)
        assert _ring_indices(nodes, last) == [0, 3, 2, 1]

    def test_prev_links_mirror_next(self):
        nodes, xy, top, last = _build(SQUARE)
        p = last
        for _ in range(4):
            assert nodes[nodes[p, NEXT], PREV] == p
            p = nodes[p, NEXT]

    def test_drops_closing_vertex(self):
        closed = np.append(SQUARE, [0.0, 0.0])
        nodes, xy, top, last = _build(closed)
        assert _ring_size(nodes, last) == 4

    def test_empty_range(self):
        nodes, xy, top = new_arena(4)
        assert build_ring(SQUARE, 0, 0, 2, True, nodes, xy, top) == -1

    def test_3d_stride(self):
        data = np.array([0, 0, 5, 1, 0, 6, 1, 1, 7, 0, 1, 8], dtype=np.float64)
        nodes, xy, top, last = _build(data, dim=3)
        assert _ring_size(nodes, last) == 4
        np.testing.assert_array_equal(xy[:4], SQUARE.reshape(-1, 2))


class TestFilterPoints:
    """Tests for filter_points."""

    def test_removes_collinear(self):
        data = np.array([0, 0, 1, 0, 2, 0, 2, 2, 0, 2], dtype=np.float64)
        nodes, xy, top, last = _build(data)
        end = filter_points(nodes, xy, last, last)
        indices = _ring_indices(nodes, end)
        assert len(indices) == 4
        assert 1 not in indices

    def test_removes_duplicates(self):
        data = np.array([0, 0, 1, 0, 1, 0, 1, 1, 0, 1], dtype=np.float64)
        nodes, xy, top, last = _build(data)
        end = filter_points(nodes, xy, last, last)
        assert _ring_size(nodes, end) == 4

    def test_keeps_convex_ring(self):
        nodes, xy, top, last = _build(SQUARE)
        end = filter_points(nodes, xy, last, last)
        assert end == last
        assert _ring_size(nodes, end) == 4


class TestSplitRing:
    """Tests for split_ring."""

    def test_split_square(self):
        nodes, xy, top = new_arena(arena_capacity(4, 0))
        build_ring(SQUARE, 0, 8, 2, True, nodes, xy, top)
        a, b = 0, 2

        b2 = split_ring(nodes, xy, top, a, b)

        assert top[0] == 6
        assert nodes[b2, IDX] == 2
        assert _ring_indices(nodes, a) == [0, 2, 3]
        assert _ring_indices(nodes, b2) == [2, 0, 1]
        # Duplicates share coordinates with their source
        np.testing.assert_array_equal(xy[b2], xy[b])


class TestLeftmost:

    def test_lowest_y_on_ties(self):
        data = np.array([0, 5, 3, 0, 3, 6, 0, 2], dtype=np.float64)
        nodes, xy, top, last = _build(data)
        leftmost = get_leftmost(nodes, xy, last)
        assert nodes[leftmost, IDX] == 3


class TestZOrder:
    """Tests for z_order keys and the z-order list sort."""

    @pytest.mark.parametrize("x, y, expected", [
        (0, 0, 0),
        (1, 0, 1),
        (0, 1, 2),
        (1, 1, 3),
        (2, 0, 4),
        (3, 3, 15),
    ])
    def test_interleaving(self, x, y, expected):
        assert z_order(float(x), float(y), 0.0, 0.0, 1.0) == expected

    def test_scale_and_origin(self):
        # (15, 25) from (10, 20) at scale 0.5 lands on cell (2, 2)
        assert z_order(15.0, 25.0, 10.0, 20.0, 0.5) == z_order(2.0, 2.0, 0.0, 0.0, 1.0)

    def test_sort_linked(self):
        keys = [5, 3, 4, 1, 2, 3]
        nodes, xy, top = new_arena(len(keys))
        for i, key in enumerate(keys):
            nodes[i, IDX] = i
            nodes[i, Z] = key
            nodes[i, PREV_Z] = i - 1
            nodes[i, NEXT_Z] = i + 1 if i < len(keys) - 1 else -1

        head = sort_linked(nodes, 0)

        order = []
        p = head
        while p >= 0:
            order.append(int(p))
            p = nodes[p, NEXT_Z]
        assert [keys[i] for i in order] == sorted(keys)
        # Equal keys keep their order
        assert order.index(1) < order.index(5)
        assert nodes[head, PREV_Z] == -1
