"""Hole elimination: splice every hole ring into the outer ring.

Each hole is connected to the outer ring through a bridge found with
David Eberly's visibility search ("Triangulation by Ear Clipping",
Geometric Tools), processed left to right so no bridge crosses a hole that
is still to be merged.
"""

import numba as nb
import numpy as np

from ._predicates import point_in_triangle
from ._ring import (
    NEXT,
    STEINER,
    build_ring,
    filter_points,
    get_leftmost,
    locally_inside,
    sector_contains_sector,
    split_ring,
)


@nb.jit(nopython=True)
def merge_holes(data, hole_indices, outer, dim, nodes, xy, top, stats):
    """Link every hole into the outer ring.

    Parameters
    ----------
    data : np.ndarray
        Flat float64 coordinate buffer.
    hole_indices : np.ndarray
        int64 start vertex of every hole.
    outer : int
        Handle of a node on the outer ring.
    dim : int
        Coordinates per vertex.
    nodes, xy, top : np.ndarray
        Node arena.
    stats : np.ndarray
        Diagnostic counters; ``stats[0]`` counts holes left out because no
        bridge was found.

    Returns
    -------
    int
        Handle of a node on the merged ring.
    """
    n_holes = len(hole_indices)
    queue = np.empty(n_holes, dtype=np.int64)
    keys = np.empty(n_holes, dtype=np.float64)
    count = 0

    for i in range(n_holes):
        start = hole_indices[i] * dim
        if i < n_holes - 1:
            end = hole_indices[i + 1] * dim
        else:
            end = len(data)
        ring = build_ring(data, start, end, dim, False, nodes, xy, top)
        if ring < 0:
            continue
        if ring == nodes[ring, NEXT]:
            nodes[ring, STEINER] = 1
        leftmost = get_leftmost(nodes, xy, ring)
        queue[count] = leftmost
        keys[count] = xy[leftmost, 0]
        count += 1

    order = np.argsort(keys[:count], kind='mergesort')
    for k in range(count):
        outer = eliminate_hole(nodes, xy, top, queue[order[k]], outer, stats)

    return outer


@nb.jit(nopython=True)
def eliminate_hole(nodes, xy, top, hole, outer, stats):
    """Bridge one hole into the outer ring and clean up around the cut."""
    bridge = find_hole_bridge(nodes, xy, hole, outer)
    if bridge < 0:
        stats[0] += 1
        return outer

    bridge_reverse = split_ring(nodes, xy, top, bridge, hole)

    filter_points(nodes, xy, bridge_reverse, nodes[bridge_reverse, NEXT])
    return filter_points(nodes, xy, bridge, nodes[bridge, NEXT])


@nb.jit(nopython=True)
def find_hole_bridge(nodes, xy, hole, outer):
    """Outer-ring node that ``hole`` (its leftmost node) can be joined to.

    Returns -1 when no outer edge lies to the left of the hole.
    """
    hx = xy[hole, 0]
    hy = xy[hole, 1]
    qx = -np.inf
    m = -1

    # Find the segment hit by a ray cast left from the hole point; its
    # endpoint with the lesser x is the candidate connection.
    p = outer
    while True:
        q = nodes[p, NEXT]
        if hy <= xy[p, 1] and hy >= xy[q, 1] and xy[q, 1] != xy[p, 1]:
            x = xy[p, 0] + (hy - xy[p, 1]) * (xy[q, 0] - xy[p, 0]) / (xy[q, 1] - xy[p, 1])
            if x <= hx and x > qx:
                qx = x
                if xy[p, 0] < xy[q, 0]:
                    m = p
                else:
                    m = q
                if x == hx:
                    # Hole touches the outer segment
                    return m
        p = q
        if p == outer:
            break

    if m < 0:
        return -1

    # Points inside the triangle (hole point, ray hit, candidate) block the
    # candidate; the blocking point with the smallest angle to the ray wins.
    stop = m
    mx = xy[m, 0]
    my = xy[m, 1]
    tan_min = np.inf

    if hy < my:
        tx0, tx2 = hx, qx
    else:
        tx0, tx2 = qx, hx

    p = m
    while True:
        px = xy[p, 0]
        py = xy[p, 1]
        if (hx >= px and px >= mx and hx != px
                and point_in_triangle(tx0, hy, mx, my, tx2, hy, px, py)):
            tan = abs(hy - py) / (hx - px)

            if locally_inside(nodes, xy, p, hole) and (
                    tan < tan_min
                    or (tan == tan_min and (
                        px > xy[m, 0]
                        or (px == xy[m, 0] and sector_contains_sector(nodes, xy, m, p))))):
                m = p
                tan_min = tan

        p = nodes[p, NEXT]
        if p == stop:
            break

    return m
