"""Ear-clipping triangulation of polygons with holes.

The polygon is turned into a single ring (holes are bridged into the outer
boundary) and ears are cut off one at a time.  When no ear can be found the
remaining ring goes through three escalating passes: collinear point
filtering, curing of small self-intersections, and finally splitting the
ring along a valid diagonal.  Every pass shrinks the problem, so the
algorithm always terminates, even on self-intersecting input.

Rings live in a node arena (see ``_ring``) and the passes are driven from
an explicit work stack, so the call depth does not depend on the input.
"""

import warnings

import numba as nb
import numpy as np

from ._backend import to_numpy
from ._holes import merge_holes
from ._predicates import Z_ORDER_SCALE, area, equals, intersects, point_in_triangle, z_order
from ._ring import (
    IDX,
    NEXT,
    NEXT_Z,
    PREV,
    PREV_Z,
    Z,
    arena_capacity,
    build_ring,
    filter_points,
    index_curve,
    is_valid_diagonal,
    locally_inside,
    new_arena,
    remove_node,
    split_ring,
)

# Polygons with more vertices than this use the z-order accelerated ear test.
HASH_THRESHOLD = 80


class TriangulationWarning(UserWarning):
    """Part of the polygon could not be triangulated."""


@nb.jit(nopython=True)
def _emit(triangles, cursor, a, b, c):
    k = cursor[0]
    triangles[k] = a
    triangles[k + 1] = b
    triangles[k + 2] = c
    cursor[0] = k + 3


@nb.jit(nopython=True)
def _blocks_ear(nodes, xy, p, ax, ay, bx, by, cx, cy, x0, y0, x1, y1):
    """Check whether node ``p`` sits inside the candidate ear as a convex corner."""
    px = xy[p, 0]
    py = xy[p, 1]
    return (px >= x0 and px <= x1 and py >= y0 and py <= y1
            and point_in_triangle(ax, ay, bx, by, cx, cy, px, py)
            and area(xy, nodes[p, PREV], p, nodes[p, NEXT]) >= 0)


@nb.jit(nopython=True)
def is_ear(nodes, xy, ear):
    """Check whether ``ear`` and its neighbours form an empty convex triangle."""
    a = nodes[ear, PREV]
    c = nodes[ear, NEXT]

    if area(xy, a, ear, c) >= 0:
        # Reflex corner
        return False

    ax, ay = xy[a, 0], xy[a, 1]
    bx, by = xy[ear, 0], xy[ear, 1]
    cx, cy = xy[c, 0], xy[c, 1]

    x0 = min(ax, bx, cx)
    y0 = min(ay, by, cy)
    x1 = max(ax, bx, cx)
    y1 = max(ay, by, cy)

    p = nodes[c, NEXT]
    while p != a:
        if _blocks_ear(nodes, xy, p, ax, ay, bx, by, cx, cy, x0, y0, x1, y1):
            return False
        p = nodes[p, NEXT]

    return True


@nb.jit(nopython=True)
def is_ear_hashed(nodes, xy, ear, min_x, min_y, inv_size):
    """Same answer as :func:`is_ear`, visiting only nodes in the z-range.

    The z-order list is walked outwards from ``ear`` in both directions
    while keys stay within the keys of the triangle's bounding box.
    """
    a = nodes[ear, PREV]
    c = nodes[ear, NEXT]

    if area(xy, a, ear, c) >= 0:
        return False

    ax, ay = xy[a, 0], xy[a, 1]
    bx, by = xy[ear, 0], xy[ear, 1]
    cx, cy = xy[c, 0], xy[c, 1]

    x0 = min(ax, bx, cx)
    y0 = min(ay, by, cy)
    x1 = max(ax, bx, cx)
    y1 = max(ay, by, cy)

    min_z = z_order(x0, y0, min_x, min_y, inv_size)
    max_z = z_order(x1, y1, min_x, min_y, inv_size)

    p = nodes[ear, PREV_Z]
    n = nodes[ear, NEXT_Z]

    while p >= 0 and nodes[p, Z] >= min_z and n >= 0 and nodes[n, Z] <= max_z:
        if p != a and p != c and _blocks_ear(nodes, xy, p, ax, ay, bx, by, cx, cy, x0, y0, x1, y1):
            return False
        p = nodes[p, PREV_Z]

        if n != a and n != c and _blocks_ear(nodes, xy, n, ax, ay, bx, by, cx, cy, x0, y0, x1, y1):
            return False
        n = nodes[n, NEXT_Z]

    while p >= 0 and nodes[p, Z] >= min_z:
        if p != a and p != c and _blocks_ear(nodes, xy, p, ax, ay, bx, by, cx, cy, x0, y0, x1, y1):
            return False
        p = nodes[p, PREV_Z]

    while n >= 0 and nodes[n, Z] <= max_z:
        if n != a and n != c and _blocks_ear(nodes, xy, n, ax, ay, bx, by, cx, cy, x0, y0, x1, y1):
            return False
        n = nodes[n, NEXT_Z]

    return True


@nb.jit(nopython=True)
def cure_local_intersections(nodes, xy, start, triangles, cursor):
    """Cut off small bow-ties where two consecutive edges cross.

    For a node ``p`` with ``a = p.prev`` and ``b = p.next.next``, a crossing
    of ``a-p`` and ``p.next-b`` is resolved by emitting ``a, p, b`` and
    dropping ``p`` and ``p.next``.

    Returns
    -------
    int
        A node on the filtered remainder.
    """
    p = start
    while True:
        a = nodes[p, PREV]
        p_next = nodes[p, NEXT]
        b = nodes[p_next, NEXT]

        if (not equals(xy, a, b)
                and intersects(xy, a, p, p_next, b)
                and locally_inside(nodes, xy, a, b)
                and locally_inside(nodes, xy, b, a)):
            _emit(triangles, cursor, nodes[a, IDX], nodes[p, IDX], nodes[b, IDX])

            remove_node(nodes, p)
            remove_node(nodes, p_next)

            p = b
            start = b
        p = nodes[p, NEXT]
        if p == start:
            break

    return filter_points(nodes, xy, p, p)


@nb.jit(nopython=True)
def split_earcut(nodes, xy, top, start):
    """Split the ring along the first valid diagonal found.

    Returns
    -------
    (int, int)
        A node on each half, or ``(-1, -1)`` when no diagonal exists.
    """
    a = start
    while True:
        b = nodes[nodes[a, NEXT], NEXT]
        while b != nodes[a, PREV]:
            if nodes[a, IDX] != nodes[b, IDX] and is_valid_diagonal(nodes, xy, a, b):
                c = split_ring(nodes, xy, top, a, b)

                # Filter collinear points around the cuts
                a = filter_points(nodes, xy, a, nodes[a, NEXT])
                c = filter_points(nodes, xy, c, nodes[c, NEXT])
                return a, c
            b = nodes[b, NEXT]
        a = nodes[a, NEXT]
        if a == start:
            break

    return -1, -1


@nb.jit(nopython=True)
def clip_rings(start, nodes, xy, top, min_x, min_y, inv_size, triangles, cursor, stats):
    """Triangulate the ring at ``start`` and every ring split off from it.

    Work items are ``(ring, pass)`` pairs:

    * pass 0 slices ears (indexing the ring in z-order first when
      ``inv_size`` is non-zero);
    * pass 1 slices again after filtering collinear points;
    * pass 2 slices after curing local self-intersections;
    * a ring still stuck in pass 2 is split in two and both halves restart
      at pass 0.  ``stats[1]`` counts rings with no valid split.
    """
    capacity = len(nodes) + 1
    stack_ring = np.empty(capacity, dtype=np.int64)
    stack_pass = np.empty(capacity, dtype=np.int64)
    stack_ring[0] = start
    stack_pass[0] = 0
    depth = 1

    while depth > 0:
        depth -= 1
        ear = stack_ring[depth]
        stage = stack_pass[depth]

        if stage == 0 and inv_size != 0:
            index_curve(nodes, xy, ear, min_x, min_y, inv_size)

        stop = ear

        while nodes[ear, PREV] != nodes[ear, NEXT]:
            prv = nodes[ear, PREV]
            nxt = nodes[ear, NEXT]

            if inv_size != 0:
                found = is_ear_hashed(nodes, xy, ear, min_x, min_y, inv_size)
            else:
                found = is_ear(nodes, xy, ear)

            if found:
                _emit(triangles, cursor, nodes[prv, IDX], nodes[ear, IDX], nodes[nxt, IDX])
                remove_node(nodes, ear)

                # Skipping the next vertex leads to fewer sliver triangles
                ear = nodes[nxt, NEXT]
                stop = ear
                continue

            ear = nxt

            if ear == stop:
                # A full lap without ears: escalate
                if stage == 0:
                    stack_ring[depth] = filter_points(nodes, xy, ear, ear)
                    stack_pass[depth] = 1
                    depth += 1
                elif stage == 1:
                    ear = cure_local_intersections(
                        nodes, xy, filter_points(nodes, xy, ear, ear), triangles, cursor)
                    stack_ring[depth] = ear
                    stack_pass[depth] = 2
                    depth += 1
                else:
                    a, c = split_earcut(nodes, xy, top, ear)
                    if a < 0:
                        stats[1] += 1
                    else:
                        # First half on top so it is finished before the second
                        stack_ring[depth] = c
                        stack_pass[depth] = 0
                        stack_ring[depth + 1] = a
                        stack_pass[depth + 1] = 0
                        depth += 2
                break


@nb.jit(nopython=True)
def _earcut(data, hole_indices, dim):
    """Triangulate a flat coordinate buffer.

    Returns
    -------
    triangles : np.ndarray
        int64 vertex indices, three per triangle.
    stats : np.ndarray
        ``[skipped_holes, abandoned_rings]``.
    """
    n_holes = len(hole_indices)
    capacity = arena_capacity(len(data) // dim, n_holes)
    nodes, xy, top = new_arena(capacity)
    triangles = np.empty(3 * capacity, dtype=np.int64)
    cursor = np.zeros(1, dtype=np.int64)
    stats = np.zeros(2, dtype=np.int64)

    if n_holes > 0:
        outer_len = hole_indices[0] * dim
    else:
        outer_len = len(data)

    outer = build_ring(data, 0, outer_len, dim, True, nodes, xy, top)
    if outer < 0 or nodes[outer, NEXT] == nodes[outer, PREV]:
        return triangles[:0].copy(), stats

    if n_holes > 0:
        outer = merge_holes(data, hole_indices, outer, dim, nodes, xy, top, stats)

    min_x = 0.0
    min_y = 0.0
    inv_size = 0.0

    # Bounding box of the outer ring for the z-order keys
    if len(data) > HASH_THRESHOLD * dim:
        min_x = max_x = data[0]
        min_y = max_y = data[1]
        for i in range(dim, outer_len, dim):
            x = data[i]
            y = data[i + 1]
            if x < min_x:
                min_x = x
            if y < min_y:
                min_y = y
            if x > max_x:
                max_x = x
            if y > max_y:
                max_y = y

        size = max(max_x - min_x, max_y - min_y)
        if size != 0:
            inv_size = Z_ORDER_SCALE / size

    clip_rings(outer, nodes, xy, top, min_x, min_y, inv_size, triangles, cursor, stats)

    return triangles[:cursor[0]].copy(), stats


def triangulate(vertices, hole_indices=None, dim=2):
    """Triangulate a polygon given as a flat coordinate buffer.

    Parameters
    ----------
    vertices : array-like
        Flat coordinates, ``dim`` values per vertex.  The outer ring comes
        first, followed by the holes.  Rings may be open or closed and may
        wind either way.  Only the first two coordinates of each vertex are
        used for triangulation.
    hole_indices : array-like of int, optional
        Vertex index at which each hole starts.  Default is no holes.
    dim : int, optional
        Coordinates per vertex, 2 or 3.  Default is 2.

    Returns
    -------
    numpy.ndarray
        Flattened int32 array of triangle indices with shape (M*3,),
        referencing vertices (not raw offsets) of the input buffer.

    Raises
    ------
    ValueError
        If ``dim`` is not 2 or 3, the buffer length is not a multiple of
        ``dim``, or hole indices are not non-decreasing vertex indices.

    Warns
    -----
    TriangulationWarning
        If a hole could not be bridged to the outer ring, or part of a
        degenerate polygon had to be left out.

    Examples
    --------
    >>> triangulate([10, 0, 0, 50, 60, 60, 70, 10])
    array([1, 0, 3, 3, 2, 1], dtype=int32)

    A square with a square hole:

    >>> verts = [0, 0, 10, 0, 10, 10, 0, 10, 2, 2, 8, 2, 8, 8, 2, 8]
    >>> len(triangulate(verts, [4])) // 3
    8
    """
    if dim not in (2, 3):
        raise ValueError(f"dim must be 2 or 3, got {dim}")

    data = to_numpy(vertices, np.float64)
    if data.size % dim != 0:
        raise ValueError(
            f"Vertex buffer length ({data.size}) is not a multiple of dim ({dim})"
        )
    n_vertices = data.size // dim

    if hole_indices is None:
        holes = np.empty(0, dtype=np.int64)
    else:
        holes = to_numpy(hole_indices, np.int64)
    if holes.size > 0:
        if holes[0] < 0 or holes[-1] > n_vertices or np.any(np.diff(holes) < 0):
            raise ValueError(
                "hole_indices must be non-decreasing vertex indices "
                f"in [0, {n_vertices}]"
            )

    if n_vertices == 0:
        return np.empty(0, dtype=np.int32)

    triangles, stats = _earcut(data, holes, dim)

    skipped_holes, abandoned = int(stats[0]), int(stats[1])
    if skipped_holes or abandoned:
        warnings.warn(
            f"Incomplete triangulation: {skipped_holes} hole(s) could not be "
            f"bridged to the outer ring and {abandoned} degenerate ring "
            f"part(s) were left out.",
            TriangulationWarning,
            stacklevel=2,
        )

    return triangles.astype(np.int32)


earcut = triangulate
