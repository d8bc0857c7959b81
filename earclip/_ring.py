"""Polygon rings stored in a node arena.

A ring is a circular doubly linked list of vertices.  Nodes live in two
tables sized once per triangulation call:

``nodes``
    ``(capacity, NODE_FIELDS)`` int64 table.  Columns are addressed with the
    ``IDX``/``PREV``/``NEXT``/``PREV_Z``/``NEXT_Z``/``Z``/``STEINER``
    constants.  Links hold node handles (row numbers), ``-1`` is null.
``xy``
    ``(capacity, 2)`` float64 table with the planar coordinates of each node.

A third one-element array, ``top``, holds the number of allocated rows.
Rows are never reused; callers size the arena for the worst case.

Besides ring order every node carries a second, linear list ordered by its
z-order key (``PREV_Z``/``NEXT_Z``) that the hashed ear test walks.
"""

import numba as nb
import numpy as np

from ._predicates import area, equals, intersects, signed_area, z_order

IDX = 0
PREV = 1
NEXT = 2
PREV_Z = 3
NEXT_Z = 4
Z = 5
STEINER = 6
NODE_FIELDS = 7


@nb.jit(nopython=True)
def arena_capacity(n_vertices, n_holes):
    """Upper bound on the nodes one triangulation call can create.

    Every hole bridge and every polygon split duplicates two nodes, and the
    number of splits is bounded by the number of ring nodes.
    """
    return 3 * (n_vertices + 2 * n_holes) + 3


@nb.jit(nopython=True)
def new_arena(capacity):
    nodes = np.full((capacity, NODE_FIELDS), -1, np.int64)
    xy = np.zeros((capacity, 2), dtype=np.float64)
    top = np.zeros(1, dtype=np.int64)
    return nodes, xy, top


@nb.jit(nopython=True)
def insert_node(nodes, xy, top, i, x, y, last):
    """Allocate a node for vertex ``i`` and link it after ``last``.

    With ``last == -1`` the node forms a ring of its own.
    """
    p = top[0]
    top[0] = p + 1

    nodes[p, IDX] = i
    nodes[p, PREV_Z] = -1
    nodes[p, NEXT_Z] = -1
    nodes[p, Z] = 0
    nodes[p, STEINER] = 0
    xy[p, 0] = x
    xy[p, 1] = y

    if last < 0:
        nodes[p, PREV] = p
        nodes[p, NEXT] = p
    else:
        nxt = nodes[last, NEXT]
        nodes[p, NEXT] = nxt
        nodes[p, PREV] = last
        nodes[nxt, PREV] = p
        nodes[last, NEXT] = p
    return p


@nb.jit(nopython=True)
def remove_node(nodes, p):
    """Unlink ``p`` from its ring and from the z-order list.

    The links stored on ``p`` itself are left untouched, so ``nodes[p, NEXT]``
    still names the former successor.
    """
    prv = nodes[p, PREV]
    nxt = nodes[p, NEXT]
    nodes[nxt, PREV] = prv
    nodes[prv, NEXT] = nxt

    prev_z = nodes[p, PREV_Z]
    next_z = nodes[p, NEXT_Z]
    if prev_z >= 0:
        nodes[prev_z, NEXT_Z] = next_z
    if next_z >= 0:
        nodes[next_z, PREV_Z] = prev_z


@nb.jit(nopython=True)
def build_ring(data, start, end, dim, clockwise, nodes, xy, top):
    """Link the vertices in ``data[start:end]`` into a ring.

    Vertices are visited forwards or backwards so that the ring winds as
    requested.  A closing vertex equal to the first one is dropped.

    Returns
    -------
    int
        Handle of the last inserted node, or -1 for an empty range.
    """
    last = -1

    if clockwise == (signed_area(data, start, end, dim) > 0):
        for i in range(start, end, dim):
            last = insert_node(nodes, xy, top, i // dim, data[i], data[i + 1], last)
    else:
        for i in range(end - dim, start - 1, -dim):
            last = insert_node(nodes, xy, top, i // dim, data[i], data[i + 1], last)

    if last >= 0 and equals(xy, last, nodes[last, NEXT]):
        remove_node(nodes, last)
        last = nodes[last, NEXT]

    return last


@nb.jit(nopython=True)
def filter_points(nodes, xy, start, end):
    """Drop duplicate and collinear nodes, except Steiner points.

    The scan restarts from the predecessor of every removed node and stops
    once a full lap removes nothing or the ring shrinks to a single node.

    Returns
    -------
    int
        ``end``, moved back if the original end node was removed.
    """
    p = start
    while True:
        again = False

        nxt = nodes[p, NEXT]
        if nodes[p, STEINER] == 0 and (
                equals(xy, p, nxt) or area(xy, nodes[p, PREV], p, nxt) == 0):
            remove_node(nodes, p)
            p = nodes[p, PREV]
            end = p
            if p == nodes[p, NEXT]:
                break
            again = True
        else:
            p = nxt

        if not again and p == end:
            break

    return end


@nb.jit(nopython=True)
def split_ring(nodes, xy, top, a, b):
    """Join ``a`` and ``b`` with a two-way bridge.

    ``a`` and ``b`` are duplicated.  Nodes on the same ring end up on two
    separate rings, nodes on different rings (outer ring and hole) end up on
    one.

    Returns
    -------
    int
        The duplicate of ``b``, which sits on the ring holding ``b``'s old
        predecessor.
    """
    a2 = insert_node(nodes, xy, top, nodes[a, IDX], xy[a, 0], xy[a, 1], -1)
    b2 = insert_node(nodes, xy, top, nodes[b, IDX], xy[b, 0], xy[b, 1], -1)
    an = nodes[a, NEXT]
    bp = nodes[b, PREV]

    nodes[a, NEXT] = b
    nodes[b, PREV] = a

    nodes[a2, NEXT] = an
    nodes[an, PREV] = a2

    nodes[b2, NEXT] = a2
    nodes[a2, PREV] = b2

    nodes[bp, NEXT] = b2
    nodes[b2, PREV] = bp

    return b2


@nb.jit(nopython=True)
def get_leftmost(nodes, xy, start):
    """Leftmost node of a ring, lowest y on ties."""
    p = start
    leftmost = start
    while True:
        if xy[p, 0] < xy[leftmost, 0] or (
                xy[p, 0] == xy[leftmost, 0] and xy[p, 1] < xy[leftmost, 1]):
            leftmost = p
        p = nodes[p, NEXT]
        if p == start:
            break
    return leftmost


# ---------------------------------------------------------------------------
# Z-order index
# ---------------------------------------------------------------------------

@nb.jit(nopython=True)
def index_curve(nodes, xy, start, min_x, min_y, inv_size):
    """Key every node of the ring and chain them in ascending z-order.

    Keys are computed once; nodes keyed by an earlier pass keep theirs.
    """
    p = start
    while True:
        if nodes[p, Z] == 0:
            nodes[p, Z] = z_order(xy[p, 0], xy[p, 1], min_x, min_y, inv_size)
        nodes[p, PREV_Z] = nodes[p, PREV]
        nodes[p, NEXT_Z] = nodes[p, NEXT]
        p = nodes[p, NEXT]
        if p == start:
            break

    # Break the cycle so the list can be sorted
    nodes[nodes[p, PREV_Z], NEXT_Z] = -1
    nodes[p, PREV_Z] = -1

    sort_linked(nodes, p)


@nb.jit(nopython=True)
def sort_linked(nodes, head):
    """Bottom-up merge sort of the z-order list starting at ``head``.

    Runs of doubling length are merged until a single run remains.  Ties
    keep their order, so the sort is stable.

    Returns
    -------
    int
        Head of the sorted list.
    """
    in_size = 1

    while True:
        p = head
        head = -1
        tail = -1
        num_merges = 0

        while p >= 0:
            num_merges += 1
            q = p
            p_size = 0
            for _ in range(in_size):
                p_size += 1
                q = nodes[q, NEXT_Z]
                if q < 0:
                    break
            q_size = in_size

            while p_size > 0 or (q_size > 0 and q >= 0):
                if p_size != 0 and (q_size == 0 or q < 0 or nodes[p, Z] <= nodes[q, Z]):
                    e = p
                    p = nodes[p, NEXT_Z]
                    p_size -= 1
                else:
                    e = q
                    q = nodes[q, NEXT_Z]
                    q_size -= 1

                if tail >= 0:
                    nodes[tail, NEXT_Z] = e
                else:
                    head = e

                nodes[e, PREV_Z] = tail
                tail = e

            p = q

        nodes[tail, NEXT_Z] = -1
        in_size *= 2

        if num_merges <= 1:
            break

    return head


# ---------------------------------------------------------------------------
# Ring-aware predicates
# ---------------------------------------------------------------------------

@nb.jit(nopython=True)
def locally_inside(nodes, xy, a, b):
    """Check whether ``b`` lies in the interior wedge at ``a``.

    Only ``a``'s two ring edges are looked at, so this approximates
    "``b`` is visible from ``a`` through the polygon".
    """
    prv = nodes[a, PREV]
    nxt = nodes[a, NEXT]
    if area(xy, prv, a, nxt) < 0:
        return area(xy, a, b, nxt) >= 0 and area(xy, a, prv, b) >= 0
    return area(xy, a, b, prv) < 0 or area(xy, a, nxt, b) < 0


@nb.jit(nopython=True)
def middle_inside(nodes, xy, a, b):
    """Even-odd test of the midpoint of ``ab`` against the ring of ``a``."""
    px = (xy[a, 0] + xy[b, 0]) / 2
    py = (xy[a, 1] + xy[b, 1]) / 2
    inside = False
    p = a
    while True:
        q = nodes[p, NEXT]
        if ((xy[p, 1] > py) != (xy[q, 1] > py)
                and xy[q, 1] != xy[p, 1]
                and px < (xy[q, 0] - xy[p, 0]) * (py - xy[p, 1]) / (xy[q, 1] - xy[p, 1]) + xy[p, 0]):
            inside = not inside
        p = q
        if p == a:
            break
    return inside


@nb.jit(nopython=True)
def sector_contains_sector(nodes, xy, m, p):
    """Check whether the sector at ``m`` contains the sector at ``p``."""
    return (area(xy, nodes[m, PREV], m, nodes[p, PREV]) < 0
            and area(xy, nodes[p, NEXT], m, nodes[m, NEXT]) < 0)


@nb.jit(nopython=True)
def intersects_polygon(nodes, xy, a, b):
    """Check whether segment ``ab`` crosses an edge of ``a``'s ring.

    Edges touching the vertices of ``a`` or ``b`` are ignored.
    """
    ia = nodes[a, IDX]
    ib = nodes[b, IDX]
    p = a
    while True:
        q = nodes[p, NEXT]
        ip = nodes[p, IDX]
        iq = nodes[q, IDX]
        if ip != ia and iq != ia and ip != ib and iq != ib and intersects(xy, p, q, a, b):
            return True
        p = q
        if p == a:
            break
    return False


@nb.jit(nopython=True)
def is_valid_diagonal(nodes, xy, a, b):
    """Check whether ``ab`` is a diagonal that can split the ring in two."""
    a_prev = nodes[a, PREV]
    a_next = nodes[a, NEXT]
    b_prev = nodes[b, PREV]
    b_next = nodes[b, NEXT]
    ib = nodes[b, IDX]

    if nodes[a_next, IDX] == ib or nodes[a_prev, IDX] == ib:
        return False
    if intersects_polygon(nodes, xy, a, b):
        return False

    # Locally visible and not producing opposite-facing sectors
    if (locally_inside(nodes, xy, a, b) and locally_inside(nodes, xy, b, a)
            and middle_inside(nodes, xy, a, b)
            and (area(xy, a_prev, a, b_prev) != 0 or area(xy, a, b_prev, b) != 0)):
        return True

    # Zero-length bridge between two convex corners
    return (equals(xy, a, b)
            and area(xy, a_prev, a, a_next) > 0
            and area(xy, b_prev, b, b_next) > 0)
