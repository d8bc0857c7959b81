"""Pure geometric predicates used by the triangulation kernels.

Points are rows of a ``(N, 2)`` float64 coordinate table addressed by
integer handles, so every predicate takes the table plus handles.  All
functions are numba ``nopython`` kernels.
"""

import numba as nb
import numpy as np

# Coordinates are mapped into [0, Z_ORDER_SCALE] before bit interleaving.
Z_ORDER_SCALE = 32767.0


@nb.jit(nopython=True)
def signed_area(data, start, end, dim):
    """Shoelace sum over the flat coordinate range ``[start, end)``.

    Positive for clockwise rings in screen (y-down) coordinates, which are
    counter-clockwise with y up.  The value is twice the
    enclosed area, which is all the callers compare against.
    """
    total = 0.0
    j = end - dim
    for i in range(start, end, dim):
        total += (data[j] - data[i]) * (data[i + 1] + data[j + 1])
        j = i
    return total


@nb.jit(nopython=True)
def area(xy, p, q, r):
    """Signed area of triangle ``p, q, r``; negative means a convex turn."""
    return ((xy[q, 1] - xy[p, 1]) * (xy[r, 0] - xy[q, 0])
            - (xy[q, 0] - xy[p, 0]) * (xy[r, 1] - xy[q, 1]))


@nb.jit(nopython=True)
def equals(xy, p, q):
    return xy[p, 0] == xy[q, 0] and xy[p, 1] == xy[q, 1]


@nb.jit(nopython=True)
def point_in_triangle(ax, ay, bx, by, cx, cy, px, py):
    """Check whether ``(px, py)`` lies inside or on triangle ``a, b, c``."""
    return ((cx - px) * (ay - py) - (ax - px) * (cy - py) >= 0
            and (ax - px) * (by - py) - (bx - px) * (ay - py) >= 0
            and (bx - px) * (cy - py) - (cx - px) * (by - py) >= 0)


@nb.jit(nopython=True)
def sign(value):
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


@nb.jit(nopython=True)
def on_segment(xy, p, q, r):
    """For collinear ``p, q, r``, check whether ``q`` lies on segment ``pr``."""
    return (xy[q, 0] <= max(xy[p, 0], xy[r, 0])
            and xy[q, 0] >= min(xy[p, 0], xy[r, 0])
            and xy[q, 1] <= max(xy[p, 1], xy[r, 1])
            and xy[q, 1] >= min(xy[p, 1], xy[r, 1]))


@nb.jit(nopython=True)
def intersects(xy, p1, q1, p2, q2):
    """Check whether segments ``p1q1`` and ``p2q2`` touch or cross."""
    o1 = sign(area(xy, p1, q1, p2))
    o2 = sign(area(xy, p1, q1, q2))
    o3 = sign(area(xy, p2, q2, p1))
    o4 = sign(area(xy, p2, q2, q1))

    if o1 != o2 and o3 != o4:
        return True

    # Collinear endpoint lying on the other segment
    if o1 == 0 and on_segment(xy, p1, p2, q1):
        return True
    if o2 == 0 and on_segment(xy, p1, q2, q1):
        return True
    if o3 == 0 and on_segment(xy, p2, p1, q2):
        return True
    if o4 == 0 and on_segment(xy, p2, q1, q2):
        return True

    return False


@nb.jit(nopython=True)
def z_order(x, y, min_x, min_y, inv_size):
    """Morton key of a point given the bbox origin and inverse scale.

    ``inv_size`` already carries the 15-bit scale, so both coordinates land
    in ``[0, 32767]`` before their bits are interleaved.
    """
    ix = np.int64((x - min_x) * inv_size)
    iy = np.int64((y - min_y) * inv_size)

    ix = (ix | (ix << 8)) & 0x00FF00FF
    ix = (ix | (ix << 4)) & 0x0F0F0F0F
    ix = (ix | (ix << 2)) & 0x33333333
    ix = (ix | (ix << 1)) & 0x55555555

    iy = (iy | (iy << 8)) & 0x00FF00FF
    iy = (iy | (iy << 4)) & 0x0F0F0F0F
    iy = (iy | (iy << 2)) & 0x33333333
    iy = (iy | (iy << 1)) & 0x55555555

    return ix | (iy << 1)
