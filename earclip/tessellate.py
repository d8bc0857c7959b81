"""Grid-aligned re-tessellation of triangle meshes.

Triangles are split so that none of their edges crosses the planes
``axis == k * modulo``.  New vertices are interpolated along the split
edges and appended after the existing ones; existing vertices and the
index slots of untouched triangles are left as they are.
"""

import math

import numpy as np

from ._backend import to_numpy


def retessellate(vertices, indices, modulo, dim=2):
    """Split triangles along the grid lines ``k * modulo`` of every axis.

    Parameters
    ----------
    vertices : array-like
        Flat vertex buffer with ``dim`` values per vertex.
    indices : array-like of int
        Flat triangle index buffer, three indices per triangle.
    modulo : float
        Grid spacing, strictly positive.  ``math.inf`` leaves the mesh as is.
    dim : int, optional
        Coordinates per vertex, 2 or 3.  Every axis in ``range(dim)`` is
        processed in turn.  Default is 2.

    Returns
    -------
    vertices : numpy.ndarray
        Flat float64 vertex buffer: the input vertices followed by the
        vertices created on grid lines.
    indices : numpy.ndarray
        Flat int32 index buffer.  A split triangle keeps its slot for the
        remaining piece; the other pieces are appended.

    Raises
    ------
    ValueError
        If ``modulo`` is not strictly positive, ``dim`` is not 2 or 3, or the
        buffers are malformed.

    Examples
    --------
    >>> verts, idx = retessellate([0, 0, 10, 0, 0, 10], [0, 1, 2], 4)
    >>> len(idx) // 3, len(verts) // 2
    (13, 15)
    """
    if dim not in (2, 3):
        raise ValueError(f"dim must be 2 or 3, got {dim}")
    if not modulo > 0:
        raise ValueError(f"modulo must be strictly positive, got {modulo}")

    verts = to_numpy(vertices, np.float64)
    idx = to_numpy(indices, np.int64)
    if verts.size % dim != 0:
        raise ValueError(
            f"Vertex buffer length ({verts.size}) is not a multiple of dim ({dim})"
        )
    if idx.size % 3 != 0:
        raise ValueError(
            f"Index buffer length ({idx.size}) is not a multiple of 3"
        )
    if idx.size and (idx.min() < 0 or idx.max() >= verts.size // dim):
        raise ValueError("Triangle index out of range of the vertex buffer")

    if math.isinf(modulo):
        return verts, idx.astype(np.int32)

    verts = verts.tolist()
    idx = idx.tolist()

    for axis in range(dim):
        i = 0
        while i < len(idx):
            triangle = _split_if_necessary(
                idx[i], idx[i + 1], idx[i + 2], verts, idx, dim, axis, modulo)
            if triangle is not None:
                # Re-examine the remaining piece in the same slot
                idx[i:i + 3] = triangle
                continue
            i += 3

    return np.array(verts, dtype=np.float64), np.array(idx, dtype=np.int32)


tessellate = retessellate


def _split_if_necessary(i1, i2, i3, verts, idx, dim, axis, modulo):
    """Split a triangle from its extreme corner if it spans a grid line.

    Returns
    -------
    list of int or None
        The piece still to be examined, or None if the triangle stays whole.
    """
    v1 = verts[i1 * dim + axis]
    v2 = verts[i2 * dim + axis]
    v3 = verts[i3 * dim + axis]

    # 1 is the corner
    if v1 < v2 and v1 < v3:
        mod_point = v1 + modulo - v1 % modulo
        if v1 < mod_point <= v2 and mod_point <= v3 and v2 != mod_point:
            return _split_right(mod_point, i1, i2, i3, v1, v2, v3,
                                verts, idx, dim, axis, modulo)
    elif v1 > v2 and v1 > v3:
        mod_point = v1 - (v1 % modulo or modulo)
        if v1 > mod_point >= v2 and mod_point >= v3 and v2 != mod_point:
            return _split_left(mod_point, i1, i2, i3, v1, v2, v3,
                               verts, idx, dim, axis, modulo)

    # 2 is the corner
    if v2 < v1 and v2 < v3:
        mod_point = v2 + modulo - v2 % modulo
        if v2 < mod_point <= v3 and mod_point <= v1 and (v1 != mod_point or v3 != mod_point):
            return _split_right(mod_point, i2, i3, i1, v2, v3, v1,
                                verts, idx, dim, axis, modulo)
    elif v2 > v1 and v2 > v3:
        mod_point = v2 - (v2 % modulo or modulo)
        if v2 > mod_point >= v3 and mod_point >= v1 and (v1 != mod_point or v3 != mod_point):
            return _split_left(mod_point, i2, i3, i1, v2, v3, v1,
                               verts, idx, dim, axis, modulo)

    # 3 is the corner
    if v3 < v1 and v3 < v2:
        mod_point = v3 + modulo - v3 % modulo
        if v3 < mod_point <= v1 and mod_point <= v2 and (v1 != mod_point or v2 != mod_point):
            return _split_right(mod_point, i3, i1, i2, v3, v1, v2,
                                verts, idx, dim, axis, modulo)
    elif v3 > v1 and v3 > v2:
        mod_point = v3 - (v3 % modulo or modulo)
        if v3 > mod_point >= v1 and mod_point >= v2 and (v1 != mod_point or v2 != mod_point):
            return _split_left(mod_point, i3, i1, i2, v3, v1, v2,
                               verts, idx, dim, axis, modulo)

    return None


def _create_vertex(split_point, i1, i2, v1, v2, verts, dim, axis):
    """Append the point of edge ``i1-i2`` where ``axis`` equals ``split_point``.

    The other coordinates use the same interpolation factor, so the new
    vertex lies on the original edge.
    """
    index = len(verts) // dim
    t = (split_point - v1) / (v2 - v1)
    for d in range(dim):
        if d == axis:
            verts.append(split_point)
        else:
            a = verts[i1 * dim + d]
            b = verts[i2 * dim + d]
            verts.append(a + (b - a) * t)
    return index


def _split_right(mod_point, i1, i2, i3, v1, v2, v3, verts, idx, dim, axis, modulo):
    """Fan out from the minimum corner ``i1`` towards increasing values."""
    i12 = _create_vertex(mod_point, i1, i2, v1, v2, verts, dim, axis)
    i13 = _create_vertex(mod_point, i1, i3, v1, v3, verts, dim, axis)
    idx.extend((i1, i12, i13))
    mod_point += modulo

    if v2 < v3:
        # One strip (two triangles) per grid line until vertex 2 is reached
        while mod_point < v2:
            n13 = _create_vertex(mod_point, i1, i3, v1, v3, verts, dim, axis)
            n12 = _create_vertex(mod_point, i1, i2, v1, v2, verts, dim, axis)
            idx.extend((i13, i12, n13, n13, i12, n12))
            i12, i13 = n12, n13
            mod_point += modulo
        idx.extend((i13, i12, i2))
        return [i13, i2, i3]

    while mod_point < v3:
        n13 = _create_vertex(mod_point, i1, i3, v1, v3, verts, dim, axis)
        n12 = _create_vertex(mod_point, i1, i2, v1, v2, verts, dim, axis)
        idx.extend((i13, i12, n13, n13, i12, n12))
        i12, i13 = n12, n13
        mod_point += modulo
    idx.extend((i13, i12, i3))
    return [i3, i12, i2]


def _split_left(mod_point, i1, i2, i3, v1, v2, v3, verts, idx, dim, axis, modulo):
    """Fan out from the maximum corner ``i1`` towards decreasing values."""
    i12 = _create_vertex(mod_point, i1, i2, v1, v2, verts, dim, axis)
    i13 = _create_vertex(mod_point, i1, i3, v1, v3, verts, dim, axis)
    idx.extend((i1, i12, i13))
    mod_point -= modulo

    if v2 > v3:
        while mod_point > v2:
            n13 = _create_vertex(mod_point, i1, i3, v1, v3, verts, dim, axis)
            n12 = _create_vertex(mod_point, i1, i2, v1, v2, verts, dim, axis)
            idx.extend((i13, i12, n13, n13, i12, n12))
            i12, i13 = n12, n13
            mod_point -= modulo
        idx.extend((i13, i12, i2))
        return [i13, i2, i3]

    while mod_point > v3:
        n13 = _create_vertex(mod_point, i1, i3, v1, v3, verts, dim, axis)
        n12 = _create_vertex(mod_point, i1, i2, v1, v2, verts, dim, axis)
        idx.extend((i13, i12, n13, n13, i12, n12))
        i12, i13 = n12, n13
        mod_point -= modulo
    idx.extend((i13, i12, i3))
    return [i3, i12, i2]
