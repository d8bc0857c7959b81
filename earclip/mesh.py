"""Polygon-to-mesh entry points.

Converts polygons given as rings of points into flat vertex and triangle
index buffers, optionally re-tessellated along a regular grid, and
measures how well a triangulation covers its polygon.
"""

import math
from collections.abc import Mapping

import numba as nb
import numpy as np

from ._backend import has_cupy, to_numpy
from ._predicates import signed_area as _signed_area
from .earcut import triangulate
from .tessellate import retessellate

if has_cupy:
    import cupy

_INT32 = np.iinfo(np.int32)


def earclip(polygon, modulo=math.inf, offset=0):
    """Triangulate a polygon with holes into a triangle mesh.

    Parameters
    ----------
    polygon : sequence of rings
        ``polygon[0]`` is the outer boundary, the remaining rings are holes.
        Each ring is a sequence of points, either numeric ``(x, y[, z])``
        sequences, mappings with ``"x"``, ``"y"``[, ``"z"``] keys, or objects
        with ``x``, ``y``[, ``z``] attributes.  See :func:`flatten`.
    modulo : float, optional
        Grid spacing for :func:`retessellate`.  Default ``math.inf`` skips
        re-tessellation.
    offset : int, optional
        Added to every output index, for meshes appended to a shared vertex
        buffer.  Shifted indices must stay within the int32 range.  Default
        is 0.

    Returns
    -------
    vertices : numpy.ndarray
        Flattened float64 array of vertex positions, ``dim`` values per
        vertex, including any vertices created on grid lines.
    indices : numpy.ndarray
        Flattened int32 array of triangle indices with shape (M*3,).

    Raises
    ------
    ValueError
        If ``modulo`` is not strictly positive, the points are malformed
        or ``offset`` pushes an index out of the int32 range.

    Examples
    --------
    >>> verts, idx = earclip([[[0, 0, 0], [1, 0, 0], [0, 1, 0]]])
    >>> verts.tolist(), idx.tolist()
    ([0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0, 0.0], [1, 2, 0])
    """
    if not modulo > 0:
        raise ValueError(f"modulo must be strictly positive, got {modulo}")

    vertices, hole_indices, dim = flatten(polygon)
    indices = triangulate(vertices, hole_indices, dim)

    if not math.isinf(modulo):
        vertices, indices = retessellate(vertices, indices, modulo, dim)

    if indices.size and (int(indices.min()) + offset < _INT32.min
                         or int(indices.max()) + offset > _INT32.max):
        raise ValueError(f"offset {offset} moves triangle indices out of the int32 range")
    return vertices, (indices.astype(np.int64) + offset).astype(np.int32)


def flatten(polygon):
    """Flatten rings of points into a single coordinate buffer.

    The point encoding and the dimension are taken from the first point of
    the outer ring and applied to every point.

    Parameters
    ----------
    polygon : sequence of rings
        Outer ring followed by holes.  Points are numeric sequences (2 or
        more values; values past the third are ignored), mappings with
        ``"x"``, ``"y"``[, ``"z"``] keys or objects with ``x``, ``y``[, ``z``]
        attributes.  Extra fields such as ``m`` values are ignored.

    Returns
    -------
    vertices : numpy.ndarray
        Flat float64 coordinate buffer.
    hole_indices : numpy.ndarray
        int64 vertex index at which each hole starts.
    dim : int
        2 or 3.

    Raises
    ------
    TypeError
        If ``polygon`` is not a sequence of rings.
    ValueError
        If a point does not match the encoding of the first point.
    """
    if has_cupy and isinstance(polygon, cupy.ndarray):
        polygon = cupy.asnumpy(polygon)
    if isinstance(polygon, (str, bytes, Mapping)):
        raise TypeError(f"Expected a sequence of rings, got {type(polygon)}")

    rings = list(polygon)
    if not rings or len(rings[0]) == 0:
        return np.empty(0, dtype=np.float64), np.empty(0, dtype=np.int64), 2

    first = rings[0][0]
    if isinstance(first, Mapping):
        dim = 3 if "z" in first else 2
        read = _point_from_mapping
    elif hasattr(first, "x") and hasattr(first, "y"):
        dim = 3 if getattr(first, "z", None) is not None else 2
        read = _point_from_attributes
    else:
        n = len(first)
        if n < 2:
            raise ValueError(f"Points need at least 2 coordinates, got {n}")
        dim = min(n, 3)
        read = _point_from_sequence

    vertices = []
    hole_indices = []
    count = 0
    for i, ring in enumerate(rings):
        if i > 0:
            hole_indices.append(count)
        for point in ring:
            vertices.extend(read(point, dim))
            count += 1

    return (np.asarray(vertices, dtype=np.float64),
            np.asarray(hole_indices, dtype=np.int64), dim)


def _point_from_sequence(point, dim):
    if len(point) < dim:
        raise ValueError(f"Expected a point with {dim} coordinates, got {len(point)}")
    return point[:dim]


def _point_from_mapping(point, dim):
    try:
        if dim == 3:
            return point["x"], point["y"], point["z"]
        return point["x"], point["y"]
    except (KeyError, TypeError):
        raise ValueError(f"Expected a point mapping with {dim} coordinates, got {point!r}")


def _point_from_attributes(point, dim):
    try:
        if dim == 3:
            return point.x, point.y, point.z
        return point.x, point.y
    except AttributeError:
        raise ValueError(f"Expected a point object with {dim} coordinates, got {point!r}")


def signed_area(vertices, start=0, end=None, dim=2):
    """Twice the signed area of the ring ``vertices[start:end]``.

    Parameters
    ----------
    vertices : array-like
        Flat coordinate buffer.
    start, end : int, optional
        Offsets into the buffer (not vertex indices).  Default is the whole
        buffer.
    dim : int, optional
        Coordinates per vertex.  Default is 2.

    Returns
    -------
    float
        Positive for rings that are clockwise in screen (y-down)
        coordinates, negative for the opposite winding.
    """
    data = to_numpy(vertices, np.float64)
    if end is None:
        end = data.size
    return float(_signed_area(data, start, end, dim))


@nb.jit(nopython=True)
def _triangles_area(data, triangles, dim):
    """Sum of twice the unsigned area of every triangle."""
    total = 0.0
    for i in range(0, len(triangles), 3):
        a = triangles[i] * dim
        b = triangles[i + 1] * dim
        c = triangles[i + 2] * dim
        total += abs((data[a] - data[c]) * (data[b + 1] - data[a + 1])
                     - (data[a] - data[b]) * (data[c + 1] - data[a + 1]))
    return total


def deviation(vertices, hole_indices=None, dim=2, triangles=None):
    """Relative difference between triangle area and polygon area.

    Parameters
    ----------
    vertices : array-like
        Flat coordinate buffer, as passed to :func:`triangulate`.
    hole_indices : array-like of int, optional
        Vertex index at which each hole starts.
    dim : int, optional
        Coordinates per vertex.  Default is 2.
    triangles : array-like of int, optional
        Triangle indices produced for ``vertices``.

    Returns
    -------
    float
        ``|triangle_area - polygon_area| / polygon_area``; 0 for a perfect
        triangulation and when both areas are zero.  ``inf`` when only the
        polygon area is zero, as for a self-crossing bowtie.
    """
    data = to_numpy(vertices, np.float64)
    holes = to_numpy([] if hole_indices is None else hole_indices, np.int64)
    tris = to_numpy([] if triangles is None else triangles, np.int64)

    if data.size % dim != 0:
        raise ValueError(
            f"Vertex buffer length ({data.size}) is not a multiple of dim ({dim})"
        )
    if tris.size % 3 != 0:
        raise ValueError(f"Index buffer length ({tris.size}) is not a multiple of 3")
    if tris.size and (tris.min() < 0 or tris.max() >= data.size // dim):
        raise ValueError("Triangle index out of range of the vertex buffer")

    outer_len = holes[0] * dim if holes.size else data.size
    polygon_area = abs(_signed_area(data, 0, outer_len, dim))
    for i in range(holes.size):
        start = holes[i] * dim
        end = holes[i + 1] * dim if i < holes.size - 1 else data.size
        polygon_area -= abs(_signed_area(data, start, end, dim))

    triangles_area = _triangles_area(data, tris, dim)

    if polygon_area == 0:
        return 0.0 if triangles_area == 0 else math.inf
    return float(abs((triangles_area - polygon_area) / polygon_area))
