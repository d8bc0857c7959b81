"""Host/device array helpers.

The triangulation kernels run on the CPU, so device arrays are copied to
host memory before they reach them.
"""

import numpy as np

try:
    import cupy
    has_cupy = True
except ModuleNotFoundError:
    has_cupy = False


def to_numpy(values, dtype):
    """Return ``values`` as a flat, contiguous numpy array of ``dtype``.

    Parameters
    ----------
    values : array-like
        List, tuple, numpy array or (if cupy is installed) cupy array.
    dtype : numpy dtype
        Target dtype.

    Returns
    -------
    numpy.ndarray
        One-dimensional array.
    """
    if has_cupy and isinstance(values, cupy.ndarray):
        values = cupy.asnumpy(values)
    return np.ascontiguousarray(np.asarray(values, dtype=dtype).ravel())
