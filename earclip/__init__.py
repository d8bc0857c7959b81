from ._backend import has_cupy
from .earcut import triangulate, earcut, TriangulationWarning
from .tessellate import retessellate, tessellate
from .mesh import (
    earclip,
    flatten,
    deviation,
    signed_area,
)

__version__ = "0.1.0"
