"""Type classes for markerlab."""

from ._matrix import BoundMatrix, LeafMatrix, MatrixHandle, SubsetMatrix, as_matrix

__all__ = [
    "MatrixHandle",
    "LeafMatrix",
    "BoundMatrix",
    "SubsetMatrix",
    "as_matrix",
]
