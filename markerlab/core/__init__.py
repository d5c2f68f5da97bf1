"""Core components for markerlab.

Provides the error hierarchy and configuration base classes shared by the
binding and marker-scoring layers.
"""

from .config import Config, ScoreMarkersConfig
from .exceptions import (
    EmptyInputError,
    EmptyIntersectionError,
    InvalidConfigError,
    MarkerLabError,
    ShapeMismatchError,
    UnavailableStatisticError,
)

__all__ = [
    "Config",
    "ScoreMarkersConfig",
    "MarkerLabError",
    "EmptyInputError",
    "ShapeMismatchError",
    "EmptyIntersectionError",
    "InvalidConfigError",
    "UnavailableStatisticError",
]
