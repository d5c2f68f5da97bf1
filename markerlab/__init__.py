"""markerlab: marker detection for grouped single-cell data.

markerlab provides:
- Immutable matrix handles with delayed row/column binding
- Name-matched binding across inputs with different feature sets
- All-pairs group comparisons (Cohen's d, log-fold change, delta-detected, AUC)
- Per-group summaries of pairwise effects, with optional blocking
- Numba and NumPy kernel backends
"""

__version__ = "1.0.0"

# Module-level imports for convenience
from . import analysis, core, kernels, types, utils

# Key entry points
from .analysis import (
    AVERAGE,
    ScoreMarkersResults,
    SummaryType,
    cbind,
    cbind_with_rownames,
    rank_markers,
    rbind,
    score_markers,
)
from .core import ScoreMarkersConfig
from .types import MatrixHandle, as_matrix

__all__ = [
    # Version
    "__version__",
    # Types
    "MatrixHandle",
    "as_matrix",
    # Config
    "ScoreMarkersConfig",
    # Analysis
    "cbind",
    "rbind",
    "cbind_with_rownames",
    "score_markers",
    "rank_markers",
    "ScoreMarkersResults",
    "SummaryType",
    "AVERAGE",
    # Modules
    "analysis",
    "core",
    "kernels",
    "types",
    "utils",
]
