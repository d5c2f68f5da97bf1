"""Custom exceptions for markerlab.

This module defines all custom exceptions used throughout the package.
Every error is raised synchronously at the boundary of the operation that
first observes it; none of them describe transient conditions.
"""

from __future__ import annotations


class MarkerLabError(Exception):
    """Base exception class for all markerlab errors."""

    pass


class EmptyInputError(MarkerLabError, ValueError):
    """Raised when zero matrices are supplied where at least one is required.

    Examples
    --------
    >>> from markerlab.analysis import cbind
    >>> cbind([])
    Traceback (most recent call last):
    ...
    markerlab.core.exceptions.EmptyInputError: need at least one matrix to cbind
    """

    pass


class ShapeMismatchError(MarkerLabError, ValueError):
    """Raised when dimensions or assignment-array lengths disagree.

    Parameters
    ----------
    message : str
        Human-readable description.
    index : int, optional
        Position of the offending input in a multi-matrix operation.
    axis : str, optional
        Name of the mismatched dimension ("rows", "columns", "groups", ...).
    expected, actual : int, optional
        The expected and observed extents.
    """

    def __init__(
        self,
        message: str,
        index: int | None = None,
        axis: str | None = None,
        expected: int | None = None,
        actual: int | None = None,
    ):
        super().__init__(message)
        self.index = index
        self.axis = axis
        self.expected = expected
        self.actual = actual


class EmptyIntersectionError(MarkerLabError, ValueError):
    """Raised when a name-based row intersection yields zero rows."""

    pass


class InvalidConfigError(MarkerLabError, ValueError):
    """Raised when configuration parameters or indices are invalid.

    Covers negative thresholds, non-positive thread counts, unknown backends
    and out-of-range group, block or summary indices.
    """

    pass


class UnavailableStatisticError(MarkerLabError, KeyError):
    """Raised when a summary type or metric was not computed for a result.

    Parameters
    ----------
    metric : str
        Effect size name ("cohen", "lfc", "delta_detected" or "auc").
    summary : str, optional
        Summary name, or None when the whole metric is missing.
    """

    def __init__(self, metric: str, summary: str | None = None):
        if summary is None:
            message = f"no {metric} values available in the marker results"
        else:
            message = f"summary type '{summary}' not available for {metric}"
        super().__init__(message)
        self.metric = metric
        self.summary = summary

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]
