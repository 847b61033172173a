"""Custom exception hierarchy for the chorechart package."""

from __future__ import annotations


class ChoreChartError(Exception):
    """Base class for all chorechart specific errors."""


class ValidationError(ChoreChartError):
    """Raised when a caller supplies input that needs user-facing correction."""


class PersistenceError(ChoreChartError):
    """Raised when the local durable store cannot be read or written."""


class SyncError(ChoreChartError):
    """Raised when the remote store cannot be reached or returns garbage."""


__all__ = [
    "ChoreChartError",
    "ValidationError",
    "PersistenceError",
    "SyncError",
]
