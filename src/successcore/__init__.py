# src/successcore/__init__.py
"""
successcore - goal tracking with a file-backed archive.

Users define goals, log dated sessions against them, keep free-form notes
and look at derived progress (cumulative value, percent of target,
streaks, per-day views). Everything is persisted under one archive root
directory with atomic, versioned per-goal records.
"""

from importlib.metadata import PackageNotFoundError, version

from .exceptions import (
    ArchiveError,
    ArchiveUnavailable,
    ConfigError,
    CorruptArchive,
    NotFound,
    SuccessError,
    UnsupportedSchema,
    ValidationError,
    WriteFailure,
)
from .models import Archive, Goal, GoalKind, GoalState, Session
from .storage import ArchiveStore
from .tracking import (
    DateRange,
    DayEntry,
    DayView,
    GoalFilter,
    GoalRepository,
    ProgressAggregator,
    ProgressView,
    SessionLedger,
    Tracker,
)

try:
    __version__ = version("successcore")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

__all__ = [
    "Archive",
    "ArchiveError",
    "ArchiveStore",
    "ArchiveUnavailable",
    "ConfigError",
    "CorruptArchive",
    "DateRange",
    "DayEntry",
    "DayView",
    "Goal",
    "GoalFilter",
    "GoalKind",
    "GoalRepository",
    "GoalState",
    "NotFound",
    "ProgressAggregator",
    "ProgressView",
    "Session",
    "SessionLedger",
    "SuccessError",
    "Tracker",
    "UnsupportedSchema",
    "ValidationError",
    "WriteFailure",
]
