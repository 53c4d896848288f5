# src/successcore/tracking/__init__.py
"""
Goal tracking: repository, session ledger, progress aggregation and the
Tracker that wires them to an archive store.
"""

from .ledger import DateRange, SessionLedger, SessionSequence
from .progress import DayEntry, DayView, ProgressAggregator, ProgressView
from .repository import GoalFilter, GoalRepository
from .tracker import Tracker

__all__ = [
    "DateRange",
    "DayEntry",
    "DayView",
    "GoalFilter",
    "GoalRepository",
    "ProgressAggregator",
    "ProgressView",
    "SessionLedger",
    "SessionSequence",
    "Tracker",
]
