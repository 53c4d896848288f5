# src/successcore/tracking/progress.py
"""
Progress aggregation.

Everything here is derived on demand from a goal and its ledger; nothing
is cached or persisted. Navigating between days is simply calling these
functions with a different date.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional, Tuple

from ..models import Goal, GoalId, GoalKind, Session
from .ledger import DateRange, SessionLedger
from .repository import GoalFilter, GoalRepository


@dataclass(frozen=True)
class ProgressView:
    """
    Progress of one goal as of a given day.

    Attributes:
        goal_id: The goal the view was computed for.
        as_of: Day the view is computed for.
        cumulative_value: Sum of session values dated on or before ``as_of``.
        cumulative_quantity: Sum of session quantities dated on or before ``as_of``.
        target: The goal's target, or ``None``.
        percent_complete: ``cumulative_value / target`` clamped to [0, 1];
            0.0 when the goal has no target (see ``has_target``).
        sessions_on: Sessions dated exactly ``as_of``.
        current_streak_days: Consecutive days with a session, ending at ``as_of``.
    """

    goal_id: GoalId
    as_of: date
    cumulative_value: float
    cumulative_quantity: float
    target: Optional[float]
    percent_complete: float
    sessions_on: Tuple[Session, ...]
    current_streak_days: int

    @property
    def has_target(self) -> bool:
        return self.target is not None and self.target > 0

    @property
    def is_complete(self) -> bool:
        return self.has_target and self.percent_complete >= 1.0


@dataclass(frozen=True)
class DayEntry:
    """All sessions of one goal on one day."""

    goal: Goal
    sessions: Tuple[Session, ...]

    @property
    def total_value(self) -> float:
        return sum(s.value for s in self.sessions)

    @property
    def total_quantity(self) -> float:
        return sum(s.quantity for s in self.sessions if s.quantity is not None)


@dataclass(frozen=True)
class DayView:
    """What happened on one day, grouped by goal in listing order."""

    day: date
    entries: List[DayEntry] = field(default_factory=list)

    @property
    def goal_total(self) -> float:
        return sum(e.total_value for e in self.entries if e.goal.kind is GoalKind.GOAL)

    @property
    def reward_total(self) -> float:
        return sum(e.total_value for e in self.entries if e.goal.kind is GoalKind.REWARD)

    @property
    def is_empty(self) -> bool:
        return not self.entries


def percent_of(value: float, target: Optional[float]) -> float:
    if target is None or target <= 0:
        return 0.0
    return min(1.0, max(0.0, value / target))


def streak_ending(days_with_sessions: set, as_of: date) -> int:
    """Count consecutive days in ``days_with_sessions`` walking back from ``as_of``."""
    streak = 0
    day = as_of
    while day in days_with_sessions:
        streak += 1
        day -= timedelta(days=1)
    return streak


class ProgressAggregator:
    """Computes progress and day views from the repository and ledger."""

    def __init__(self, goals: GoalRepository, ledger: SessionLedger) -> None:
        self._goals = goals
        self._ledger = ledger

    def progress(self, goal_id: GoalId, as_of_date: date) -> ProgressView:
        """
        Progress of a goal as of ``as_of_date``.

        Raises:
            NotFound: If the goal does not exist.
        """
        goal = self._goals.get(goal_id, include_tombstoned=True)
        history = list(self._ledger.sessions_for(goal_id, DateRange(end=as_of_date)))

        cumulative = float(sum(s.value for s in history))
        quantity = float(sum(s.quantity for s in history if s.quantity is not None))
        return ProgressView(
            goal_id=goal_id,
            as_of=as_of_date,
            cumulative_value=cumulative,
            cumulative_quantity=quantity,
            target=goal.target,
            percent_complete=percent_of(cumulative, goal.target),
            sessions_on=tuple(s for s in history if s.date == as_of_date),
            current_streak_days=streak_ending({s.date for s in history}, as_of_date),
        )

    def day_view(self, day: date) -> DayView:
        """
        Sessions logged on ``day`` grouped per goal, whatever the goal's
        state. Goals without sessions that day are left out.
        """
        by_goal = {}
        for session in self._ledger.day_sessions(day):
            by_goal.setdefault(session.goal_id, []).append(session)

        goals = [
            g
            for selection in (GoalFilter.ALL, GoalFilter.TOMBSTONED)
            for g in self._goals.list(selection)
            if g.id in by_goal
        ]
        goals.sort(key=lambda g: g.sort_key)
        return DayView(day=day, entries=[DayEntry(goal=g, sessions=tuple(by_goal[g.id])) for g in goals])
