# src/successcore/tracking/ledger.py
"""
Session ledger: per-goal, chronologically ordered sessions.

Sessions are ordered by ``(date, created_at, id)``. A session can never be
moved to another goal or re-dated; mistakes are corrected by logging a
compensating session. Only the note of a session may be edited.

As with the goal repository, the full ledger of the affected goal is
written through the :class:`ArchiveStore` before the in-memory ledger is
replaced, so a rejected or failed mutation is never observable.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from ..exceptions import NotFound, SuccessError, ValidationError
from ..models import Archive, GoalId, Session, SessionId, new_session_id, utc_now
from ..storage import ArchiveStore
from .repository import GoalRepository

logger = logging.getLogger(__name__)

_MAX_ID_ATTEMPTS = 64


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days. A missing bound is open."""

    start: Optional[date] = None
    end: Optional[date] = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValidationError(
                f"Date range start {self.start} is after end {self.end}.", field="date_range"
            )

    def __contains__(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


class SessionSequence(Sequence[Session]):
    """
    A finite, restartable view over a snapshot of sessions.

    Filtering against the date range happens lazily while iterating; each
    call to ``iter()`` starts over and nothing is mutated.
    """

    def __init__(self, sessions: Tuple[Session, ...], date_range: Optional[DateRange] = None) -> None:
        self._sessions = sessions
        self._range = date_range or DateRange()

    def __iter__(self) -> Iterator[Session]:
        return (s for s in self._sessions if s.date in self._range)

    def _materialise(self) -> List[Session]:
        return list(iter(self))

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __getitem__(self, index):
        return self._materialise()[index]

    def __repr__(self) -> str:
        return f"SessionSequence({len(self)} sessions, {self._range})"


class SessionLedger:
    """
    Append and query sessions.

    Args:
        store: Archive store used to persist ledgers.
        archive: The loaded archive. The ledger owns ``archive.sessions``.
        goals: Goal repository used to resolve goal ids.
        future_tolerance_days: How many days past ``today`` a session may
            be dated. The default (0) rejects any future-dated session.
        today: Source of the current calendar day.
        id_factory: Source of candidate session ids.
        clock: Source of creation timestamps.
    """

    def __init__(
        self,
        store: ArchiveStore,
        archive: Archive,
        goals: GoalRepository,
        future_tolerance_days: int = 0,
        today: Callable[[], date] = date.today,
        id_factory: Callable[[], SessionId] = new_session_id,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if future_tolerance_days < 0:
            raise ValidationError("future_tolerance_days must not be negative.", field="future_tolerance_days")
        self._store = store
        self._archive = archive
        self._goals = goals
        self._tolerance = timedelta(days=future_tolerance_days)
        self._today = today
        self._id_factory = id_factory
        self._clock = clock
        self._index: Dict[SessionId, GoalId] = {
            s.id: goal_id for goal_id, ledger in archive.sessions.items() for s in ledger
        }

    # ----- writes -------------------------------------------------------------

    def add(
        self,
        goal_id: GoalId,
        day: date,
        value: float,
        note: Optional[str] = None,
        *,
        quantity: Optional[float] = None,
    ) -> SessionId:
        """
        Log a session against an active goal.

        Raises:
            NotFound: If ``goal_id`` does not resolve to an active goal.
            ValidationError: If ``value`` or ``quantity`` is negative, or
                ``day`` lies beyond the future-date tolerance.
            WriteFailure: If the ledger cannot be written.
        """
        goal = self._goals.find(goal_id)
        if goal is None or not goal.is_active:
            raise NotFound("goal", goal_id, "No active goal.")

        if isinstance(day, datetime) or not isinstance(day, date):
            raise ValidationError(f"Session date must be a calendar date, got {day!r}.", field="date")
        latest = self._today() + self._tolerance
        if day > latest:
            raise ValidationError(f"Session date {day} is in the future (latest allowed {latest}).", field="date")
        value = self._check_amount(value, "value")
        if quantity is not None:
            quantity = self._check_amount(quantity, "quantity")
        if note is not None and not isinstance(note, str):
            raise ValidationError("Session note must be text.", field="note")

        session = Session(
            id=self._fresh_id(),
            goal_id=goal_id,
            date=day,
            value=value,
            note=note,
            created_at=self._clock(),
            quantity=quantity,
        )
        ledger = sorted([*self._archive.sessions.get(goal_id, []), session], key=lambda s: s.sort_key)
        self._commit(goal_id, ledger)
        self._index[session.id] = goal_id
        logger.debug("Logged session %s on %s for goal %s (value=%s)", session.id, day, goal_id, value)
        return session.id

    def edit_note(self, session_id: SessionId, text: Optional[str]) -> Session:
        """Replace the note of a session. Allowed at any time; ordering is unchanged."""
        if text is not None and not isinstance(text, str):
            raise ValidationError("Session note must be text.", field="note")
        goal_id, position = self._locate(session_id)
        ledger = list(self._archive.sessions[goal_id])
        updated = ledger[position].model_copy(update={"note": text})
        ledger[position] = updated
        self._commit(goal_id, ledger)
        return updated

    @staticmethod
    def _check_amount(amount: object, field: str) -> float:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not math.isfinite(amount):
            raise ValidationError(f"Session {field} must be a number, got {amount!r}.", field=field)
        if amount < 0:
            raise ValidationError(f"Session {field} must not be negative.", field=field)
        return float(amount)

    def _fresh_id(self) -> SessionId:
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = self._id_factory()
            if candidate not in self._index:
                return candidate
        raise SuccessError(f"Could not allocate a unique session id after {_MAX_ID_ATTEMPTS} attempts.")

    def _commit(self, goal_id: GoalId, ledger: List[Session]) -> None:
        self._store.save_ledger(goal_id, ledger)
        self._archive.sessions[goal_id] = ledger

    def _locate(self, session_id: SessionId) -> Tuple[GoalId, int]:
        goal_id = self._index.get(session_id)
        if goal_id is not None:
            for position, session in enumerate(self._archive.sessions.get(goal_id, [])):
                if session.id == session_id:
                    return goal_id, position
        raise NotFound("session", session_id)

    # ----- reads --------------------------------------------------------------

    def get(self, session_id: SessionId) -> Session:
        goal_id, position = self._locate(session_id)
        return self._archive.sessions[goal_id][position]

    def sessions_for(self, goal_id: GoalId, date_range: Optional[DateRange] = None) -> SessionSequence:
        """
        Sessions of one goal in chronological order, optionally limited to
        an inclusive date range. Tombstoned goals keep their sessions.

        Raises:
            NotFound: If the goal does not exist at all.
        """
        self._goals.get(goal_id, include_tombstoned=True)
        return SessionSequence(tuple(self._archive.sessions.get(goal_id, ())), date_range)

    def count_for(self, goal_id: GoalId) -> int:
        return self._archive.session_count(goal_id)

    def last_session(self, goal_id: GoalId) -> Optional[Session]:
        """Most recent session of a goal by ordering key, if any."""
        self._goals.get(goal_id, include_tombstoned=True)
        ledger = self._archive.sessions.get(goal_id)
        return ledger[-1] if ledger else None

    def sessions_between(self, start: Optional[date] = None, end: Optional[date] = None) -> SessionSequence:
        """Sessions of every goal within an inclusive range, in chronological order."""
        everything = sorted(
            (s for ledger in self._archive.sessions.values() for s in ledger),
            key=lambda s: s.sort_key,
        )
        return SessionSequence(tuple(everything), DateRange(start, end))

    def day_sessions(self, day: date) -> SessionSequence:
        """Sessions of every goal on one day."""
        return self.sessions_between(day, day)
