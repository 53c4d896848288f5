# src/successcore/tracking/tracker.py
"""
Tracker: wires the archive store, goal repository, session ledger and
progress aggregator around one loaded archive.

Example:
    from successcore import Tracker

    tracker = Tracker.open("/home/me/success")
    goal_id = tracker.goals.create("Read 12 books", target=12)
    tracker.ledger.add(goal_id, date(2024, 1, 1), 1)
    view = tracker.aggregator.progress(goal_id, date(2024, 1, 1))
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Optional, Union

from ..models import Archive, GoalId, new_goal_id, new_session_id, utc_now
from ..storage import ArchiveStore
from .ledger import SessionLedger
from .progress import ProgressAggregator
from .repository import GoalRepository

logger = logging.getLogger(__name__)


class Tracker:
    """
    Entry point for applications.

    The on-disk archive is the ground truth: :meth:`open` and
    :meth:`reload` rebuild the in-memory model from it.

    Args:
        store: An opened archive store.
        future_tolerance_days: Days past today a session may be dated.
        today: Source of the current calendar day (injectable for tests).
        clock: Source of creation timestamps (injectable for tests).
    """

    def __init__(
        self,
        store: ArchiveStore,
        future_tolerance_days: int = 0,
        today: Optional[Callable[[], date]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        goal_id_factory: Callable[[], str] = new_goal_id,
        session_id_factory: Callable[[], str] = new_session_id,
    ) -> None:
        self.store = store
        self._future_tolerance_days = future_tolerance_days
        self._today = today or date.today
        self._clock = clock or utc_now
        self._goal_id_factory = goal_id_factory
        self._session_id_factory = session_id_factory
        self.reload()

    @classmethod
    def open(cls, root_path: Union[str, Path], **kwargs: Any) -> "Tracker":
        """
        Open the archive at ``root_path`` and load it.

        Raises:
            ArchiveUnavailable: If the root cannot be used.
            CorruptArchive / UnsupportedSchema: If the archive cannot be loaded.
        """
        return cls(ArchiveStore.open(root_path), **kwargs)

    @classmethod
    def from_config(cls, config: Any, **kwargs: Any) -> "Tracker":
        """Create a Tracker from a :class:`~successcore.config.SuccessConfig`."""
        kwargs.setdefault("future_tolerance_days", config.future_tolerance_days)
        return cls.open(config.archive_path, **kwargs)

    def reload(self) -> None:
        """Discard the in-memory model and load it again from disk."""
        self.archive: Archive = self.store.load()
        self.goals = GoalRepository(
            self.store, self.archive, id_factory=self._goal_id_factory, clock=self._clock
        )
        self.ledger = SessionLedger(
            self.store,
            self.archive,
            self.goals,
            future_tolerance_days=self._future_tolerance_days,
            today=self._today,
            id_factory=self._session_id_factory,
            clock=self._clock,
        )
        self.aggregator = ProgressAggregator(self.goals, self.ledger)
        logger.debug("Tracker loaded %d goals from %s", len(self.archive.goals), self.store.root)

    # ----- notes editing handoff ----------------------------------------------

    def notes_text(self, goal_id: GoalId) -> str:
        return self.goals.notes_text(goal_id)

    def set_notes(self, goal_id: GoalId, text: str) -> None:
        self.goals.set_notes(goal_id, text)
