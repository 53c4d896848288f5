# src/successcore/tracking/repository.py
"""
Goal repository: the in-memory, authoritative collection of goals.

Every mutation follows the same sequence:

1. validate the request and resolve the goal (``ValidationError`` /
   ``NotFound`` are raised before anything changes);
2. build the updated goal as a new model instance;
3. persist it through the :class:`ArchiveStore`;
4. only then swap it into the in-memory archive.

A failing write therefore raises ``WriteFailure`` and leaves the
in-memory state exactly as it was.
"""

import logging
import math
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, List, Optional, Union

from ..exceptions import NotFound, SuccessError, ValidationError
from ..models import Archive, Goal, GoalId, GoalKind, GoalState, new_goal_id, utc_now
from ..storage import ArchiveStore

logger = logging.getLogger(__name__)

_MAX_ID_ATTEMPTS = 64


class GoalFilter(str, Enum):
    """Selection for :meth:`GoalRepository.list`. ``ALL`` excludes tombstones."""

    ACTIVE = "active"
    ARCHIVED = "archived"
    ALL = "all"
    TOMBSTONED = "tombstoned"

    def matches(self, goal: Goal) -> bool:
        if self is GoalFilter.ALL:
            return not goal.is_tombstoned
        return goal.state.value == self.value


def _clean_title(title: object) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Goal title must not be empty.", field="title")
    return title.strip()


def _check_target(target: object) -> Optional[float]:
    if target is None:
        return None
    if isinstance(target, bool) or not isinstance(target, (int, float)) or not math.isfinite(target):
        raise ValidationError(f"Goal target must be a number, got {target!r}.", field="target")
    if target <= 0:
        raise ValidationError("Goal target must be greater than zero.", field="target")
    return float(target)


def _check_text(value: object, field: str, optional: bool = True) -> Optional[str]:
    if value is None and optional:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be text.", field=field)
    return value


class GoalRepository:
    """
    Create, look up and mutate goals.

    Args:
        store: Archive store used to persist every change.
        archive: The loaded archive. The repository owns ``archive.goals``.
        id_factory: Source of candidate goal ids (collisions are retried).
        clock: Source of creation timestamps.
    """

    def __init__(
        self,
        store: ArchiveStore,
        archive: Archive,
        id_factory: Callable[[], GoalId] = new_goal_id,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._archive = archive
        self._id_factory = id_factory
        self._clock = clock
        self._issued: set = set()

    # ----- creation -----------------------------------------------------------

    def create(
        self,
        title: str,
        target: Optional[float] = None,
        reward: Optional[str] = None,
        *,
        kind: Union[GoalKind, str] = GoalKind.GOAL,
        quantity_name: Optional[str] = None,
        commands: Optional[Iterable[str]] = None,
    ) -> GoalId:
        """
        Create a new active goal and persist it.

        Returns:
            The identifier of the new goal.

        Raises:
            ValidationError: If the title is empty, the target is not a
                positive number, or the kind is unknown.
            WriteFailure: If the goal record cannot be written.
        """
        clean_title = _clean_title(title)
        clean_target = _check_target(target)
        try:
            goal_kind = GoalKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown goal kind {kind!r}.", field="kind")
        command_list = [_check_text(c, "command", optional=False) for c in (commands or [])]

        goal = Goal(
            id=self._fresh_id(),
            title=clean_title,
            created_at=self._clock(),
            target=clean_target,
            reward=_check_text(reward, "reward"),
            kind=goal_kind,
            quantity_name=_check_text(quantity_name, "quantity_name"),
            commands=command_list,
        )
        self._commit(goal)
        self._issued.add(goal.id)
        logger.debug("Created goal %s (%s)", goal.id, goal.title)
        return goal.id

    def _fresh_id(self) -> GoalId:
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = self._id_factory()
            if candidate not in self._archive.goals and candidate not in self._issued:
                return candidate
            logger.debug("Goal id %s already in use, retrying", candidate)
        raise SuccessError(f"Could not allocate a unique goal id after {_MAX_ID_ATTEMPTS} attempts.")

    # ----- lookup -------------------------------------------------------------

    def find(self, goal_id: GoalId) -> Optional[Goal]:
        """Return the goal record in any state, or ``None`` when absent."""
        return self._archive.goals.get(goal_id)

    def get(self, goal_id: GoalId, include_tombstoned: bool = False) -> Goal:
        """
        Return a goal by id.

        Raises:
            NotFound: If the goal is absent, or tombstoned and
                ``include_tombstoned`` is false.
        """
        goal = self._archive.goals.get(goal_id)
        if goal is None or (goal.is_tombstoned and not include_tombstoned):
            raise NotFound("goal", goal_id)
        return goal

    def list(self, filter: Union[GoalFilter, str] = GoalFilter.ACTIVE) -> List[Goal]:
        """Goals matching ``filter``, ordered by creation time then id."""
        try:
            selection = GoalFilter(filter)
        except ValueError:
            raise ValidationError(f"Unknown goal filter {filter!r}.", field="filter")
        return sorted(
            (g for g in self._archive.goals.values() if selection.matches(g)),
            key=lambda g: g.sort_key,
        )

    def search(
        self,
        query: str,
        *,
        kind: Optional[Union[GoalKind, str]] = None,
        include_archived: bool = False,
    ) -> List[Goal]:
        """Case-insensitive title search, in listing order."""
        needle = query.strip().casefold()
        try:
            wanted_kind = GoalKind(kind) if kind is not None else None
        except ValueError:
            raise ValidationError(f"Unknown goal kind {kind!r}.", field="kind")
        pool = self.list(GoalFilter.ALL if include_archived else GoalFilter.ACTIVE)
        return [
            g for g in pool
            if needle in g.title.casefold() and (wanted_kind is None or g.kind is wanted_kind)
        ]

    def notes_text(self, goal_id: GoalId) -> str:
        """Notes of a goal, for handing off to an external editor."""
        return self.get(goal_id).notes

    # ----- mutation -----------------------------------------------------------

    def rename(self, goal_id: GoalId, new_title: str) -> Goal:
        goal = self.get(goal_id)
        return self._commit(goal.model_copy(update={"title": _clean_title(new_title)}))

    def set_target(self, goal_id: GoalId, value: Optional[float]) -> Goal:
        goal = self.get(goal_id)
        return self._commit(goal.model_copy(update={"target": _check_target(value)}))

    def set_notes(self, goal_id: GoalId, text: str) -> Goal:
        goal = self.get(goal_id)
        return self._commit(goal.model_copy(update={"notes": _check_text(text, "notes", optional=False)}))

    def set_reward(self, goal_id: GoalId, text: Optional[str]) -> Goal:
        goal = self.get(goal_id)
        return self._commit(goal.model_copy(update={"reward": _check_text(text, "reward")}))

    def set_quantity_name(self, goal_id: GoalId, name: Optional[str]) -> Goal:
        goal = self.get(goal_id)
        return self._commit(goal.model_copy(update={"quantity_name": _check_text(name, "quantity_name")}))

    def set_commands(self, goal_id: GoalId, commands: Iterable[str]) -> Goal:
        goal = self.get(goal_id)
        command_list = [_check_text(c, "command", optional=False) for c in commands]
        return self._commit(goal.model_copy(update={"commands": command_list}))

    def archive(self, goal_id: GoalId) -> Goal:
        """Move an active goal to the archived state. Sessions are untouched."""
        return self._transition(goal_id, GoalState.ARCHIVED)

    def restore(self, goal_id: GoalId) -> Goal:
        """Move an archived goal back to the active state."""
        return self._transition(goal_id, GoalState.ACTIVE)

    def delete(self, goal_id: GoalId) -> Optional[Goal]:
        """
        Delete a goal.

        A goal without sessions is removed physically and ``None`` is
        returned. A goal with sessions becomes a tombstone (title kept,
        content cleared) so its ledger keeps resolving; the tombstone is
        returned.

        Raises:
            NotFound: If the goal is absent or already tombstoned.
            WriteFailure: If the change cannot be persisted.
        """
        goal = self.get(goal_id)
        if self._archive.session_count(goal_id) == 0:
            self._store.remove_goal(goal_id)
            del self._archive.goals[goal_id]
            logger.debug("Removed goal %s", goal_id)
            return None
        tombstone = self._commit(goal.as_tombstone())
        logger.debug("Tombstoned goal %s with %d sessions", goal_id, self._archive.session_count(goal_id))
        return tombstone

    def _transition(self, goal_id: GoalId, state: GoalState) -> Goal:
        goal = self.get(goal_id)
        if goal.state is state:
            return goal
        return self._commit(goal.model_copy(update={"state": state}))

    def _commit(self, goal: Goal) -> Goal:
        self._store.save_goal(goal)
        self._archive.goals[goal.id] = goal
        return goal
