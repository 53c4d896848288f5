# src/successcore/models.py
"""
Core data models for the successcore library.

This module defines the Pydantic models used to represent goals, the
sessions logged against them and the archive that ties both together.
Every model is validated eagerly on construction, which is also how
records read back from disk are checked: a record either becomes a typed
model or raises, there is no best-effort partial object.
"""

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

GoalId = str
SessionId = str
Day = date


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_goal_id() -> GoalId:
    return f"goal_{uuid.uuid4().hex}"


def new_session_id() -> SessionId:
    return f"sess_{uuid.uuid4().hex}"


def _ensure_utc(v: Any) -> Any:
    """Normalise naive or offset datetimes (or ISO strings) to UTC."""
    if isinstance(v, str):
        try:
            v = datetime.fromisoformat(v[:-1] + "+00:00" if v.endswith("Z") else v)
        except ValueError:
            raise ValueError(f"Invalid datetime format: {v}")
    if isinstance(v, datetime):
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
    return v


class GoalState(str, Enum):
    """
    Lifecycle of a goal.

    ``TOMBSTONED`` is a soft delete: the goal is kept only so that the
    sessions logged against it still resolve to a goal record.
    """
    ACTIVE = "active"
    ARCHIVED = "archived"
    TOMBSTONED = "tombstoned"


class GoalKind(str, Enum):
    """Whether sessions against the goal record work done or a reward taken."""
    GOAL = "goal"
    REWARD = "reward"


class Goal(BaseModel):
    """
    A tracked objective.

    Attributes:
        id: Stable identifier, immutable once assigned.
        title: Non-empty display title.
        created_at: Creation time (UTC). Orders goals in listings.
        target: Optional numeric threshold the cumulative session value aims for.
        reward: Optional description of the reward for reaching the target.
        notes: Free-form notes text, edited through an external editor.
        state: Lifecycle state.
        kind: Goal or reward.
        quantity_name: Unit of the optional per-session quantity (e.g. "pages").
        commands: Commands associated with the goal. Stored, never executed here.
    """
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: GoalId = Field(description="Stable unique identifier of the goal.")
    title: str = Field(description="Non-empty title of the goal.")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp (UTC).")
    target: Optional[float] = Field(default=None, gt=0, description="Numeric target, if any.")
    reward: Optional[str] = Field(default=None, description="Reward description, if any.")
    notes: str = Field(default="", description="Free-form notes text.")
    state: GoalState = Field(default=GoalState.ACTIVE, description="Lifecycle state.")
    kind: GoalKind = Field(default=GoalKind.GOAL, description="Goal or reward.")
    quantity_name: Optional[str] = Field(default=None, description="Unit name for session quantities.")
    commands: List[str] = Field(default_factory=list, description="Associated shell commands.")

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be empty")
        return v

    @field_validator("created_at", mode="before")
    @classmethod
    def created_at_utc(cls, v: Any) -> Any:
        return _ensure_utc(v)

    @property
    def is_active(self) -> bool:
        return self.state is GoalState.ACTIVE

    @property
    def is_tombstoned(self) -> bool:
        return self.state is GoalState.TOMBSTONED

    @property
    def is_reward(self) -> bool:
        return self.kind is GoalKind.REWARD

    @property
    def sort_key(self) -> Tuple[datetime, str]:
        return (self.created_at, self.id)

    def as_tombstone(self) -> "Goal":
        """Return a tombstoned copy: identity and title kept, content cleared."""
        return self.model_copy(update={
            "state": GoalState.TOMBSTONED,
            "notes": "",
            "target": None,
            "reward": None,
            "quantity_name": None,
            "commands": [],
        })


class Session(BaseModel):
    """
    One dated contribution logged against a goal.

    ``goal_id`` is a plain identifier into the goal mapping, not an owning
    reference; resolving it is an explicit, fallible lookup.
    """
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: SessionId = Field(description="Unique identifier of the session.")
    goal_id: GoalId = Field(description="Identifier of the goal this session counts towards.")
    date: Day = Field(description="Calendar day of the session.")
    value: float = Field(ge=0, description="Contribution (duration or count).")
    note: Optional[str] = Field(default=None, description="Optional short note.")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp (UTC), breaks same-day ties.")
    quantity: Optional[float] = Field(default=None, ge=0, description="Optional secondary count in the goal's quantity unit.")

    @field_validator("created_at", mode="before")
    @classmethod
    def created_at_utc(cls, v: Any) -> Any:
        return _ensure_utc(v)

    @property
    def sort_key(self) -> Tuple[Day, datetime, str]:
        return (self.date, self.created_at, self.id)


class Archive(BaseModel):
    """
    The full in-memory archive: goals keyed by id, and one chronologically
    ordered ledger of sessions per goal.

    Validation enforces referential integrity. A session whose goal id does
    not resolve to a goal record is a corruption condition, not a valid state.
    """
    model_config = ConfigDict(extra="forbid")

    goals: Dict[GoalId, Goal] = Field(default_factory=dict)
    sessions: Dict[GoalId, List[Session]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_integrity(self) -> "Archive":
        for key, goal in self.goals.items():
            if key != goal.id:
                raise ValueError(f"goal stored under key '{key}' has id '{goal.id}'")

        seen: set = set()
        for goal_id, ledger in self.sessions.items():
            if goal_id not in self.goals:
                raise ValueError(f"sessions reference unknown goal '{goal_id}'")
            for session in ledger:
                if session.goal_id != goal_id:
                    raise ValueError(
                        f"session '{session.id}' belongs to goal '{session.goal_id}' "
                        f"but is stored in the ledger of '{goal_id}'"
                    )
                if session.id in seen:
                    raise ValueError(f"duplicate session id '{session.id}'")
                seen.add(session.id)
            ledger.sort(key=lambda s: s.sort_key)
        self.sessions = {goal_id: ledger for goal_id, ledger in self.sessions.items() if ledger}
        return self

    def session_count(self, goal_id: GoalId) -> int:
        return len(self.sessions.get(goal_id, ()))
