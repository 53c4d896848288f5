# src/successcore/storage/schema.py
"""
Schema versioning for the successcore archive.

Every file in an archive root carries an explicit ``schema_version`` tag.
Older records are brought forward by a chain of pure dict -> dict
migrations *before* model validation, so validation only ever sees the
current layout.

Schema Version History:
    v1: Legacy layout. Goals carry ``name``, ``is_reward``, ``note`` and
        boolean ``archived`` / ``deleted`` flags with an epoch-seconds
        ``created_at``. Sessions carry epoch ``start_at`` / ``end_at`` and
        are valued by their duration.
    v2: Current layout. Goals carry ``title``, ``kind`` and a ``state``
        enum; sessions carry a calendar ``date``, a numeric ``value`` and
        an ISO ``created_at``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

CURRENT_SCHEMA_VERSION = 2
ARCHIVE_FORMAT = "successcore-archive"
VERSION_KEY = "schema_version"

Record = Dict[str, Any]


@dataclass(frozen=True)
class SchemaMigration:
    """Defines a single forward migration step for goal and ledger records."""

    from_version: int
    to_version: int
    description: str
    migrate_goal: Callable[[Record], Record]
    migrate_ledger: Callable[[Record], Record]


# =============================================================================
# v1 -> v2
# =============================================================================


def _epoch_to_iso(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
    return value


def _v1_goal_to_v2(record: Record) -> Record:
    goal = dict(record.get("goal", {}))
    if goal.get("deleted"):
        state = "tombstoned"
    elif goal.get("archived"):
        state = "archived"
    else:
        state = "active"

    migrated = {
        "id": str(goal["id"]) if "id" in goal else None,
        "title": goal.get("name"),
        "created_at": _epoch_to_iso(goal.get("created_at")),
        "target": goal.get("target"),
        "reward": goal.get("reward"),
        "notes": goal.get("note") or "",
        "state": state,
        "kind": "reward" if goal.get("is_reward") else "goal",
        "quantity_name": goal.get("quantity_name"),
        "commands": list(goal.get("commands") or []),
    }
    return {VERSION_KEY: 2, "goal": migrated}


def _v1_session_to_v2(session: Record) -> Record:
    start_at = session.get("start_at")
    end_at = session.get("end_at", start_at)
    if isinstance(start_at, (int, float)) and isinstance(end_at, (int, float)):
        day = datetime.fromtimestamp(start_at, tz=timezone.utc).date().isoformat()
        value = max(end_at - start_at, 0) / 60
    else:
        # Leave the malformed values in place so validation reports them.
        day, value = start_at, end_at
    return {
        "id": str(session["id"]) if "id" in session else None,
        "goal_id": str(session["goal_id"]) if "goal_id" in session else None,
        "date": day,
        "value": value,
        "note": session.get("note"),
        "created_at": _epoch_to_iso(start_at),
        "quantity": session.get("quantity"),
    }


def _v1_ledger_to_v2(record: Record) -> Record:
    goal_id = record.get("goal_id")
    sessions = record.get("sessions", [])
    if not isinstance(sessions, list) or not all(isinstance(s, dict) for s in sessions):
        raise ValueError("legacy 'sessions' must be a list of objects")
    return {
        VERSION_KEY: 2,
        "goal_id": str(goal_id) if goal_id is not None else None,
        "sessions": [_v1_session_to_v2(s) for s in sessions],
    }


# =============================================================================
# MIGRATION DEFINITIONS
# =============================================================================

MIGRATIONS: List[SchemaMigration] = [
    SchemaMigration(
        from_version=1,
        to_version=2,
        description="Rename goal fields, replace flags with a state enum, "
                    "value sessions by day instead of epoch range",
        migrate_goal=_v1_goal_to_v2,
        migrate_ledger=_v1_ledger_to_v2,
    ),
]


def _walk(record: Record, version: int, pick: Callable[[SchemaMigration], Callable[[Record], Record]]) -> Record:
    for migration in MIGRATIONS:
        if migration.from_version == version:
            logger.debug("Migrating record from schema v%d to v%d", version, migration.to_version)
            record = pick(migration)(record)
            version = migration.to_version
    if version != CURRENT_SCHEMA_VERSION:
        raise ValueError(f"no migration path from schema version {version}")
    return record


def migrate_goal_record(record: Record, version: int) -> Record:
    """Bring a goal record at ``version`` forward to the current schema."""
    return _walk(record, version, lambda m: m.migrate_goal)


def migrate_ledger_record(record: Record, version: int) -> Record:
    """Bring a ledger record at ``version`` forward to the current schema."""
    return _walk(record, version, lambda m: m.migrate_ledger)
