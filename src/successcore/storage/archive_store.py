# src/successcore/storage/archive_store.py
"""
JSON file-based persistence for the goal/session archive.

The archive root is a directory with a private, versioned layout::

    <root>/archive.json            manifest (format tag + schema version)
    <root>/goals/<goal_id>.json    one record per goal
    <root>/sessions/<goal_id>.json the full session ledger of one goal

Each file is a logical unit of write and is replaced atomically: the new
content is written to ``<name>.tmp`` next to the target, flushed to disk
and then moved over the target with ``os.replace``. A crash between the
two steps leaves the previous record in place; stray ``.tmp`` files are
ignored on load.

Loading is all-or-nothing. Any record that fails validation raises
``CorruptArchive`` and no partial archive is returned.

All filesystem access of the library happens in this module.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ArchiveUnavailable, CorruptArchive, UnsupportedSchema, WriteFailure
from ..models import Archive, Goal, GoalId, Session
from .schema import (
    ARCHIVE_FORMAT,
    CURRENT_SCHEMA_VERSION,
    VERSION_KEY,
    migrate_goal_record,
    migrate_ledger_record,
)

logger = logging.getLogger(__name__)


def _describe(exc: PydanticValidationError) -> str:
    """Condense a pydantic error into a one-line detail string."""
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "record"
    return f"{location}: {first.get('msg', 'invalid value')}"


class ArchiveStore:
    """
    Reads and writes an archive under a single root directory.

    Use :meth:`open` to obtain a store; it prepares the directory layout
    and verifies that the root is usable. The root path is taken as given,
    no ``~`` or environment variable expansion is applied here.

    Example:
        >>> store = ArchiveStore.open("/tmp/success")
        >>> archive = store.load()
        >>> store.save(archive)
    """

    MANIFEST_NAME = "archive.json"
    GOALS_DIR_NAME = "goals"
    SESSIONS_DIR_NAME = "sessions"
    RECORD_SUFFIX = ".json"
    TMP_SUFFIX = ".tmp"

    def __init__(self, root: Union[str, Path]) -> None:
        self._root = Path(root)
        self._goals_dir = self._root / self.GOALS_DIR_NAME
        self._sessions_dir = self._root / self.SESSIONS_DIR_NAME
        self._manifest_path = self._root / self.MANIFEST_NAME

    # ----- lifecycle ----------------------------------------------------------

    @classmethod
    def open(cls, root_path: Union[str, Path]) -> "ArchiveStore":
        """
        Open (and if needed create) an archive root.

        Raises:
            ArchiveUnavailable: If the root cannot be created, is not a
                directory, or is not writable.
        """
        store = cls(root_path)
        store._prepare()
        return store

    def _prepare(self) -> None:
        root = self._root
        if root.exists() and not root.is_dir():
            raise ArchiveUnavailable(root, "Archive root is not a directory.")
        try:
            for directory in (root, self._goals_dir, self._sessions_dir):
                directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArchiveUnavailable(root, f"Could not create archive directories ({e}).") from e

        if not os.access(root, os.W_OK | os.X_OK):
            raise ArchiveUnavailable(root, "Archive root is not writable.")

        if not self._manifest_path.exists():
            try:
                self._write_manifest()
            except WriteFailure as e:
                raise ArchiveUnavailable(root, f"Could not initialise archive manifest ({e}).") from e
            logger.debug("Initialised new archive at %s", root)

    @property
    def root(self) -> Path:
        return self._root

    def goal_path(self, goal_id: GoalId) -> Path:
        return self._goals_dir / f"{goal_id}{self.RECORD_SUFFIX}"

    def ledger_path(self, goal_id: GoalId) -> Path:
        return self._sessions_dir / f"{goal_id}{self.RECORD_SUFFIX}"

    # ----- reading ------------------------------------------------------------

    def load(self) -> Archive:
        """
        Load and validate the whole archive.

        Raises:
            CorruptArchive: If any record is unparseable, fails validation,
                or references a goal that does not exist.
            UnsupportedSchema: If any record is newer than this library.
            ArchiveUnavailable: If a record cannot be read at all.
        """
        self._check_manifest()

        goals: Dict[GoalId, Goal] = {}
        for path in self._records(self._goals_dir):
            goal = self._load_goal(path)
            if path.stem != goal.id:
                raise CorruptArchive(f"goal record file name does not match id '{goal.id}'", path)
            goals[goal.id] = goal

        sessions: Dict[GoalId, List[Session]] = {}
        for path in self._records(self._sessions_dir):
            goal_id, ledger = self._load_ledger(path)
            if path.stem != goal_id:
                raise CorruptArchive(f"ledger file name does not match goal id '{goal_id}'", path)
            if goal_id not in goals:
                raise CorruptArchive(f"ledger references unknown goal '{goal_id}'", path)
            sessions[goal_id] = ledger

        try:
            archive = Archive(goals=goals, sessions=sessions)
        except PydanticValidationError as e:
            raise CorruptArchive(_describe(e), self._root) from e
        except ValueError as e:
            raise CorruptArchive(str(e), self._root) from e

        logger.debug(
            "Loaded %d goals and %d sessions from %s",
            len(archive.goals),
            sum(len(ledger) for ledger in archive.sessions.values()),
            self._root,
        )
        return archive

    def _records(self, directory: Path) -> List[Path]:
        try:
            return sorted(
                p for p in directory.glob(f"*{self.RECORD_SUFFIX}") if p.is_file()
            )
        except OSError as e:
            raise ArchiveUnavailable(self._root, f"Could not list {directory} ({e}).") from e

    def _read_json(self, path: Path) -> Dict[str, Any]:
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ArchiveUnavailable(self._root, f"Could not read {path} ({e}).") from e
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptArchive(f"unparseable JSON ({e.msg} at line {e.lineno})", path) from e
        if not isinstance(data, dict):
            raise CorruptArchive("record is not a JSON object", path)
        return data

    def _version_of(self, data: Dict[str, Any], path: Path) -> int:
        version = data.get(VERSION_KEY)
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            raise CorruptArchive(f"missing or invalid '{VERSION_KEY}' tag", path)
        if version > CURRENT_SCHEMA_VERSION:
            raise UnsupportedSchema(version, CURRENT_SCHEMA_VERSION, path)
        return version

    def _check_manifest(self) -> None:
        if not self._manifest_path.exists():
            raise CorruptArchive("archive manifest is missing", self._manifest_path)
        data = self._read_json(self._manifest_path)
        if data.get("format") != ARCHIVE_FORMAT:
            raise CorruptArchive(f"unexpected archive format {data.get('format')!r}", self._manifest_path)
        self._version_of(data, self._manifest_path)

    def _upgrade(self, data: Dict[str, Any], path: Path, migrate) -> Dict[str, Any]:
        version = self._version_of(data, path)
        if version == CURRENT_SCHEMA_VERSION:
            return data
        try:
            return migrate(data, version)
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
            raise CorruptArchive(f"cannot migrate record from schema v{version} ({e})", path) from e

    def _load_goal(self, path: Path) -> Goal:
        data = self._upgrade(self._read_json(path), path, migrate_goal_record)
        if "goal" not in data:
            raise CorruptArchive("missing required field 'goal'", path)
        try:
            return Goal.model_validate(data["goal"])
        except PydanticValidationError as e:
            raise CorruptArchive(_describe(e), path) from e

    def _load_ledger(self, path: Path) -> Tuple[GoalId, List[Session]]:
        data = self._upgrade(self._read_json(path), path, migrate_ledger_record)
        goal_id = data.get("goal_id")
        if not isinstance(goal_id, str) or not goal_id:
            raise CorruptArchive("missing or invalid field 'goal_id'", path)
        raw_sessions = data.get("sessions")
        if not isinstance(raw_sessions, list):
            raise CorruptArchive("missing or invalid field 'sessions'", path)
        try:
            ledger = [Session.model_validate(s) for s in raw_sessions]
        except PydanticValidationError as e:
            raise CorruptArchive(_describe(e), path) from e
        return goal_id, ledger

    # ----- writing ------------------------------------------------------------

    def save(self, archive: Archive) -> None:
        """
        Persist a whole archive, one atomic write per goal record and ledger.

        Records of goals no longer present in ``archive`` are removed.

        Raises:
            WriteFailure: If any record cannot be written.
        """
        for goal in archive.goals.values():
            self.save_goal(goal)
            self.save_ledger(goal.id, archive.sessions.get(goal.id, []))

        for path in self._records(self._goals_dir):
            if path.stem not in archive.goals:
                self.remove_goal(path.stem)
        for path in self._records(self._sessions_dir):
            if path.stem not in archive.goals:
                self._unlink(path)

        self._write_manifest()
        logger.debug("Saved archive with %d goals to %s", len(archive.goals), self._root)

    def save_goal(self, goal: Goal) -> None:
        """Atomically write one goal record."""
        self._write_atomic(
            self.goal_path(goal.id),
            {VERSION_KEY: CURRENT_SCHEMA_VERSION, "goal": goal.model_dump(mode="json")},
        )

    def save_ledger(self, goal_id: GoalId, sessions: Iterable[Session]) -> None:
        """Atomically write the full session ledger of one goal. An empty ledger removes the file."""
        ordered = sorted(sessions, key=lambda s: s.sort_key)
        path = self.ledger_path(goal_id)
        if not ordered:
            self._unlink(path)
            return
        self._write_atomic(
            path,
            {
                VERSION_KEY: CURRENT_SCHEMA_VERSION,
                "goal_id": goal_id,
                "sessions": [s.model_dump(mode="json") for s in ordered],
            },
        )

    def remove_goal(self, goal_id: GoalId) -> None:
        """Physically remove a goal record together with its ledger."""
        self._unlink(self.ledger_path(goal_id))
        self._unlink(self.goal_path(goal_id))
        logger.debug("Removed goal %s from %s", goal_id, self._root)

    def _write_manifest(self) -> None:
        self._write_atomic(
            self._manifest_path,
            {"format": ARCHIVE_FORMAT, VERSION_KEY: CURRENT_SCHEMA_VERSION},
        )

    def _unlink(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise WriteFailure(path, f"Failed to remove archive record ({e}).") from e

    def _write_atomic(self, path: Path, payload: Dict[str, Any]) -> None:
        """Write ``payload`` as JSON to a temp file, then replace ``path`` with it."""
        tmp_path = path.with_name(path.name + self.TMP_SUFFIX)
        try:
            text = json.dumps(payload, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise WriteFailure(path, f"Failed to serialize archive record ({e}).") from e

        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except (OSError, ValueError) as e:
            # ValueError covers text the utf-8 codec rejects, e.g. lone surrogates
            logger.error("Error writing archive record %s: %s", path, e)
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning("Could not remove temporary file %s: %s", tmp_path, cleanup_error)
            raise WriteFailure(path, f"Failed to write archive record ({e}).") from e
