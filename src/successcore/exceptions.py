# src/successcore/exceptions.py
"""
Custom exceptions for the successcore library.

This module defines a hierarchy of exception classes so that callers
(typically a UI layer) can tell recoverable input problems apart from
I/O failures and from archive integrity failures:

- ``ValidationError`` / ``NotFound``: recoverable, surface to the user.
- ``ArchiveUnavailable`` / ``WriteFailure``: I/O, retry or choose another path.
- ``CorruptArchive`` / ``UnsupportedSchema``: fatal for that archive until
  the on-disk data is repaired or the software is upgraded.
"""

from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]


class SuccessError(Exception):
    """Base class for all successcore specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in successcore."):
        super().__init__(message)


class ConfigError(SuccessError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)


class ValidationError(SuccessError):
    """Raised when user-supplied input is rejected (empty title, negative value, ...)."""
    def __init__(self, message: str = "Invalid input.", field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFound(SuccessError):
    """
    Raised when an identifier does not resolve to a usable entity.

    ``kind`` is the entity type ("goal" or "session") so the UI can decide
    which view to refresh.
    """
    def __init__(self, kind: str, identifier: str, message: str = "Not found."):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{message} {kind.capitalize()} ID: '{identifier}'")


class ArchiveError(SuccessError):
    """Base class for errors related to the on-disk archive."""
    def __init__(self, message: str = "Archive error.", root: Optional[PathLike] = None):
        self.root = Path(root) if root is not None else None
        super().__init__(message)


class ArchiveUnavailable(ArchiveError):
    """Raised when the archive root cannot be created or is not writable."""
    def __init__(self, root: PathLike, message: str = "Archive unavailable."):
        super().__init__(f"{message} Root: '{root}'", root=root)


class WriteFailure(ArchiveError):
    """Raised when persisting a record fails. The previous record stays intact."""
    def __init__(self, path: PathLike, message: str = "Failed to write archive record."):
        self.path = Path(path)
        super().__init__(f"{message} Path: '{path}'", root=self.path.parent)


class CorruptArchive(ArchiveError):
    """
    Raised when stored records fail schema validation on load.

    Loading is all-or-nothing: when this is raised no partially loaded
    archive is returned. ``detail`` describes the first failing record.
    """
    def __init__(self, detail: str, path: Optional[PathLike] = None):
        self.detail = detail
        self.path = Path(path) if path is not None else None
        location = f" Path: '{path}'" if path is not None else ""
        super().__init__(f"Corrupt archive: {detail}.{location}",
                         root=self.path.parent if self.path else None)


class UnsupportedSchema(ArchiveError):
    """Raised when a record carries a schema version newer than this library understands."""
    def __init__(self, found: int, supported: int, path: Optional[PathLike] = None):
        self.found = found
        self.supported = supported
        self.path = Path(path) if path is not None else None
        location = f" Path: '{path}'" if path is not None else ""
        super().__init__(
            f"Unsupported archive schema version {found} (this version supports up to {supported}).{location}",
            root=self.path.parent if self.path else None,
        )
