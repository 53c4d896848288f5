# src/successcore/storage/__init__.py
"""
Storage package for successcore.

Exposes the file-backed :class:`ArchiveStore` and the schema version
constants used to tag every record it writes.
"""

from .archive_store import ArchiveStore
from .schema import ARCHIVE_FORMAT, CURRENT_SCHEMA_VERSION, MIGRATIONS, SchemaMigration

__all__ = [
    "ArchiveStore",
    "ARCHIVE_FORMAT",
    "CURRENT_SCHEMA_VERSION",
    "MIGRATIONS",
    "SchemaMigration",
]
