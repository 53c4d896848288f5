# tests/test_exceptions.py
"""
Tests for the successcore.exceptions module.

Covers the hierarchy, attributes and message formatting of every error
the library raises.
"""

from pathlib import Path

import pytest

from successcore.exceptions import (
    ArchiveError,
    ArchiveUnavailable,
    ConfigError,
    CorruptArchive,
    NotFound,
    SuccessError,
    UnsupportedSchema,
    ValidationError,
    WriteFailure,
)


class TestSuccessError:
    """Tests for the base SuccessError exception."""

    def test_default_message(self):
        """Test default error message."""
        assert "unspecified error" in str(SuccessError()).lower()

    def test_custom_message(self):
        """Test custom error message."""
        assert str(SuccessError("boom")) == "boom"

    @pytest.mark.parametrize(
        "error",
        [
            ConfigError(),
            ValidationError(),
            NotFound("goal", "goal_x"),
            ArchiveUnavailable("/nowhere"),
            WriteFailure("/tmp/a.json"),
            CorruptArchive("bad"),
            UnsupportedSchema(9, 2),
        ],
    )
    def test_everything_is_a_success_error(self, error):
        """Test that every library error can be caught as SuccessError."""
        assert isinstance(error, SuccessError)


class TestValidationError:
    """Tests for ValidationError."""

    def test_field_attribute(self):
        """Test the offending field is recorded."""
        error = ValidationError("Title must not be empty.", field="title")
        assert error.field == "title"
        assert str(error) == "Title must not be empty."


class TestNotFound:
    """Tests for NotFound."""

    def test_attributes_and_message(self):
        """Test kind and identifier are kept and formatted."""
        error = NotFound("session", "sess_123")
        assert error.kind == "session"
        assert error.identifier == "sess_123"
        assert "Session ID: 'sess_123'" in str(error)


class TestArchiveErrors:
    """Tests for the archive error family."""

    def test_unavailable_root(self):
        """Test ArchiveUnavailable records its root."""
        error = ArchiveUnavailable("/no/such/root")
        assert isinstance(error, ArchiveError)
        assert error.root == Path("/no/such/root")
        assert "/no/such/root" in str(error)

    def test_write_failure_path(self):
        """Test WriteFailure records the record path and its directory."""
        error = WriteFailure("/data/goals/goal_1.json")
        assert error.path == Path("/data/goals/goal_1.json")
        assert error.root == Path("/data/goals")

    def test_corrupt_archive_detail(self):
        """Test CorruptArchive carries detail and optional path."""
        error = CorruptArchive("title: field required", "/data/goals/goal_1.json")
        assert error.detail == "title: field required"
        assert error.path == Path("/data/goals/goal_1.json")
        assert "title: field required" in str(error)

    def test_corrupt_archive_without_path(self):
        """Test CorruptArchive works without a path."""
        error = CorruptArchive("duplicate session id")
        assert error.path is None
        assert error.root is None

    def test_unsupported_schema_versions(self):
        """Test UnsupportedSchema reports both versions."""
        error = UnsupportedSchema(7, 2)
        assert error.found == 7
        assert error.supported == 2
        assert "7" in str(error) and "2" in str(error)
