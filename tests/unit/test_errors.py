"""
Unit tests for error types and repository error wrapping.
"""

import pytest

from tracker.libbackup.errors import (
    BackupError,
    CorruptBackupError,
    InvariantViolation,
    RepositoryFailure,
    repository_errors,
)


class TestErrorTypes:
    def test_all_errors_are_backup_errors(self):
        assert issubclass(CorruptBackupError, BackupError)
        assert issubclass(RepositoryFailure, BackupError)
        assert issubclass(InvariantViolation, BackupError)

    def test_base_error_defaults(self):
        error = BackupError("boom")

        assert str(error) == "boom"
        assert error.code == "BACKUP_ERROR"
        assert error.details == {}

    def test_invariant_violation_keeps_context(self):
        error = InvariantViolation("missing item", key="/x", source_id=3)

        assert error.code == "INVARIANT_VIOLATION"
        assert error.details == {"key": "/x", "source_id": 3}


class TestRepositoryErrors:
    def test_wraps_collaborator_exception(self):
        cause = KeyError("row")

        with pytest.raises(RepositoryFailure) as exc_info:
            with repository_errors("unit", "insert"):
                raise cause

        error = exc_info.value
        assert error.entity == "unit"
        assert error.operation == "insert"
        assert error.details == {"entity": "unit", "operation": "insert"}
        assert error.__cause__ is cause
        assert "unit.insert" in str(error)

    def test_backup_errors_pass_through(self):
        with pytest.raises(InvariantViolation):
            with repository_errors("item", "find"):
                raise InvariantViolation("defect")

    def test_no_error_is_silent(self):
        with repository_errors("track", "find_for_item"):
            value = 1

        assert value == 1
