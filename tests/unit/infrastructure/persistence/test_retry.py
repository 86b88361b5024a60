"""Tests for the SQLite lock retry decorator."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from coverscout.infrastructure.persistence.retry import is_lock_error, with_db_retry


def _locked() -> OperationalError:
    return OperationalError("INSERT", {}, Exception("database is locked"))


class TestIsLockError:
    """Tests for is_lock_error()."""

    def test_locked(self) -> None:
        assert is_lock_error(_locked()) is True

    def test_other_operational_error(self) -> None:
        assert is_lock_error(OperationalError("SELECT", {}, Exception("no such table"))) is False

    def test_other_exception(self) -> None:
        assert is_lock_error(ValueError("database is locked")) is False


class TestWithDbRetry:
    """Tests for with_db_retry()."""

    async def test_retries_lock_errors(self) -> None:
        calls = 0

        @with_db_retry(max_attempts=3, initial_delay=0.001)
        async def write() -> str:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise _locked()
            return "ok"

        assert await write() == "ok"
        assert calls == 3

    async def test_gives_up_after_max_attempts(self) -> None:
        calls = 0

        @with_db_retry(max_attempts=2, initial_delay=0.001)
        async def write() -> None:
            nonlocal calls
            calls += 1
            raise _locked()

        with pytest.raises(OperationalError):
            await write()
        assert calls == 2

    async def test_other_errors_are_not_retried(self) -> None:
        calls = 0

        @with_db_retry(max_attempts=3, initial_delay=0.001)
        async def write() -> None:
            nonlocal calls
            calls += 1
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        with pytest.raises(IntegrityError):
            await write()
        assert calls == 1
