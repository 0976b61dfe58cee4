"""Tests for delivery store read retries."""

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from hookrelay.storage.retry import is_transient_db_error, storage_retry


def operational_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("server closed the connection"))


class TestIsTransientDbError:
    """Tests for is_transient_db_error."""

    def test_operational_error(self):
        assert is_transient_db_error(operational_error())

    def test_invalidated_connection(self):
        error = DBAPIError("SELECT 1", {}, Exception("reset"), connection_invalidated=True)
        assert is_transient_db_error(error)

    def test_plain_dbapi_error(self):
        assert not is_transient_db_error(DBAPIError("SELECT 1", {}, Exception("syntax")))

    def test_integrity_error(self):
        assert not is_transient_db_error(IntegrityError("INSERT", {}, Exception("duplicate")))

    def test_unrelated_error(self):
        assert not is_transient_db_error(ValueError("nope"))


class TestStorageRetry:
    """Tests for the storage_retry decorator."""

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self):
        calls = 0

        @storage_retry
        async def flaky() -> str:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise operational_error()
            return "rows"

        assert await flaky() == "rows"
        assert calls == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_three_attempts(self):
        calls = 0

        @storage_retry
        async def down() -> None:
            nonlocal calls
            calls += 1
            raise operational_error()

        with pytest.raises(OperationalError):
            await down()
        assert calls == 3

    @pytest.mark.asyncio
    async def test_permanent_errors_not_retried(self):
        calls = 0

        @storage_retry
        async def broken() -> None:
            nonlocal calls
            calls += 1
            raise IntegrityError("INSERT", {}, Exception("duplicate key"))

        with pytest.raises(IntegrityError):
            await broken()
        assert calls == 1
