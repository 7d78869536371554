"""Tests for transient database error retries."""

import pytest
from sqlalchemy.exc import OperationalError

from fleetledger.services.retry import with_retry


def _transient() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection reset"))


class TestWithRetry:
    def test_returns_first_success(self) -> None:
        sleeps: list[float] = []
        assert with_retry(lambda: 42, sleep=sleeps.append) == 42
        assert sleeps == []

    def test_backs_off_exponentially(self) -> None:
        sleeps: list[float] = []
        calls = {"n": 0}

        def flaky():
            calls["n"] += 1
            if calls["n"] < 3:
                raise _transient()
            return "ok"

        result = with_retry(flaky, max_attempts=3, base_delay=1.0, sleep=sleeps.append)

        assert result == "ok"
        assert sleeps == [1.0, 2.0]

    def test_raises_after_last_attempt(self) -> None:
        sleeps: list[float] = []

        def always_down():
            raise _transient()

        with pytest.raises(OperationalError):
            with_retry(always_down, max_attempts=3, base_delay=1.0, sleep=sleeps.append)

        assert sleeps == [1.0, 2.0]

    def test_non_transient_error_is_not_retried(self) -> None:
        sleeps: list[float] = []
        calls = {"n": 0}

        def broken():
            calls["n"] += 1
            raise ValueError("bad query")

        with pytest.raises(ValueError):
            with_retry(broken, max_attempts=3, sleep=sleeps.append)

        assert calls["n"] == 1
        assert sleeps == []
