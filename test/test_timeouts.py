"""Tests for the timeout policy and the result helpers."""

import asyncio

import pytest

from lodge_portal.config import Settings
from lodge_portal.shared.exceptions import NotFoundError, OperationTimeoutError
from lodge_portal.shared.result import Err, Ok, capture
from lodge_portal.shared.timeouts import TimeoutPolicy, with_timeout


async def _after(delay: float, value: str) -> str:
    await asyncio.sleep(delay)
    return value


class TestWithTimeout:
    @pytest.mark.asyncio
    async def test_fast_call_wins(self) -> None:
        assert await with_timeout(_after(0, "done"), 0.5, "Fast call") == "done"

    @pytest.mark.asyncio
    async def test_slow_call_times_out(self) -> None:
        with pytest.raises(OperationTimeoutError) as exc_info:
            await with_timeout(_after(1, "late"), 0.05, "Slow call")
        assert exc_info.value.operation == "Slow call"
        assert exc_info.value.status_code == 504
        assert exc_info.value.message == "Slow call timed out after 0.05s"

    @pytest.mark.asyncio
    async def test_errors_pass_through(self) -> None:
        async def failing() -> None:
            raise NotFoundError("gone")

        with pytest.raises(NotFoundError):
            await with_timeout(failing(), 0.5, "Failing call")


def test_policy_from_settings() -> None:
    settings = Settings(_env_file=None, probe_timeout_seconds=1, write_timeout_seconds=20)
    policy = TimeoutPolicy.from_settings(settings)
    assert policy.probe == 1.0
    assert policy.write == 20.0
    assert policy.quick_read == 10.0
    assert policy.bulk_read == 90.0


class TestCapture:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        result = await capture(_after(0, "ok"))
        assert isinstance(result, Ok)
        assert result.is_ok
        assert result.unwrap() == "ok"

    @pytest.mark.asyncio
    async def test_app_error_captured(self) -> None:
        async def failing() -> None:
            raise NotFoundError("Member profile not found")

        result = await capture(failing())
        assert isinstance(result, Err)
        assert result.message == "Member profile not found"
        with pytest.raises(NotFoundError):
            result.unwrap()

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self) -> None:
        async def broken() -> None:
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await capture(broken())
