"""Timeout and backoff behaviour of capability calls."""

from __future__ import annotations

import asyncio

import pytest

from app.application.interfaces import CapabilityError
from app.services import retry as retry_module
from app.services.retry import RetryPolicy, call_with_retry


class Flaky:
    def __init__(self, failures: list[Exception], result: str = "ok"):
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    async def __call__(self, *args, **kwargs) -> str:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


@pytest.fixture
def retries(monkeypatch) -> list[str]:
    recorded: list[str] = []
    monkeypatch.setattr(retry_module, "record_capability_retry", recorded.append)
    return recorded


def test_delay_grows_exponentially_and_is_capped():
    policy = RetryPolicy(attempts=5, base_delay=1.0, max_delay=5.0)

    assert [policy.delay_for(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]


@pytest.mark.anyio
async def test_transient_errors_are_retried(retries):
    func = Flaky([CapabilityError("throttled", transient=True)] * 2)
    policy = RetryPolicy(attempts=3, base_delay=0.0, max_delay=0.0, timeout=None)

    assert await call_with_retry("test", func, policy=policy) == "ok"
    assert func.calls == 3
    assert retries == ["test", "test"]


@pytest.mark.anyio
async def test_permanent_error_is_raised_immediately(retries):
    func = Flaky([CapabilityError("access denied")])

    with pytest.raises(CapabilityError, match="access denied"):
        await call_with_retry("test", func, policy=RetryPolicy(attempts=3, base_delay=0.0, timeout=None))
    assert func.calls == 1
    assert retries == []


@pytest.mark.anyio
async def test_last_error_raised_when_attempts_exhausted(retries):
    errors = [CapabilityError(f"busy {n}", transient=True) for n in range(3)]
    func = Flaky(errors)

    with pytest.raises(CapabilityError, match="busy 2"):
        await call_with_retry("test", func, policy=RetryPolicy(attempts=3, base_delay=0.0, timeout=None))
    assert func.calls == 3


@pytest.mark.anyio
async def test_timeout_becomes_transient_capability_error():
    calls = 0

    async def hang() -> str:
        nonlocal calls
        calls += 1
        await asyncio.sleep(10)
        return "never"

    policy = RetryPolicy(attempts=2, base_delay=0.0, max_delay=0.0, timeout=0.01)
    with pytest.raises(CapabilityError) as excinfo:
        await call_with_retry("slow", hang, policy=policy)

    assert excinfo.value.transient
    assert "timed out" in str(excinfo.value)
    assert calls == 2


@pytest.mark.anyio
async def test_non_capability_errors_propagate_untouched(retries):
    func = Flaky([KeyError("bug")])

    with pytest.raises(KeyError):
        await call_with_retry("test", func, policy=RetryPolicy(attempts=3, base_delay=0.0, timeout=None))
    assert func.calls == 1
