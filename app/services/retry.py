"""Timeout + bounded retry with exponential backoff for capability calls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from app.application.interfaces import CapabilityError
from app.config.settings import PipelineConfig
from app.telemetry import record_capability_retry

T = TypeVar("T")
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 20.0
    timeout: float | None = 120.0

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "RetryPolicy":
        return cls(
            attempts=config.retry_attempts,
            base_delay=config.retry_base_delay_seconds,
            max_delay=config.retry_max_delay_seconds,
            timeout=config.call_timeout_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based): base * 2^(attempt-1), capped."""
        return min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))


async def call_with_retry(
    label: str,
    func: Callable[..., Awaitable[T]],
    *args,
    policy: RetryPolicy,
    **kwargs,
) -> T:
    """Await ``func`` with a per-call timeout, retrying transient capability errors.

    Permanent errors propagate on the first failure; transient ones (including
    timeouts) are retried until ``policy.attempts`` is exhausted and the last
    error is raised.
    """

    for attempt in range(1, policy.attempts + 1):
        try:
            if policy.timeout is None:
                return await func(*args, **kwargs)
            return await asyncio.wait_for(func(*args, **kwargs), timeout=policy.timeout)
        except asyncio.TimeoutError as exc:
            error: CapabilityError = CapabilityError(
                f"{label} timed out after {policy.timeout}s", transient=True
            )
            error.__cause__ = exc
        except CapabilityError as exc:
            error = exc

        if not error.transient or attempt >= policy.attempts:
            raise error

        delay = policy.delay_for(attempt)
        record_capability_retry(label)
        logger.warning(
            "%s failed (attempt %s/%s): %s. Retrying in %.1fs",
            label,
            attempt,
            policy.attempts,
            error,
            delay,
        )
        await asyncio.sleep(delay)

    # attempts >= 1 is enforced by the config model, so the loop always returns or raises.
    raise CapabilityError(f"{label} was not attempted")


__all__ = ["RetryPolicy", "call_with_retry"]
