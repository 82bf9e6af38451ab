# src/llm/retry.py — v1
"""Generic retryable call with capped exponential backoff.

Shared by the retrieval and generation adapters: a single helper
parameterised by a retryable-error predicate and a BackoffPolicy.
"""

from __future__ import annotations

import asyncio
import logging
import random
import socket
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})


class RetryExhausted(Exception):
    """A call failed for good: retries exhausted or error not retryable."""

    def __init__(
        self,
        label: str,
        attempts: int,
        last_error: Exception,
        retryable: bool = True,
    ):
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        self.retryable = retryable
        reason = "retries exhausted" if retryable else "non-retryable error"
        super().__init__(
            f"'{label}' failed after {attempts} attempt(s) ({reason}): {last_error}"
        )


@dataclass(frozen=True)
class BackoffPolicy:
    """Backoff policy: delay = min(base * factor**(retry-1), max_delay)."""

    max_retries: int = 3
    base_delay_s: float = 2.0
    backoff_factor: float = 2.0
    max_delay_s: float = 8.0
    jitter: bool = False

    @classmethod
    def from_settings(cls, settings: Any) -> BackoffPolicy:
        return cls(
            max_retries=settings.max_retries,
            base_delay_s=settings.backoff_base_s,
            backoff_factor=settings.backoff_factor,
            max_delay_s=settings.backoff_cap_s,
        )


DEFAULT_POLICY = BackoffPolicy()


def status_code_of(error: Exception) -> int | None:
    """Extract an HTTP status code from an SDK or HTTP-library exception."""
    status = getattr(error, "status_code", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def is_retryable_error(error: Exception) -> bool:
    """Connection/DNS/timeout errors and HTTP 429/500/502/503/504."""
    status = status_code_of(error)
    if status is not None:
        return status in RETRYABLE_STATUS_CODES
    if isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError, socket.gaierror)):
        return True
    name = type(error).__name__.lower()
    return "timeout" in name or "connection" in name


def compute_delay(policy: BackoffPolicy, retry: int) -> float:
    """Delay before the given retry (1-based)."""
    delay = policy.base_delay_s * (policy.backoff_factor ** (retry - 1))
    delay = min(delay, policy.max_delay_s)
    if policy.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
        delay = min(delay, policy.max_delay_s)
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    label: str = "call",
    policy: BackoffPolicy | None = None,
    is_retryable: Callable[[Exception], bool] = is_retryable_error,
    **kwargs: Any,
) -> Any:
    """Execute an async function, retrying classified-retryable failures.

    Raises:
        RetryExhausted: On a non-retryable error, or once max_retries is spent.
    """
    policy = policy or DEFAULT_POLICY
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            attempts += 1
            if not is_retryable(e):
                raise RetryExhausted(label, attempts, e, retryable=False) from e
            if attempts > policy.max_retries:
                raise RetryExhausted(label, attempts, e) from e

            delay = compute_delay(policy, attempts)
            logger.warning(
                "'%s' — %s (retry %d/%d), retrying in %.1fs",
                label, type(e).__name__, attempts, policy.max_retries, delay,
            )
            await asyncio.sleep(delay)
