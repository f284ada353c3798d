"""Retry policy for agent invocations: exponential backoff with jitter."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from agentchain.core.exceptions import RetryExhaustedError, UnknownActionError

logger = structlog.get_logger(__name__)


@dataclass
class RetryPolicy:
    """How often, and how patiently, a failed invocation is retried.

    Attributes:
        max_retries: Retries after the first attempt. ``0`` disables retrying.
        base_delay: Backoff before the first retry, in seconds.
        max_delay: Upper bound for any single backoff.
        exponential_base: Growth factor between consecutive backoffs.
        jitter: Stretch each backoff by a random 0-50 % to spread out retries
            of concurrently running tasks.
        retryable_exceptions: Exception types that trigger a retry.
        fatal_exceptions: Exception types that are re-raised immediately even
            when they match ``retryable_exceptions``. An unknown action will
            not start existing between attempts.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: tuple[type[BaseException], ...] = field(
        default_factory=lambda: (Exception,)
    )
    fatal_exceptions: tuple[type[BaseException], ...] = field(
        default_factory=lambda: (UnknownActionError,)
    )

    def delay_for(self, attempt: int) -> float:
        """Return the backoff in seconds before retry number ``attempt`` (0-based)."""
        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)
        if self.jitter:
            delay *= 1.0 + random.random() * 0.5  # noqa: S311
        return delay


class RetryExecutor:
    """Runs an async callable under a :class:`RetryPolicy`.

    Usage::

        executor = RetryExecutor(RetryPolicy(max_retries=2, base_delay=0.5))
        result = await executor.execute(invoker.invoke, "linter", "lint_code", inputs)

    Attributes:
        total_attempts: Calls made so far, first tries included.
        total_retries: Calls that were retries.
        last_error: Most recent exception caught, or ``None``.
    """

    def __init__(self, policy: RetryPolicy) -> None:
        self._policy = policy
        self.total_attempts = 0
        self.total_retries = 0
        self.last_error: BaseException | None = None

    async def execute(self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """Await ``func(*args, **kwargs)``, retrying on retryable errors.

        Raises:
            RetryExhaustedError: When the last permitted attempt failed.
            Exception: Any fatal or non-retryable exception, unchanged.
        """
        policy = self._policy
        log = logger.bind(func=getattr(func, "__name__", repr(func)))
        attempt = 0

        while True:
            self.total_attempts += 1
            try:
                return await func(*args, **kwargs)
            except policy.fatal_exceptions:
                raise
            except policy.retryable_exceptions as exc:
                self.last_error = exc
                if attempt >= policy.max_retries:
                    log.error("retry_exhausted", attempts=attempt + 1, error=str(exc))
                    raise RetryExhaustedError(attempts=attempt + 1, last_error=exc) from exc

                delay = policy.delay_for(attempt)
                log.warning(
                    "retry_attempt",
                    attempt=attempt + 1,
                    delay_seconds=round(delay, 3),
                    error=str(exc),
                )
                self.total_retries += 1
                attempt += 1
                await asyncio.sleep(delay)
