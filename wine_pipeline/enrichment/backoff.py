"""
Exponential backoff and the retry combinator used by enrichment.

The delay math lives in BackoffPolicy; with_retry owns the loop so that the
orchestrator only decides what counts as a retryable failure.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from wine_pipeline.core.config import BackoffConfig
from wine_pipeline.core.errors import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackoffPolicy:
    """delay(n) = min(base * 2**n, max_delay) + uniform jitter in [0, jitter)."""

    def __init__(
        self,
        base_delay: float,
        max_delay: float,
        jitter: float,
        rng: random.Random | None = None,
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self._rng = rng or random.Random()

    @classmethod
    def from_config(cls, config: BackoffConfig, rng: random.Random | None = None) -> BackoffPolicy:
        return cls(
            base_delay=config.base_delay,
            max_delay=config.max_delay,
            jitter=config.jitter,
            rng=rng,
        )

    def base(self, attempt: int) -> float:
        """The capped exponential part of the delay, without jitter."""
        attempt = max(0, attempt)
        # 2**attempt grows without bound; cap the exponent before multiplying
        if attempt >= 64:
            return self.max_delay
        return min(self.base_delay * (2**attempt), self.max_delay)

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given zero-based attempt failed."""
        return self.base(attempt) + self._rng.random() * self.jitter


async def with_retry(
    operation: Callable[[int], Awaitable[T]],
    policy: BackoffPolicy,
    max_attempts: int,
    *,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an async operation until it succeeds or attempts run out.

    Args:
        operation: Called with the zero-based attempt index.
        policy: Supplies the delay between attempts.
        max_attempts: Total number of attempts, at least 1.
        retry_on: Exception types that trigger another attempt. Anything
            else propagates immediately.
        sleep: Awaitable sleep, replaceable in tests.

    Returns:
        The first successful result.

    Raises:
        RetryExhaustedError: If the last attempt failed with a retryable error.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    last_error: BaseException | None = None
    for attempt in range(max_attempts):
        try:
            return await operation(attempt)
        except retry_on as e:
            last_error = e
            if attempt >= max_attempts - 1:
                break
            wait = policy.delay(attempt)
            logger.warning(
                f"Attempt {attempt + 1}/{max_attempts} failed ({e}); retrying in {wait:.1f}s"
            )
            await sleep(wait)

    raise RetryExhaustedError(max_attempts, last_error)
