"""Retry policy with exponential backoff for model calls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from campus_bot.errors import ExhaustedRetriesError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try an operation and how long to wait in between.

    The wait after a failed attempt ``n`` (0-based) is
    ``base_delay * 2**n`` seconds. There is no wait after the final attempt.
    ``sleep`` is injectable so tests can run on a fake clock.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay(self, attempt: int) -> float:
        return self.base_delay * (2**attempt)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        retry_on: tuple[type[BaseException], ...],
    ) -> T:
        """Call *operation* until it succeeds or attempts run out.

        Exceptions outside *retry_on* propagate immediately. When every
        attempt fails, raises ``ExhaustedRetriesError`` chained to the last
        failure.
        """
        last_error: BaseException | None = None
        for attempt in range(self.max_attempts):
            try:
                return await operation()
            except retry_on as exc:
                last_error = exc
                if attempt + 1 >= self.max_attempts:
                    break
                wait = self.delay(attempt)
                logger.warning(
                    "Attempt %d/%d failed (%s), retrying in %.1fs",
                    attempt + 1,
                    self.max_attempts,
                    exc,
                    wait,
                )
                await self.sleep(wait)

        logger.error("All %d attempts failed: %s", self.max_attempts, last_error)
        raise ExhaustedRetriesError(self.max_attempts) from last_error
