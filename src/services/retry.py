"""Bounded retry policy as plain data, executed with tenacity."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Type

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from core.logging_config import get_logger

LOGGER = get_logger(__name__)

DelayFunction = Callable[[int], float]
SleepFunction = Callable[[float], Awaitable[Any]]


def linear_backoff(step_seconds: float = 1.0) -> DelayFunction:
    """
    Delay of ``attempt_number * step_seconds`` after a failed attempt.

    >>> [linear_backoff(1.0)(n) for n in (1, 2)]
    [1.0, 2.0]
    """

    def delay(attempt_number: int) -> float:
        return attempt_number * step_seconds

    return delay


def no_backoff(attempt_number: int) -> float:
    return 0.0


@dataclass(frozen=True)
class RetryPolicy:
    """
    How many times to try and how long to wait in between.

    ``delay(n)`` is the wait after failed attempt ``n`` (1-based). No wait
    follows the final attempt.
    """

    max_attempts: int = 3
    delay: DelayFunction = field(default_factory=lambda: linear_backoff(1.0))
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def schedule(self) -> List[float]:
        """Waits between attempts, e.g. [1.0, 2.0] for the default policy."""
        return [self.delay(attempt) for attempt in range(1, self.max_attempts)]

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.delay(retry_state.attempt_number)

    def retrying(
        self,
        sleep: Optional[SleepFunction] = None,
        logger: Optional[logging.Logger] = None,
    ) -> AsyncRetrying:
        """
        Build a tenacity controller for this policy.

        Args:
            sleep: Awaitable sleep used between attempts; defaults to
                ``asyncio.sleep``. Tests pass a recorder.
            logger: Logger for the before-sleep message.

        Usage:
            async for attempt in policy.retrying():
                with attempt:
                    await call()
        """
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(self.retry_on),
            before_sleep=before_sleep_log(logger or LOGGER, logging.WARNING),
            sleep=sleep or asyncio.sleep,
            reraise=True,
        )


__all__ = ["RetryPolicy", "linear_backoff", "no_backoff", "DelayFunction", "SleepFunction"]
