"""Exponential backoff retry for transient media-service errors."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from .cancellation import CancelToken, cancellable_sleep
from .config import get_config
from .errors import ErrorKind, classify_service_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float, "CancelToken | None"], Awaitable[None]]


class RetryClass(str, Enum):
    """Whether a failed attempt is worth repeating."""

    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True)
class RetryPolicy:
    """Transient/fatal partition plus pure exponential back-off (no jitter)."""

    max_retries: int = 3
    initial_delay: float = 2.0

    @classmethod
    def from_config(cls) -> RetryPolicy:
        cfg = get_config()
        return cls(max_retries=cfg.retry_max_retries, initial_delay=cfg.retry_initial_delay)

    def classify(self, error: BaseException) -> RetryClass:
        if classify_service_error(error) is ErrorKind.TRANSIENT:
            return RetryClass.TRANSIENT
        return RetryClass.FATAL

    def delay_for_attempt(self, attempt: int) -> float:
        """Seconds to wait after the zero-based *attempt* failed."""
        return self.initial_delay * (2 ** attempt)


@dataclass
class RetryAttempt:
    """Book-keeping for one ``execute`` call; never outlives it."""

    attempt_number: int = 0
    last_error: BaseException | None = None
    next_delay: float = 0.0


class RetryExecutor:
    """Run an async operation under a :class:`RetryPolicy`.

    Attempts are strictly sequential. The cancel token is honoured before each
    attempt, while an attempt is in flight (the call is abandoned) and during
    back-off sleeps.
    """

    def __init__(self, policy: RetryPolicy | None = None, *, sleep: SleepFn | None = None) -> None:
        self.policy = policy or RetryPolicy.from_config()
        self._sleep = sleep or cancellable_sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        cancel: CancelToken | None = None,
    ) -> T:
        """Execute *operation*, retrying transient failures.

        Args:
            operation: Zero-arg callable that returns a fresh awaitable each attempt.
            cancel: Optional token checked before and during each attempt and
                during back-off.

        Returns:
            The result of the first successful call.

        Raises:
            The first fatal error, or the last transient error once retries
            are exhausted.
        """
        state = RetryAttempt()
        while True:
            if cancel is not None:
                cancel.raise_if_cancelled()
            try:
                return await self._attempt(operation, cancel)
            except Exception as exc:
                state.last_error = exc
                if self.policy.classify(exc) is RetryClass.FATAL:
                    raise
                if state.attempt_number >= self.policy.max_retries:
                    logger.warning(
                        "Giving up after %d retries: %s", state.attempt_number, exc,
                    )
                    raise
                state.next_delay = self.policy.delay_for_attempt(state.attempt_number)
                logger.warning(
                    "Retry %d/%d after %.1fs: %s",
                    state.attempt_number + 1,
                    self.policy.max_retries,
                    state.next_delay,
                    exc,
                )
                await self._sleep(state.next_delay, cancel)
                state.attempt_number += 1

    async def _attempt(
        self,
        operation: Callable[[], Awaitable[T]],
        cancel: CancelToken | None,
    ) -> T:
        """Await one call, abandoning it as soon as *cancel* fires."""
        if cancel is None:
            return await operation()

        call = asyncio.ensure_future(operation())
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            call.cancel()
            raise
        finally:
            waiter.cancel()
        if call not in done:
            call.cancel()
            cancel.raise_if_cancelled()
        return call.result()
