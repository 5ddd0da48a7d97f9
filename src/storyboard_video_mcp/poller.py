"""Poll a long-running remote operation until it reports completion."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from .cancellation import CancelToken, cancellable_sleep
from .config import get_config
from .errors import (
    AuthorizationError,
    ErrorKind,
    PollTimeoutError,
    RemoteJobError,
    classify_service_error,
)
from .models.generation import GenerationResult, JobStatus
from .retry import RetryExecutor, SleepFn

logger = logging.getLogger(__name__)


class JobPoller:
    """Submit once, then check status at a fixed interval.

    Every network call goes through the :class:`RetryExecutor`, so transient
    failures never reach the caller unless retries run out.

    Args:
        executor: Retry wrapper for ``submit`` and ``check_status``.
        interval: Seconds between status checks.
        max_wait: Per-phase bound in seconds; ``0`` waits indefinitely.
        sleep: Cancellable sleep used between checks (injectable for tests).
        clock: Monotonic clock used for deadlines.
    """

    def __init__(
        self,
        executor: RetryExecutor | None = None,
        *,
        interval: float | None = None,
        max_wait: float | None = None,
        sleep: SleepFn | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        cfg = get_config()
        self.executor = executor or RetryExecutor()
        self.interval = interval if interval is not None else cfg.poll_interval_seconds
        self.max_wait = max_wait if max_wait is not None else cfg.poll_max_wait_seconds
        self._sleep = sleep or cancellable_sleep
        self._clock = clock

    def _limit(self, now: float, deadline: float | None) -> float | None:
        limit = now + self.max_wait if self.max_wait else None
        if deadline is not None:
            limit = deadline if limit is None else min(limit, deadline)
        return limit

    async def poll_until_done(
        self,
        submit: Callable[[], Awaitable[Any]],
        check_status: Callable[[Any], Awaitable[JobStatus]],
        cancel: CancelToken | None = None,
        deadline: float | None = None,
    ) -> GenerationResult:
        """Run one phase to completion.

        Args:
            submit: Starts the remote job and returns its opaque handle.
            check_status: Reports the job's current :class:`JobStatus`.
            cancel: Optional token honoured at every suspension point.
            deadline: Absolute ``clock()`` value after which the phase times out.

        Returns:
            The result carried by the final status.

        Raises:
            RemoteJobError: The job finished with an error or without output.
            PollTimeoutError: The deadline had already passed before submit, or
                the job was still running at it.
            GenerationError: Any fatal error from submit or status checks.
        """
        now = self._clock()
        if deadline is not None and now >= deadline:
            raise PollTimeoutError("Run deadline passed before the operation was submitted")
        limit = self._limit(now, deadline)
        handle = await self.executor.execute(submit, cancel)

        status = await self.executor.execute(lambda: check_status(handle), cancel)
        checks = 1
        while not status.done:
            logger.debug("Operation still running after %d check(s)", checks)
            if limit is not None and self._clock() >= limit:
                raise PollTimeoutError(
                    f"Operation not finished after {checks} status check(s)"
                )
            await self._sleep(self.interval, cancel)
            status = await self.executor.execute(lambda: check_status(handle), cancel)
            checks += 1

        if status.error:
            # Lost credentials surface as a job error too ("entity not found").
            if classify_service_error(Exception(status.error)) is ErrorKind.AUTHORIZATION:
                raise AuthorizationError(status.error)
            raise RemoteJobError(status.error)
        if status.result is None:
            raise RemoteJobError("Operation finished without a usable result")
        logger.info("Operation finished after %d status check(s)", checks)
        return status.result
