"""Cooperative cancellation for generation runs.

A :class:`CancelToken` is handed to the pipeline and threaded down to every
suspension point (retry back-off, poll interval). Firing it wakes any
pending sleep immediately.
"""

from __future__ import annotations

import asyncio

from .errors import GenerationCancelledError


class CancelToken:
    """One-shot cancellation flag backed by an :class:`asyncio.Event`."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`GenerationCancelledError` if the token has fired."""
        if self._event.is_set():
            raise GenerationCancelledError(self.reason)

    async def wait(self) -> None:
        await self._event.wait()


async def cancellable_sleep(delay: float, cancel: CancelToken | None = None) -> None:
    """Sleep for *delay* seconds, returning early with an error if *cancel* fires.

    Raises:
        GenerationCancelledError: When the token is (or becomes) cancelled.
    """
    if cancel is None:
        await asyncio.sleep(delay)
        return

    cancel.raise_if_cancelled()
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return
    cancel.raise_if_cancelled()
