"""Tests for retry classification and exponential backoff."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from storyboard_video_mcp.cancellation import CancelToken
from storyboard_video_mcp.errors import (
    AuthorizationError,
    GenerationCancelledError,
    InputValidationError,
    TransientServiceError,
)
from storyboard_video_mcp.retry import RetryClass, RetryExecutor, RetryPolicy


class TestRetryPolicy:
    """Tests for the transient/fatal partition and delay schedule."""

    @pytest.mark.parametrize("msg", [
        "429 Too Many Requests",
        "RESOURCE_EXHAUSTED: quota for veo exceeded",
        "500 Internal Server Error",
        "503 Service Unavailable",
    ])
    def test_transient_signals(self, msg: str):
        assert RetryPolicy().classify(Exception(msg)) is RetryClass.TRANSIENT

    @pytest.mark.parametrize("error", [
        Exception("404 Requested entity was not found."),
        Exception("400 INVALID_ARGUMENT: bad aspect ratio"),
        InputValidationError("Instruction text is required"),
        AuthorizationError("no key"),
        ValueError("invalid input"),
    ])
    def test_fatal_signals(self, error: Exception):
        assert RetryPolicy().classify(error) is RetryClass.FATAL

    def test_typed_transient_error(self):
        assert RetryPolicy().classify(TransientServiceError("busy")) is RetryClass.TRANSIENT

    def test_delay_doubles(self):
        policy = RetryPolicy(initial_delay=2.0)
        assert [policy.delay_for_attempt(n) for n in range(4)] == [2.0, 4.0, 8.0, 16.0]

    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.initial_delay == 2.0

    def test_from_config(self, monkeypatch):
        monkeypatch.setenv("VEO_RETRY_MAX_RETRIES", "5")
        monkeypatch.setenv("VEO_RETRY_INITIAL_DELAY", "0.5")
        policy = RetryPolicy.from_config()
        assert policy.max_retries == 5
        assert policy.initial_delay == 0.5


class TestRetryExecutor:
    """Tests for RetryExecutor.execute."""

    async def test_success_first_attempt(self, no_sleep):
        operation = AsyncMock(return_value="ok")

        result = await RetryExecutor(RetryPolicy(), sleep=no_sleep).execute(operation)

        assert result == "ok"
        operation.assert_awaited_once()
        no_sleep.assert_not_awaited()

    async def test_two_transient_failures_then_success(self, no_sleep):
        """Two 429s cost exactly two sleeps, the second twice the first."""
        operation = AsyncMock(side_effect=[Exception("429"), Exception("503"), "video"])

        result = await RetryExecutor(RetryPolicy(), sleep=no_sleep).execute(operation)

        assert result == "video"
        assert operation.await_count == 3
        delays = [call.args[0] for call in no_sleep.await_args_list]
        assert delays == [2.0, 4.0]
        assert delays[1] >= 2 * delays[0]

    async def test_fatal_raises_immediately(self, no_sleep):
        operation = AsyncMock(side_effect=Exception("Requested entity was not found."))

        with pytest.raises(Exception, match="Requested entity was not found"):
            await RetryExecutor(RetryPolicy(), sleep=no_sleep).execute(operation)

        operation.assert_awaited_once()
        no_sleep.assert_not_awaited()

    async def test_exhausted_retries_reraise_last_error(self, no_sleep):
        operation = AsyncMock(side_effect=[
            Exception("429 first"),
            Exception("429 second"),
            Exception("429 third"),
            Exception("429 last"),
        ])

        with pytest.raises(Exception, match="429 last"):
            await RetryExecutor(RetryPolicy(max_retries=3), sleep=no_sleep).execute(operation)

        assert operation.await_count == 4
        assert no_sleep.await_count == 3

    async def test_zero_retries(self, no_sleep):
        operation = AsyncMock(side_effect=Exception("429"))

        with pytest.raises(Exception, match="429"):
            await RetryExecutor(RetryPolicy(max_retries=0), sleep=no_sleep).execute(operation)

        operation.assert_awaited_once()
        no_sleep.assert_not_awaited()

    async def test_cancel_token_passed_to_sleep(self, no_sleep):
        token = CancelToken()
        operation = AsyncMock(side_effect=[Exception("429"), "ok"])

        await RetryExecutor(RetryPolicy(), sleep=no_sleep).execute(operation, token)

        assert no_sleep.await_args.args[1] is token

    async def test_cancelled_token_stops_before_attempt(self, no_sleep):
        token = CancelToken()
        token.cancel("user closed the tab")
        operation = AsyncMock(return_value="ok")

        with pytest.raises(GenerationCancelledError, match="user closed the tab"):
            await RetryExecutor(RetryPolicy(), sleep=no_sleep).execute(operation, token)

        operation.assert_not_awaited()

    async def test_cancel_abandons_in_flight_call(self, no_sleep):
        token = CancelToken()
        started = asyncio.Event()
        abandoned: list[bool] = []

        async def slow_status_check():
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                abandoned.append(True)
                raise

        async def cancel_once_started():
            await started.wait()
            token.cancel("stopped mid-request")

        canceller = asyncio.create_task(cancel_once_started())

        with pytest.raises(GenerationCancelledError, match="stopped mid-request"):
            await RetryExecutor(RetryPolicy(), sleep=no_sleep).execute(slow_status_check, token)

        await canceller
        await asyncio.sleep(0)
        assert abandoned == [True]
        no_sleep.assert_not_awaited()

    async def test_completed_call_wins_over_idle_token(self, no_sleep):
        operation = AsyncMock(side_effect=TransientServiceError("503"))
        token = CancelToken()

        with pytest.raises(TransientServiceError):
            await RetryExecutor(RetryPolicy(max_retries=0), sleep=no_sleep).execute(operation, token)

        operation.assert_awaited_once()
