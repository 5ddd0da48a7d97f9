"""Shared test fixtures for storyboard-video-mcp."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from storyboard_video_mcp.models.generation import (
    GenerationRequest,
    GenerationResult,
    JobStatus,
    Resolution,
    SeedImage,
)


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function. This helper works with both.
    """
    return getattr(tool, "fn", tool)


def make_result(uri: str, *, duration: float = 5.0, rounds: int = 0,
                resolution: Resolution = Resolution.HD) -> GenerationResult:
    return GenerationResult(
        uri=uri, duration_seconds=duration, extension_rounds=rounds, resolution=resolution,
    )


def running() -> JobStatus:
    return JobStatus(done=False)


def finished(result: GenerationResult) -> JobStatus:
    return JobStatus(done=True, result=result)


def failed(message: str) -> JobStatus:
    return JobStatus(done=True, error=message)


class ScriptedService:
    """In-memory MediaGenerationService driven by per-phase scripts.

    Each ``submit`` consumes the next phase script: a list whose items are
    returned (``JobStatus``) or raised (exceptions) by successive
    ``check_status`` calls. ``submit_errors`` are raised by ``submit`` first.
    """

    def __init__(self, *phases: list, submit_errors: list[Exception] | None = None) -> None:
        self.requests: list[GenerationRequest] = []
        self.status_calls = 0
        self._phases = [list(p) for p in phases]
        self._submit_errors = list(submit_errors or [])

    async def submit(self, request: GenerationRequest) -> dict:
        if self._submit_errors:
            raise self._submit_errors.pop(0)
        self.requests.append(request)
        return {"phase": len(self.requests) - 1, "script": self._phases.pop(0)}

    async def check_status(self, handle: dict) -> JobStatus:
        self.status_calls += 1
        item = handle["script"].pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture(autouse=True)
def _set_dummy_api_key(monkeypatch):
    """Ensure tests never hit the real Gemini API."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key-not-real")


@pytest.fixture(autouse=True)
def _disable_tracing(monkeypatch):
    """Disable MLflow tracing in all tests to avoid real tracking-server calls."""
    monkeypatch.setenv("GEMINI_TRACING_ENABLED", "false")


@pytest.fixture(autouse=True)
def _isolate_dotenv(tmp_path, monkeypatch):
    """Prevent tests from loading the user's real ~/.config/storyboard-video-mcp/.env."""
    monkeypatch.setattr(
        "storyboard_video_mcp.dotenv.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )


@pytest.fixture(autouse=True)
def _clean_config():
    """Reset the config singleton and client pool between tests."""
    import storyboard_video_mcp.config as cfg_mod
    from storyboard_video_mcp.client import GeminiClient

    cfg_mod._config = None
    GeminiClient._clients.clear()
    yield
    cfg_mod._config = None
    GeminiClient._clients.clear()


@pytest.fixture()
def no_sleep():
    """Stand-in for cancellable_sleep that records delays without waiting."""
    return AsyncMock(return_value=None)


@pytest.fixture()
def seed_image() -> SeedImage:
    return SeedImage(data=b"\x89PNG-fake", mime_type="image/png")


@pytest.fixture()
def make_pipeline(no_sleep):
    """Factory building a GenerationPipeline wired to a fake service and no-wait sleeps."""
    from storyboard_video_mcp.pipeline import GenerationPipeline
    from storyboard_video_mcp.poller import JobPoller
    from storyboard_video_mcp.retry import RetryExecutor, RetryPolicy

    def _factory(service, *, max_retries: int = 3, max_wait: float = 0):
        executor = RetryExecutor(RetryPolicy(max_retries=max_retries, initial_delay=2.0), sleep=no_sleep)
        poller = JobPoller(executor, interval=10.0, max_wait=max_wait, sleep=no_sleep)
        return GenerationPipeline(
            service, poller, base_duration=5, per_round_increment=7, max_run_seconds=0,
        )

    return _factory
