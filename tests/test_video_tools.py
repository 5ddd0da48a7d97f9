"""Tests for the video generation MCP tools."""

from __future__ import annotations

from unittest.mock import patch

import pytest

import storyboard_video_mcp.tools.video as video_mod
from tests.conftest import ScriptedService, failed, finished, make_result, unwrap_tool

video_generate = unwrap_tool(video_mod.video_generate)
video_plan = unwrap_tool(video_mod.video_plan)


@pytest.fixture()
def image_file(tmp_path):
    path = tmp_path / "bottle.png"
    path.write_bytes(b"\x89PNG-fake")
    return path


@pytest.fixture()
def patched_pipeline(make_pipeline):
    """Patch _build_pipeline to use a scripted service; yields the service setter."""
    holder: dict = {}

    def _use(service: ScriptedService):
        holder["service"] = service
        return service

    with patch.object(video_mod, "_build_pipeline", side_effect=lambda: make_pipeline(holder["service"])):
        yield _use


class TestVideoGenerate:
    async def test_single_video(self, patched_pipeline, image_file):
        service = patched_pipeline(ScriptedService([finished(make_result("https://v/0.mp4"))]))

        out = await video_generate(instruction="Rotate the bottle", image_path=str(image_file))

        assert [v["uri"] for v in out["videos"]] == ["https://v/0.mp4"]
        assert "video_bytes" not in out["videos"][0]
        assert out["progress"][0] == "[video 1/1] initializing"
        assert service.requests[0].seed.mime_type == "image/png"

    async def test_extension_and_count(self, patched_pipeline, image_file):
        service = patched_pipeline(ScriptedService(
            [finished(make_result("a0"))],
            [finished(make_result("a1", duration=12, rounds=1))],
            [finished(make_result("b0"))],
            [finished(make_result("b1", duration=12, rounds=1))],
        ))

        out = await video_generate(
            instruction="shot", image_path=str(image_file), target_duration=12, resolution="1080p", count=2,
        )

        assert [v["uri"] for v in out["videos"]] == ["a1", "b1"]
        assert [v["extension_rounds"] for v in out["videos"]] == [1, 1]
        assert all(r.resolution.value == "720p" for r in service.requests)

    async def test_partial_result_is_success(self, patched_pipeline, image_file):
        patched_pipeline(ScriptedService([finished(make_result("a0"))], [failed("rejected")]))

        out = await video_generate(instruction="shot", image_path=str(image_file), target_duration=19)

        assert out["videos"][0]["uri"] == "a0"
        assert out["videos"][0]["duration_seconds"] == 5

    async def test_initial_failure_returns_tool_error(self, patched_pipeline, image_file):
        patched_pipeline(ScriptedService([failed("rejected")]))

        out = await video_generate(instruction="shot", image_path=str(image_file))

        assert out["category"] == "GENERATION_FAILED"
        assert out["retryable"] is False

    async def test_lost_credential_returns_auth_required(self, patched_pipeline, image_file):
        patched_pipeline(ScriptedService([failed("Requested entity was not found.")]))

        out = await video_generate(instruction="shot", image_path=str(image_file))

        assert out["category"] == "AUTH_REQUIRED"

    async def test_missing_api_key_returns_auth_required(self, monkeypatch, image_file):
        monkeypatch.setenv("GEMINI_API_KEY", "")

        out = await video_generate(instruction="shot", image_path=str(image_file))

        assert out["category"] == "AUTH_REQUIRED"

    async def test_missing_image(self, tmp_path):
        out = await video_generate(instruction="shot", image_path=str(tmp_path / "nope.png"))
        assert out["category"] == "FILE_NOT_FOUND"

    async def test_unsupported_image_extension(self, tmp_path):
        path = tmp_path / "frame.gif"
        path.write_bytes(b"GIF89a")
        out = await video_generate(instruction="shot", image_path=str(path))
        assert out["category"] == "INVALID_INPUT"

    async def test_count_above_limit(self, monkeypatch, image_file):
        monkeypatch.setenv("STORYBOARD_MAX_VIDEOS", "2")
        out = await video_generate(instruction="shot", image_path=str(image_file), count=3)
        assert out["category"] == "INVALID_INPUT"
        assert "STORYBOARD_MAX_VIDEOS" in out["error"]


class TestVideoPlan:
    async def test_plan_without_extension(self):
        out = await video_plan(target_duration=5, resolution="1080p")
        assert out["total_rounds"] == 0
        assert out["effective_resolution"] == "1080p"
        assert out["expected_duration"] == 5

    async def test_plan_with_extension_downgrades(self):
        out = await video_plan(target_duration=19, resolution="1080p")
        assert out["total_rounds"] == 2
        assert out["requested_resolution"] == "1080p"
        assert out["effective_resolution"] == "720p"
        assert out["expected_duration"] == 19

    async def test_plan_uses_configured_default_resolution(self, monkeypatch):
        monkeypatch.setenv("VEO_RESOLUTION", "1080p")
        out = await video_plan(target_duration=12)
        assert out["requested_resolution"] == "1080p"
        assert out["effective_resolution"] == "720p"
