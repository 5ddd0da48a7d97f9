"""Video generation tools — 2 tools on a FastMCP sub-server."""

from __future__ import annotations

import logging
from pathlib import Path

from fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..client import GeminiClient
from ..config import get_config
from ..errors import InputValidationError, make_tool_error
from ..models.generation import GenerationConfig, Resolution, SeedImage
from ..pipeline import GenerationPipeline, generate_batch
from ..planner import plan_extension
from ..service import VeoService
from ..tracing import trace
from ..types import AspectRatioParam, ImagePath, InstructionParam, ResolutionParam, TargetDuration, VideoCount

logger = logging.getLogger(__name__)
video_server = FastMCP("video")

_IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


def _load_seed_image(image_path: str) -> SeedImage:
    """Read the seed image from disk.

    Raises:
        FileNotFoundError: If the path is not a file.
        InputValidationError: If the extension is not a supported image type.
    """
    path = Path(image_path).expanduser()
    if not path.is_file():
        raise FileNotFoundError(f"Seed image not found: {image_path}")
    mime_type = _IMAGE_MIME_TYPES.get(path.suffix.lower())
    if mime_type is None:
        allowed = ", ".join(sorted(ext.lstrip(".") for ext in _IMAGE_MIME_TYPES))
        raise InputValidationError(f"Unsupported image extension '{path.suffix}'. Use {allowed}")
    return SeedImage(data=path.read_bytes(), mime_type=mime_type)


def _build_pipeline() -> GenerationPipeline:
    """Pipeline bound to Veo; fails fast with AuthorizationError when no key is set."""
    return GenerationPipeline(VeoService(client=GeminiClient.get()))


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    )
)
@trace(name="video_generate", span_type="TOOL")
async def video_generate(
    instruction: InstructionParam,
    image_path: ImagePath,
    target_duration: TargetDuration = 5,
    resolution: ResolutionParam | None = None,
    aspect_ratio: AspectRatioParam | None = None,
    count: VideoCount = 1,
) -> dict:
    """Animate a product image into one or more marketing videos with Veo.

    Videos longer than one clip are built by chaining extension rounds, each
    seeded by the previous segment. Extension only runs at 720p, so a longer
    1080p request is rendered at 720p throughout.

    Args:
        instruction: Storyboard text for the shot.
        image_path: Local seed image.
        target_duration: Requested length in seconds.
        resolution: "720p" or "1080p" (defaults to VEO_RESOLUTION).
        aspect_ratio: "16:9" or "9:16" (defaults to VEO_ASPECT_RATIO).
        count: How many independent videos to generate, sequentially.

    Returns:
        Dict with ``videos`` (uri, duration, resolution, extension rounds) and
        the ``progress`` log, or a tool error dict (``AUTH_REQUIRED`` means the
        API key must be selected again).
    """
    try:
        cfg = get_config()
        if count > cfg.max_videos_per_call:
            raise InputValidationError(
                f"count must be <= {cfg.max_videos_per_call} (STORYBOARD_MAX_VIDEOS)"
            )
        seed = _load_seed_image(image_path)
        config = GenerationConfig(
            resolution=Resolution(resolution or cfg.default_resolution),
            aspect_ratio=aspect_ratio or cfg.default_aspect_ratio,
            target_duration=target_duration,
        )
        pipeline = _build_pipeline()

        progress: list[str] = []
        results = await generate_batch(
            pipeline, instruction, seed, config, count=count, on_progress=progress.append,
        )
        return {
            "videos": [r.model_dump(mode="json", exclude={"video_bytes"}) for r in results],
            "requested_duration": target_duration,
            "progress": progress,
        }
    except Exception as exc:
        logger.warning("video_generate failed: %s", exc)
        return make_tool_error(exc)


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="video_plan", span_type="TOOL")
async def video_plan(
    target_duration: TargetDuration,
    resolution: ResolutionParam | None = None,
) -> dict:
    """Preview how a duration would be produced, without calling the service.

    Args:
        target_duration: Requested length in seconds.
        resolution: Requested resolution (defaults to VEO_RESOLUTION).

    Returns:
        Dict with the number of extension rounds, the effective resolution,
        and the expected final duration.
    """
    try:
        cfg = get_config()
        requested = Resolution(resolution or cfg.default_resolution)
        plan = plan_extension(target_duration, cfg.base_clip_seconds, cfg.extension_seconds, requested)
        return {
            "target_duration": target_duration,
            "total_rounds": plan.total_rounds,
            "requested_resolution": requested.value,
            "effective_resolution": plan.resolution_for(requested).value,
            "expected_duration": cfg.base_clip_seconds + plan.total_rounds * cfg.extension_seconds,
        }
    except Exception as exc:
        return make_tool_error(exc)
