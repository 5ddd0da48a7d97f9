"""Media-generation service boundary and its Veo implementation.

The pipeline only depends on :class:`MediaGenerationService`. ``VeoService``
maps requests onto ``google-genai`` long-running video operations and
translates SDK exceptions into the typed errors of :mod:`.errors` exactly
once, here at the edge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from google import genai
from google.genai import types

from .client import GeminiClient
from .config import get_config
from .errors import to_generation_error
from .models.generation import GenerationRequest, GenerationResult, JobStatus, SeedImage

logger = logging.getLogger(__name__)


class MediaGenerationService(Protocol):
    """Contract of the hosted generation service."""

    async def submit(self, request: GenerationRequest) -> Any:
        """Start a remote job and return an opaque handle."""
        ...

    async def check_status(self, handle: Any) -> JobStatus:
        """Report whether the job behind *handle* has finished."""
        ...


@dataclass(frozen=True)
class VeoHandle:
    """In-flight Veo operation together with the request that started it."""

    operation: types.GenerateVideosOperation
    request: GenerationRequest


class VeoService:
    """Veo image-to-video and video-extension calls through ``google-genai``."""

    def __init__(
        self,
        client: genai.Client | None = None,
        *,
        model: str | None = None,
        extension_model: str | None = None,
        base_seconds: float | None = None,
        extension_seconds: float | None = None,
    ) -> None:
        cfg = get_config()
        self._client = client
        self.model = model or cfg.video_model
        self.extension_model = extension_model or cfg.extension_model
        self.base_seconds = base_seconds if base_seconds is not None else cfg.base_clip_seconds
        self.extension_seconds = (
            extension_seconds if extension_seconds is not None else cfg.extension_seconds
        )

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = GeminiClient.get()
        return self._client

    def _request_kwargs(self, request: GenerationRequest) -> dict[str, Any]:
        config = types.GenerateVideosConfig(
            number_of_videos=1,
            aspect_ratio=request.aspect_ratio,
            resolution=request.resolution.value,
        )
        kwargs: dict[str, Any] = {"prompt": request.instruction, "config": config}
        seed = request.seed
        if isinstance(seed, SeedImage):
            kwargs["model"] = self.model
            kwargs["image"] = types.Image(image_bytes=seed.data, mime_type=seed.mime_type)
        else:
            kwargs["model"] = self.extension_model
            kwargs["video"] = types.Video(
                uri=seed.uri or None,
                video_bytes=seed.video_bytes,
                mime_type=seed.mime_type,
            )
        return kwargs

    async def submit(self, request: GenerationRequest) -> VeoHandle:
        kwargs = self._request_kwargs(request)
        try:
            operation = await self.client.aio.models.generate_videos(**kwargs)
        except Exception as exc:
            raise to_generation_error(exc) from exc
        logger.info(
            "Submitted %s job %s (%s, %s)",
            "extension" if request.is_continuation else "initial",
            getattr(operation, "name", "?"),
            kwargs["model"],
            request.resolution.value,
        )
        return VeoHandle(operation=operation, request=request)

    async def check_status(self, handle: VeoHandle) -> JobStatus:
        try:
            operation = await self.client.aio.operations.get(handle.operation)
        except Exception as exc:
            raise to_generation_error(exc) from exc

        if not operation.done:
            return JobStatus(done=False)
        if operation.error:
            return JobStatus(done=True, error=_describe_error(operation.error))

        videos = operation.response.generated_videos if operation.response else None
        if not videos or videos[0].video is None:
            reasons = getattr(operation.response, "rai_media_filtered_reasons", None) or []
            detail = "; ".join(reasons) if reasons else "no video returned"
            return JobStatus(done=True, error=f"Generation produced no usable video ({detail})")

        return JobStatus(done=True, result=self._to_result(videos[0].video, handle.request))

    def _to_result(self, video: types.Video, request: GenerationRequest) -> GenerationResult:
        seed = request.seed
        if isinstance(seed, GenerationResult):
            duration = seed.duration_seconds + self.extension_seconds
            rounds = seed.extension_rounds + 1
        else:
            duration = float(self.base_seconds)
            rounds = 0
        return GenerationResult(
            uri=video.uri or "",
            mime_type=video.mime_type or "video/mp4",
            video_bytes=video.video_bytes,
            duration_seconds=duration,
            resolution=request.resolution,
            extension_rounds=rounds,
        )


def _describe_error(error: Any) -> str:
    """Render an operation error payload (dict or object) as one line."""
    if isinstance(error, dict):
        message = error.get("message") or ""
        code = error.get("code")
        return f"{code}: {message}" if code is not None else (message or str(error))
    return str(error)
