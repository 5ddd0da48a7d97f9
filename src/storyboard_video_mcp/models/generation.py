"""Generation models — immutable values passed between pipeline phases.

A run builds one :class:`GenerationRequest` per phase. The phase yields a
:class:`GenerationResult`, which seeds the next continuation round or is
returned to the caller.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class Resolution(str, Enum):
    """Output resolution tiers. Continuation is only supported at the reduced tier."""

    HD = "720p"
    FULL_HD = "1080p"


REDUCED_RESOLUTION = Resolution.HD

AspectRatio = Literal["16:9", "9:16"]


class SeedImage(BaseModel):
    """Still image that seeds the initial phase."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False)
    mime_type: str = "image/jpeg"


class GenerationResult(BaseModel):
    """Artifact produced by a completed phase.

    ``extension_rounds`` counts the continuation rounds folded into this
    video (0 for the initial clip).
    """

    model_config = ConfigDict(frozen=True)

    uri: str = ""
    mime_type: str = "video/mp4"
    video_bytes: bytes | None = Field(default=None, repr=False)
    duration_seconds: float = 0.0
    resolution: Resolution = Resolution.HD
    extension_rounds: int = 0


SeedArtifact = Union[SeedImage, GenerationResult]


class GenerationConfig(BaseModel):
    """Caller options for one run."""

    model_config = ConfigDict(frozen=True)

    resolution: Resolution = Resolution.HD
    aspect_ratio: AspectRatio = "16:9"
    target_duration: float = Field(default=5.0, gt=0)


class GenerationRequest(BaseModel):
    """Input to one phase (initial or continuation)."""

    model_config = ConfigDict(frozen=True)

    instruction: str
    seed: SeedArtifact
    resolution: Resolution
    aspect_ratio: AspectRatio = "16:9"

    @property
    def is_continuation(self) -> bool:
        return isinstance(self.seed, GenerationResult)


class JobStatus(BaseModel):
    """Snapshot of a remote operation as reported by the service."""

    model_config = ConfigDict(frozen=True)

    done: bool = False
    result: GenerationResult | None = None
    error: str | None = None


class ExtensionPlan(BaseModel):
    """How many continuation rounds a run needs and at which resolution.

    The override is decided once per run and applies to every phase.
    """

    model_config = ConfigDict(frozen=True)

    total_rounds: int = Field(default=0, ge=0)
    resolution_override: Resolution | None = None

    def resolution_for(self, requested: Resolution) -> Resolution:
        return self.resolution_override or requested
