"""Shared type aliases for tool parameters."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

# ── Literal enums ────────────────────────────────────────────────────────────

ResolutionParam = Literal["720p", "1080p"]
AspectRatioParam = Literal["16:9", "9:16"]

# ── Annotated aliases ────────────────────────────────────────────────────────

InstructionParam = Annotated[str, Field(
    min_length=1,
    max_length=10000,
    description="Storyboard text describing the shot to animate",
)]
ImagePath = Annotated[str, Field(
    min_length=1,
    description="Path to the seed product image (jpg, jpeg, png, webp)",
)]
TargetDuration = Annotated[float, Field(
    gt=0,
    le=148,
    description="Requested video length in seconds; longer than one clip triggers extension rounds",
)]
VideoCount = Annotated[int, Field(
    ge=1,
    description="Number of independent videos to generate, one after another",
)]
