"""Continuation planning — how many extension rounds a target duration needs."""

from __future__ import annotations

import math

from .models.generation import REDUCED_RESOLUTION, ExtensionPlan, Resolution


def plan_extension(
    target_duration: float,
    base_duration: float,
    per_round_increment: float,
    requested_resolution: Resolution,
) -> ExtensionPlan:
    """Compute the extension plan for one run.

    Rounds are ``ceil((target - base) / increment)``, or zero when the base
    clip already covers the target. Continuation only works at the reduced
    tier, so a multi-round run requested at a higher tier is downgraded as a
    whole: the initial clip and every extension share one resolution.

    Raises:
        ValueError: If *per_round_increment* is not positive.
    """
    if per_round_increment <= 0:
        raise ValueError("per_round_increment must be > 0")

    if target_duration <= base_duration:
        return ExtensionPlan(total_rounds=0)

    rounds = math.ceil((target_duration - base_duration) / per_round_increment)
    override = None
    if Resolution(requested_resolution) is not REDUCED_RESOLUTION:
        override = REDUCED_RESOLUTION
    return ExtensionPlan(total_rounds=rounds, resolution_override=override)
