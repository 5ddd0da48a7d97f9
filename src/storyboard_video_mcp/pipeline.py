"""Two-phase video generation pipeline.

One run is: submit the initial clip → poll it → for each planned round,
submit a continuation seeded by the previous result → poll it. Rounds are
strictly sequential because each one consumes its predecessor's output.

Failure policy:

- anything that fails the initial phase aborts the run;
- a continuation round that cannot produce a result ends the run early and
  the best video so far is returned (a shorter video beats no video);
- authorization, validation and cancellation errors always propagate;
- transient service errors never escape — once retries are exhausted they
  are reported as :class:`GenerationFailedError` for that phase.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum

from .cancellation import CancelToken
from .config import get_config
from .errors import (
    GenerationError,
    GenerationFailedError,
    InputValidationError,
    TransientServiceError,
    to_generation_error,
)
from .models.generation import (
    GenerationConfig,
    GenerationRequest,
    GenerationResult,
    Resolution,
    SeedImage,
)
from .planner import plan_extension
from .poller import JobPoller
from .prompts.video import CONTINUATION_CLIP, INITIAL_CLIP
from .service import MediaGenerationService

logger = logging.getLogger(__name__)

ProgressSink = Callable[[str], None]


class PipelineState(str, Enum):
    """Run lifecycle. ``DONE`` and ``FAILED`` are terminal."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    POLLING = "polling"
    CONTINUING = "continuing"
    DONE = "done"
    FAILED = "failed"


class ProgressReporter:
    """Best-effort, fire-and-forget progress notifications.

    Events reach the sink in emission order. A sink that raises loses that
    event; the pipeline never stalls or fails because of it.
    """

    def __init__(self, sink: ProgressSink | None = None, prefix: str = "") -> None:
        self._sink = sink
        self._prefix = prefix

    def __call__(self, message: str) -> None:
        logger.debug("progress: %s%s", self._prefix, message)
        if self._sink is None:
            return
        try:
            self._sink(f"{self._prefix}{message}")
        except Exception:
            logger.warning("Progress sink raised — event dropped", exc_info=True)


def default_generation_config() -> GenerationConfig:
    """Caller options derived from the server config."""
    cfg = get_config()
    return GenerationConfig(
        resolution=Resolution(cfg.default_resolution),
        aspect_ratio=cfg.default_aspect_ratio,
        target_duration=cfg.base_clip_seconds,
    )


def _validate_inputs(instruction: str, seed: object) -> None:
    if not isinstance(instruction, str) or not instruction.strip():
        raise InputValidationError("Instruction text is required")
    if seed is None:
        raise InputValidationError("A seed image is required")
    if not isinstance(seed, SeedImage):
        raise InputValidationError("The seed artifact must be an image")
    if not seed.data:
        raise InputValidationError("The seed image is empty")


class GenerationPipeline:
    """Orchestrates the initial clip and its continuation rounds.

    Args:
        service: Remote generation service (submit + check status).
        poller: Phase runner; built from config when omitted.
        base_duration: Seconds produced by one generation call.
        per_round_increment: Seconds added by each continuation round.
        max_run_seconds: Whole-run bound; ``0`` disables it.
        clock: Monotonic clock shared with the poller for deadlines.
    """

    def __init__(
        self,
        service: MediaGenerationService,
        poller: JobPoller | None = None,
        *,
        base_duration: float | None = None,
        per_round_increment: float | None = None,
        max_run_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        cfg = get_config()
        self.service = service
        self.poller = poller or JobPoller(clock=clock)
        self.base_duration = base_duration if base_duration is not None else cfg.base_clip_seconds
        self.per_round_increment = (
            per_round_increment if per_round_increment is not None else cfg.extension_seconds
        )
        self.max_run_seconds = max_run_seconds if max_run_seconds is not None else cfg.run_max_seconds
        self._clock = clock
        self.state = PipelineState.IDLE

    async def run(
        self,
        instruction: str,
        seed_artifact: SeedImage | None,
        config: GenerationConfig | None = None,
        on_progress: ProgressSink | None = None,
        cancel: CancelToken | None = None,
    ) -> GenerationResult:
        """Generate a video of (at least) ``config.target_duration`` seconds.

        Args:
            instruction: Storyboard text describing the shot.
            seed_artifact: Product image the first clip animates.
            config: Resolution, aspect ratio and target duration.
            on_progress: Receives human-readable status lines.
            cancel: Aborts the run at the next suspension point.

        Returns:
            The final (possibly shorter than planned) video. Fetching the
            bytes behind ``uri`` is up to the caller.

        Raises:
            InputValidationError: Missing instruction or seed; no network call made.
            AuthorizationError: The credential is missing, invalid or expired.
            GenerationFailedError: The initial clip could not be produced.
            GenerationCancelledError: *cancel* fired.
        """
        _validate_inputs(instruction, seed_artifact)
        config = config or default_generation_config()
        progress = ProgressReporter(on_progress)
        deadline = self._clock() + self.max_run_seconds if self.max_run_seconds else None
        self.state = PipelineState.SUBMITTING

        try:
            progress("initializing")
            plan = plan_extension(
                config.target_duration,
                self.base_duration,
                self.per_round_increment,
                config.resolution,
            )
            resolution = plan.resolution_for(config.resolution)
            if plan.resolution_override is not None:
                logger.info(
                    "Downgrading run from %s to %s for %d extension round(s)",
                    config.resolution.value, resolution.value, plan.total_rounds,
                )

            request = GenerationRequest(
                instruction=INITIAL_CLIP.format(instruction=instruction.strip()),
                seed=seed_artifact,
                resolution=resolution,
                aspect_ratio=config.aspect_ratio,
            )
            progress(f"generating initial clip ({resolution.value})")
            current = await self._run_phase(request, cancel, deadline)

            for round_no in range(1, plan.total_rounds + 1):
                self.state = PipelineState.CONTINUING
                progress(f"extending, round {round_no}/{plan.total_rounds}")
                request = GenerationRequest(
                    instruction=CONTINUATION_CLIP.format(
                        instruction=instruction.strip(),
                        round=round_no,
                        total_rounds=plan.total_rounds,
                    ),
                    seed=current,
                    resolution=resolution,
                    aspect_ratio=config.aspect_ratio,
                )
                try:
                    current = await self._run_phase(request, cancel, deadline)
                except GenerationFailedError as exc:
                    logger.warning(
                        "Extension round %d/%d failed, returning %.0fs video: %s",
                        round_no, plan.total_rounds, current.duration_seconds, exc,
                    )
                    progress(
                        f"extension stopped at round {round_no}/{plan.total_rounds}, "
                        "keeping the shorter video"
                    )
                    break
        except Exception:
            self.state = PipelineState.FAILED
            raise

        self.state = PipelineState.DONE
        progress(f"completed ({current.duration_seconds:.0f}s, {current.resolution.value})")
        return current

    async def _run_phase(
        self,
        request: GenerationRequest,
        cancel: CancelToken | None,
        deadline: float | None,
    ) -> GenerationResult:
        async def submit():
            handle = await self.service.submit(request)
            self.state = PipelineState.POLLING
            return handle

        try:
            return await self.poller.poll_until_done(
                submit, self.service.check_status, cancel=cancel, deadline=deadline,
            )
        except GenerationError as exc:
            if isinstance(exc, TransientServiceError):
                raise GenerationFailedError(f"Service unavailable after retries: {exc}") from exc
            raise
        except Exception as exc:
            error = to_generation_error(exc)
            if isinstance(error, TransientServiceError):
                raise GenerationFailedError(f"Service unavailable after retries: {exc}") from exc
            raise error from exc


async def generate_batch(
    pipeline: GenerationPipeline,
    instruction: str,
    seed_artifact: SeedImage | None,
    config: GenerationConfig | None = None,
    *,
    count: int = 1,
    on_progress: ProgressSink | None = None,
    cancel: CancelToken | None = None,
) -> list[GenerationResult]:
    """Produce *count* independent videos, one run after another.

    Progress lines are prefixed with ``[video i/count]``. Any error raised
    by a run aborts the remaining runs.
    """
    if count < 1:
        raise InputValidationError("count must be >= 1")

    results: list[GenerationResult] = []
    for index in range(1, count + 1):
        prefixed = ProgressReporter(on_progress, prefix=f"[video {index}/{count}] ")
        results.append(
            await pipeline.run(instruction, seed_artifact, config, on_progress=prefixed, cancel=cancel)
        )
    return results
