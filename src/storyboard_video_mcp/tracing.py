"""Optional MLflow tracing for video generation tools.

``trace()`` wraps tool entrypoints in ``TOOL`` spans; ``mlflow.gemini.autolog()``
records the underlying google-genai calls as child spans.

Guarded import — the server runs fine without ``mlflow-tracing`` installed.

Env vars (all optional):
    MLFLOW_TRACKING_URI: Where to store traces. Empty = tracing disabled.
    MLFLOW_EXPERIMENT_NAME: Experiment name (default ``storyboard-video-mcp``).
    GEMINI_TRACING_ENABLED: Set to ``"false"`` to force-disable even with a URI.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

try:
    import mlflow
    import mlflow.gemini

    _HAS_MLFLOW = True
except ImportError:
    _HAS_MLFLOW = False


def is_enabled() -> bool:
    """Return True when mlflow-tracing is installed and enabled in config."""
    if not _HAS_MLFLOW:
        return False
    from .config import get_config

    return get_config().tracing_enabled


def trace(
    func: Callable | None = None,
    *,
    name: str | None = None,
    span_type: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Callable:
    """``@mlflow.trace`` when tracing is on, identity otherwise.

    Usage::

        @trace(name="video_generate", span_type="TOOL")
        async def video_generate(...): ...
    """
    if not is_enabled():
        return func if func is not None else (lambda f: f)
    return mlflow.trace(func, name=name, span_type=span_type, attributes=attributes)


def setup() -> None:
    """Point MLflow at the configured tracking server and enable autologging.

    Failures are logged and swallowed so tracing never blocks startup.
    """
    if not is_enabled():
        return

    from .config import get_config

    cfg = get_config()
    try:
        mlflow.set_tracking_uri(cfg.mlflow_tracking_uri)
        mlflow.set_experiment(cfg.mlflow_experiment_name)
        mlflow.gemini.autolog()
        logger.info(
            "MLflow tracing enabled (uri=%s, experiment=%s)",
            cfg.mlflow_tracking_uri, cfg.mlflow_experiment_name,
        )
    except Exception:
        logger.warning("MLflow tracing setup failed — continuing without tracing", exc_info=True)


def shutdown() -> None:
    """Flush pending async traces."""
    if not is_enabled():
        return

    try:
        mlflow.flush_trace_async_logging()
    except Exception:
        logger.warning("MLflow trace flush failed", exc_info=True)
