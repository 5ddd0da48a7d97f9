"""Main FastMCP server — mounts the video generation sub-server."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from . import tracing
from .client import GeminiClient
from .tools.video import video_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Startup/shutdown hook — tracing setup and shared Gemini client teardown."""
    tracing.setup()
    yield {}
    tracing.shutdown()
    closed = await GeminiClient.close_all()
    logger.info("Lifespan shutdown: closed %d client(s)", closed)


app = FastMCP(
    "storyboard-video",
    instructions=(
        "Turns product storyboard images into marketing video clips with Veo. "
        "Long videos are built from an initial clip plus sequential extension rounds."
    ),
    lifespan=_lifespan,
)

app.mount(video_server)


def main() -> None:
    """Entry-point for ``storyboard-video-mcp`` console script."""
    app.run()


if __name__ == "__main__":
    main()
