"""Fill missing environment variables from ``~/.config/storyboard-video-mcp/.env``.

Lets the API key and Veo settings live in one file shared by every MCP
host. Values already present in the process environment win.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_ENV_PATH = Path.home() / ".config" / "storyboard-video-mcp" / ".env"

_QUOTES = ('"', "'")


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        return value[1:-1]
    return value


def _is_missing(key: str, current: str | None) -> bool:
    """True when *current* is absent, blank, or an unexpanded ``$KEY`` / ``${KEY}``."""
    if current is None:
        return True
    current = _unquote(current).strip()
    return current in {"", f"${key}", f"${{{key}}}"}


def parse_dotenv(path: Path) -> dict[str, str]:
    """Read ``KEY=VALUE`` pairs from *path*.

    Blank lines, ``#`` comments and an ``export`` prefix are accepted.
    Lines without ``=`` are ignored. Missing files yield an empty dict.
    """
    if not path.is_file():
        return {}

    pairs: dict[str, str] = {}
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        line = line.removeprefix("export ").lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if sep and key:
            pairs[key] = _unquote(value)
    return pairs


def load_dotenv(path: Path | None = None) -> dict[str, str]:
    """Copy vars from *path* into ``os.environ`` where they are missing.

    Returns:
        The variables that were injected.
    """
    injected = {
        key: value
        for key, value in parse_dotenv(path or DEFAULT_ENV_PATH).items()
        if _is_missing(key, os.environ.get(key))
    }
    os.environ.update(injected)
    return injected
