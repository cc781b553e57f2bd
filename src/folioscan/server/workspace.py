"""Workspace paths and initialization helpers."""

from __future__ import annotations

import os
from pathlib import Path

WORKSPACE_ENV_KEY = "FOLIOSCAN_WORKSPACE_ROOT"


def _resolve_workspace_root() -> Path:
    env_value = os.getenv(WORKSPACE_ENV_KEY)
    if env_value:
        return Path(env_value).expanduser().resolve()
    return Path(__file__).resolve().parents[3] / "workspace"


WORKSPACE_ROOT = _resolve_workspace_root()
VIDEOS_DIR = WORKSPACE_ROOT / "videos"


def ensure_workspace_layout() -> None:
    """Ensure workspace directories exist."""

    for path in (WORKSPACE_ROOT, VIDEOS_DIR):
        path.mkdir(parents=True, exist_ok=True)


def resolve_video_path(value: str) -> Path:
    """Resolve a request path; relative paths are looked up under the videos directory."""

    candidate = Path(value).expanduser()
    if not candidate.is_absolute():
        candidate = VIDEOS_DIR / candidate
    candidate = candidate.resolve()
    if not candidate.is_file():
        raise FileNotFoundError(f"video not found: {value}")
    return candidate
