"""
Session artifacts: Playwright storage state saved per profile.

The bootstrap writes ``<auth_dir>/<profile>.json`` after a successful login;
scenarios load it into a fresh browser context to skip the interactive
login. Files are written to a temporary name first and only renamed into
place once they pass the size check, so a failed run never clobbers a good
artifact.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from playwright.async_api import BrowserContext

from daee_e2e.config import settings
from daee_e2e.errors import ArtifactWriteFailure

logger = logging.getLogger(__name__)


async def save_auth_state(
    context: BrowserContext,
    profile_id: str,
    path: Path,
    minimum_bytes: Optional[int] = None,
) -> int:
    """Serialize cookies and local storage of ``context`` to ``path``.

    Returns the artifact size in bytes. Raises ArtifactWriteFailure when
    the written file is missing or smaller than ``minimum_bytes``.
    """
    minimum = settings.min_auth_state_bytes if minimum_bytes is None else minimum_bytes
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = path.with_suffix(".tmp")

    try:
        await context.storage_state(path=str(temp_file))
        size = temp_file.stat().st_size if temp_file.exists() else 0
        if size < minimum:
            raise ArtifactWriteFailure(profile_id=profile_id, path=str(path), size=size, minimum=minimum)
        temp_file.replace(path)
    finally:
        if temp_file.exists():
            temp_file.unlink()

    logger.info("Saved auth state for %s to %s (%d bytes)", profile_id, path, size)
    return size


def auth_state_exists(path: Path, minimum_bytes: Optional[int] = None) -> bool:
    """True when ``path`` holds a plausible artifact."""
    minimum = settings.min_auth_state_bytes if minimum_bytes is None else minimum_bytes
    return path.exists() and path.stat().st_size >= minimum


def clear_auth_state(path: Path) -> None:
    if path.exists():
        path.unlink()
        logger.info("Cleared auth state: %s", path)
