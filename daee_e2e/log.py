"""Logging setup for the bootstrap CLI and the pytest session."""
from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str | int | None = None) -> None:
    if level is None:
        from daee_e2e.config import settings

        level = settings.log_level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("daee_e2e").setLevel(level)
