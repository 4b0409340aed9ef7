"""Logging setup for the command line."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Configure the root logger for CLI runs.

    A thin ``logging.basicConfig`` wrapper with a terse, timestamped format.
    ``force=True`` replaces handlers that are already installed.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    # httpx logs every request at INFO; a full run issues thousands of them.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
