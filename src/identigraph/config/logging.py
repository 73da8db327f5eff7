"""Shared logging helpers for identigraph."""

from __future__ import annotations

import logging
from typing import Final

# third-party loggers that are chatty at INFO (request lines, job runs)
NOISY_LOGGERS: Final[tuple[str, ...]] = ("httpx", "hishel", "apscheduler", "alembic")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once for CLI and worker entry points.

    Library loggers listed in ``NOISY_LOGGERS`` are capped at WARNING unless the
    requested level is DEBUG. Pass ``force=True`` to reconfigure during tests.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    library_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
