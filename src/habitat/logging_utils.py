"""Logging helpers for the optimizer entry points."""

from __future__ import annotations

import logging
from pathlib import Path

LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def resolve_level(level: int | str) -> int:
    """Map a level name (any case) or number to a logging level.

    Raises:
        ValueError: If `level` is not one of LOG_LEVELS.
    """
    if isinstance(level, int):
        return level
    name = str(level).strip().upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level {level!r}. Valid options: {', '.join(LOG_LEVELS)}")
    return logging.getLevelName(name)


def configure_logging(level: int | str = logging.INFO, log_path: str | None = None) -> None:
    """Configure default logging if no handlers are present."""
    level = resolve_level(level)
    root = logging.getLogger()
    if root.handlers:
        return
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_path:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )
