from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

_QUIET_LOGGERS = ("filelock",)


def configure_logging(level: str, error_log_path: Path | None = None) -> None:
    resolved_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(resolved_level)
    root.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console.setLevel(resolved_level)
    root.addHandler(console)

    if error_log_path is not None:
        error_log_path.parent.mkdir(parents=True, exist_ok=True)
        error_file = RotatingFileHandler(
            error_log_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        error_file.setFormatter(formatter)
        error_file.setLevel(logging.WARNING)
        root.addHandler(error_file)

    # filelock reports every acquire/release at DEBUG; the map save logs its own outcome.
    for logger_name in _QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(max(resolved_level, logging.INFO))
