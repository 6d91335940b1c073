from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from app.config import LoggingSettings

_INITIALIZED = False


def configure_logging(settings: LoggingSettings) -> None:
    """Install console (and optionally rotating file) handlers on the root logger."""

    global _INITIALIZED
    if _INITIALIZED:
        return

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_dir is not None:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                str(settings.log_dir / "desk_reservations.log"),
                maxBytes=1_000_000,
                backupCount=5,
                encoding="utf-8",
            )
        )

    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.level, logging.INFO))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    _INITIALIZED = True
    logging.getLogger(__name__).debug(
        "Logging configured at %s (file output: %s)", settings.level, settings.log_dir
    )


__all__ = ["configure_logging"]
