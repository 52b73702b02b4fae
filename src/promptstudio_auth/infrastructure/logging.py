"""Process logging setup for the auth API runtime."""

from __future__ import annotations

import logging

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
# SQL echo would print bound parameters, token hashes included.
_SQL_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def resolve_log_level(level: str) -> int:
    """Map a configured level name onto a logging level, defaulting to INFO."""

    normalized_level = level.strip().upper() if level.strip() else "INFO"
    resolved = logging.getLevelName(normalized_level)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(*, level: str) -> None:
    """Configure root logging once and keep SQL logging at WARNING or above."""

    resolved_level = resolve_log_level(level)
    logging.basicConfig(level=resolved_level, format=_LOG_FORMAT)
    logging.getLogger("promptstudio_auth").setLevel(resolved_level)
    for name in _SQL_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved_level, logging.WARNING))
