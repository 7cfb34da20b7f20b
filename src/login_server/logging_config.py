"""Root logger setup driven by ``config.logging``.

Modules log through ``logging.getLogger(__name__)``; this module only decides
where records go and how they look. The CLI calls :func:`configure_logging`
once before the listener starts.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from login_server.config import LoggingSettings

SIMPLE_FORMAT = "%(levelname)s %(message)s"
DETAILED_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def build_formatter(fmt: str) -> logging.Formatter:
    """Return the formatter for a ``LoggingSettings.format`` value."""
    if fmt == "json":
        return JsonFormatter()
    if fmt == "simple":
        return logging.Formatter(SIMPLE_FORMAT)
    return logging.Formatter(DETAILED_FORMAT)


def configure_logging(settings: LoggingSettings | None = None) -> logging.Logger:
    """Attach a single stream handler to the root logger.

    Calling this twice replaces the handler installed by the first call rather
    than stacking duplicates.

    Args:
        settings: Logging section to apply. Defaults to the loaded config.

    Returns:
        The configured root logger.
    """
    if settings is None:
        from login_server.config import config

        settings = config.logging

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_login_server_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(build_formatter(settings.format))
    handler._login_server_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    level = logging.getLevelName(settings.level.upper())
    root.setLevel(level if isinstance(level, int) else logging.INFO)
    return root
