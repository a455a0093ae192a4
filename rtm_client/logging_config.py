"""
Logging setup for the ``rtm`` console script.

Library modules only create module-level loggers. Handlers are installed here,
by the CLI, and every line they emit is scrubbed of RTM credentials: urllib3
logs full request URLs at DEBUG, and those carry ``api_key``, ``api_sig`` and
``auth_token`` in the query string.
"""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import IO

DEFAULT_LEVEL = logging.WARNING
TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

SECRET_PARAMS: tuple[str, ...] = ("api_key", "api_sig", "auth_token", "frob")
NOISY_LOGGERS: tuple[str, ...] = ("urllib3",)

# Matches ``key=value`` in query strings and ``'key': 'value'`` in reprs.
_SECRET_PATTERN = re.compile(
    r"""(?P<key>\b(?:%s)\b['"]?\s*[=:]\s*['"]?)[^&\s'",}]+""" % "|".join(SECRET_PARAMS)
)

_HANDLER_MARKER = "_rtm_client_handler"


def redact(text: str) -> str:
    """Mask the values of RTM credential parameters found in ``text``."""

    return _SECRET_PATTERN.sub(r"\g<key>***", text)


class RedactingFormatter(logging.Formatter):
    """Plain text formatter that masks credentials in the rendered line."""

    def format(self, record: logging.LogRecord) -> str:
        return redact(super().format(record))


class JSONFormatter(logging.Formatter):
    """One JSON object per line, credentials masked."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = redact(self.formatException(record.exc_info))
        return json.dumps(entry, ensure_ascii=False)


def resolve_level(name: str | None) -> int:
    if not name:
        return DEFAULT_LEVEL
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else DEFAULT_LEVEL


def configure_logging(
    level_override: str | None = None,
    *,
    stream: IO[str] | None = None,
) -> int:
    """
    Install the rtm_client log handler on the root logger.

    ``level_override`` wins over ``LOG_LEVEL``; unknown names fall back to
    WARNING. ``LOG_FORMAT=json`` switches to JSON lines. Calling this again
    replaces the handler it installed earlier and leaves other handlers alone.

    Returns:
        The level that was applied.
    """
    level = resolve_level(level_override or os.getenv("LOG_LEVEL"))
    use_json = os.getenv("LOG_FORMAT", "text").strip().lower() == "json"

    root = logging.getLogger()
    for existing in [h for h in root.handlers if getattr(h, _HANDLER_MARKER, False)]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter() if use_json else RedactingFormatter(TEXT_FORMAT))
    setattr(handler, _HANDLER_MARKER, True)
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return level
