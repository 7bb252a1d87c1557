from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from fee_receipt_app.core.env import (
    FEERCPT_LOG_CAPTURE_ROOT,
    FEERCPT_LOG_JSON,
    FEERCPT_LOG_LEVEL,
    get_env,
    get_env_bool,
)

APP_LOGGER_NAME = "fee_receipt_app"
PLAIN_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s event=%(event)s %(message)s"

# Fields lifted to the front of a JSON line so batch activity can be grepped by id.
_LEADING_FIELDS = ("event", "batch_id", "receipt_id", "request_id")
_STANDARD_RECORD_FIELDS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_configured_handler: logging.Handler | None = None


class EventDefaultsFilter(logging.Filter):
    """Gives every record an ``event`` attribute so plain output never fails on ``%(event)s``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "event", None):
            record.event = "-"
        return True


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_FIELDS and not key.startswith("_")
        }
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        for key in _LEADING_FIELDS:
            if key in extras:
                payload[key] = extras.pop(key)
        payload["message"] = record.getMessage()
        payload.update(extras)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=True)


def build_log_formatter(use_json: bool) -> logging.Formatter:
    if use_json:
        return JsonLogFormatter()
    return logging.Formatter(PLAIN_LOG_FORMAT)


def setup_app_logging() -> None:
    global _configured_handler  # pylint: disable=global-statement
    if _configured_handler is not None:
        return

    level_name = get_env(FEERCPT_LOG_LEVEL, "INFO").upper() or "INFO"
    level = getattr(logging, level_name, logging.INFO)
    use_json = get_env_bool(FEERCPT_LOG_JSON, default=False)
    capture_root = get_env_bool(FEERCPT_LOG_CAPTURE_ROOT, default=False)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(build_log_formatter(use_json))
    handler.addFilter(EventDefaultsFilter())

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.handlers.clear()
    app_logger.setLevel(level)
    # With root capture the app logger propagates into the shared root handler.
    app_logger.propagate = capture_root
    target = logging.getLogger() if capture_root else app_logger
    if capture_root:
        for existing in list(target.handlers):
            target.removeHandler(existing)
        target.setLevel(level)
    target.addHandler(handler)

    _configured_handler = handler
    logging.getLogger(__name__).info(
        "Receipt service logging configured. level=%s json=%s capture_root=%s",
        level_name,
        str(use_json).lower(),
        str(capture_root).lower(),
        extra={"event": "logging_configured"},
    )


def reset_app_logging() -> None:
    """Detach the configured handler so the next ``setup_app_logging()`` re-reads the environment."""
    global _configured_handler  # pylint: disable=global-statement
    if _configured_handler is None:
        return
    for logger in (logging.getLogger(APP_LOGGER_NAME), logging.getLogger()):
        if _configured_handler in logger.handlers:
            logger.removeHandler(_configured_handler)
    logging.getLogger(APP_LOGGER_NAME).propagate = True
    _configured_handler = None
