# stockdash/logging_conf.py
from __future__ import annotations

import json
import logging
import os
from logging.config import dictConfig
from typing import Any

# Structured fields callers may attach with `extra={...}`
_EXTRA_KEYS = ("endpoint", "upstream_status", "cache_key", "module", "funcName")


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter for structured logs to stdout."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for extra_key in _EXTRA_KEYS:
            val = getattr(record, extra_key, None)
            if val is not None:
                payload[extra_key] = val
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str | None = None) -> None:
    """Configure JSON logging for stockdash + uvicorn, suppress duplicate access logs."""
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    def _json_logger(lvl: str = log_level) -> dict[str, Any]:
        return {"level": lvl, "handlers": ["console"], "propagate": False}

    dict_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"level": log_level, "handlers": ["console"]},
        "loggers": {
            "uvicorn": _json_logger(),
            "uvicorn.error": _json_logger(),
            # our timing middleware already emits one JSON line per request
            "uvicorn.access": _json_logger("WARNING"),
            "fastapi": _json_logger(),
            "starlette": _json_logger(),
            "httpx": _json_logger("WARNING"),
            "stockdash": _json_logger(),
            "request": _json_logger(),
        },
    }

    dictConfig(dict_config)
