"""
Logging Configuration

Configures stdlib logging once at startup. Development gets readable text
lines; production gets one JSON object per line so log shippers can parse
them. Bearer tokens are masked in every record.
"""

import json
import logging
import logging.config
import re
from typing import Any

from apply4me.core.config import settings

_BEARER_RE = re.compile(r"(Bearer\s+)([A-Za-z0-9._-]+)", re.IGNORECASE)

PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class SensitiveDataFilter(logging.Filter):
    """Mask bearer tokens that end up in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _BEARER_RE.sub(lambda m: m.group(1) + "[REDACTED]", record.msg)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname,
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def build_logging_config(
    python_env: str,
    log_level: str | None = None,
    log_format: str | None = None,
) -> dict[str, Any]:
    """
    Build the dictConfig mapping for the given environment.

    Defaults: INFO + json in production, DEBUG + text elsewhere.
    """
    is_production = python_env.lower() == "production"
    level = (log_level or ("INFO" if is_production else "DEBUG")).upper()
    fmt = (log_format or ("json" if is_production else "text")).lower()

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "sensitive": {"()": SensitiveDataFilter},
        },
        "formatters": {
            "json": {"()": JsonFormatter},
            "plain": {"format": PLAIN_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "stream": "ext://sys.stdout",
                "formatter": "json" if fmt == "json" else "plain",
                "filters": ["sensitive"],
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        "loggers": {
            # Reduce noise
            "sqlalchemy.engine": {"level": "WARNING"},
            "apscheduler": {"level": "INFO" if not is_production else "WARNING"},
            "httpx": {"level": "WARNING"},
        },
    }


def setup_logging() -> None:
    """Apply the logging configuration derived from settings."""
    config = build_logging_config(
        settings.python_env,
        log_level=settings.log_level,
        log_format=settings.log_format,
    )
    logging.config.dictConfig(config)
    logging.getLogger(__name__).info(
        f"Logging configured (env={settings.python_env}, "
        f"level={config['root']['level']}, "
        f"format={config['handlers']['console']['formatter']})"
    )
