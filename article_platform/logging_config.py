"""Process-wide logging: console plus a daily audit file under LOG_DIR.

Callers log usernames and outcomes only; passwords, hashes and salts never
reach these handlers.
"""
import logging
from logging.config import dictConfig
from pathlib import Path

from . import config

LOG_FILE_NAME = "article_platform.log"
AUDIT_RETENTION_DAYS = 14


def configure_logging(log_dir: str = None, level=None):
    """Install handlers once; later calls leave an existing setup alone."""
    if logging.getLogger().handlers:
        return

    target = Path(log_dir or config.log_dir() or Path(__file__).parent / "logs")
    target.mkdir(parents=True, exist_ok=True)

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"}
            },
            "handlers": {
                "console": {"class": "logging.StreamHandler", "formatter": "default"},
                "audit": {
                    "class": "logging.handlers.TimedRotatingFileHandler",
                    "formatter": "default",
                    "filename": str(target / LOG_FILE_NAME),
                    "when": "midnight",
                    "backupCount": AUDIT_RETENTION_DAYS,
                    "utc": True,
                },
            },
            "root": {"level": level or config.log_level(), "handlers": ["console", "audit"]},
        }
    )


__all__ = ["configure_logging"]
