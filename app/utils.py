"""
Logging helpers shared by every module.

Usage:
    from app.utils import get_logger

    log = get_logger(__name__)
"""
import logging
import logging.config

from app.core import config


_FORMATS = {
    "simple": "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
    "json": '{"time":"%(asctime)s","level":"%(levelname)s","module":"%(name)s","message":"%(message)s"}',
}

# Third-party loggers that are too chatty below WARNING
_QUIET_LOGGERS = ["aiosqlite", "sqlalchemy.engine", "httpx", "httpcore", "asyncio"]

_configured = False


def configure_logging() -> None:
    """Configure the root logger from LOG_LEVEL and LOG_FORMAT (once per process)."""
    global _configured
    if _configured:
        return

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": _FORMATS.get(config.LOG_FORMAT, _FORMATS["simple"]),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": config.LOG_LEVEL,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": config.LOG_LEVEL,
            "handlers": ["console"],
        },
        "loggers": {
            name: {"level": "WARNING", "handlers": ["console"], "propagate": False}
            for name in _QUIET_LOGGERS
        },
    }
    logging.config.dictConfig(logging_config)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger, configuring logging on first use."""
    configure_logging()
    return logging.getLogger(name)
