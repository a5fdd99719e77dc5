import logging
import logging.config

from adroi.core.config import get_settings


def build_logging_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "{levelname} {asctime} {name} {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "verbose",
            },
        },
        "loggers": {
            "adroi": {
                "handlers": ["console"],
                "level": level.upper(),
                "propagate": True,
            },
        },
    }


def configure_logging() -> None:
    logging.config.dictConfig(build_logging_config(get_settings().log_level))


def get_logger(area: str) -> logging.Logger:
    return logging.getLogger(f"adroi.{area}")
