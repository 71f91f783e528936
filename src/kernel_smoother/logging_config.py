import logging
from logging.config import dictConfig

from kernel_smoother.config import settings


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger with a console handler."""
    level_name = level if level is not None else settings.log_level
    level_value = getattr(logging, level_name.upper(), logging.INFO)

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s"
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": level_value,
            }
        },
        "root": {
            "handlers": ["console"],
            "level": level_value,
        },
    }

    dictConfig(config)


__all__ = ["setup_logging"]
