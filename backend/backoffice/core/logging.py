import logging
from logging.config import dictConfig

from backoffice.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging() -> None:
    """
    Route service, route and migration logs through one console handler.

    ``LOG_LEVEL`` applies to the ``backoffice`` package; third-party loggers
    stay at WARNING so SQL echo and access lines do not drown ledger events.
    """
    level = settings.LOG_LEVEL.upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": LOG_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                }
            },
            "root": {"level": "WARNING", "handlers": ["console"]},
            "loggers": {
                "backoffice": {"level": level},
                "sqlalchemy.engine": {"level": "WARNING"},
                "uvicorn.access": {"level": "WARNING"},
            },
        }
    )
    logging.getLogger(__name__).info(
        "Logging configured for %s (level=%s)", settings.ENVIRONMENT, level
    )
