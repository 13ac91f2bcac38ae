import logging.config

from unidocs.config import settings

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Install the console handler used by the API process."""
    global _configured
    if _configured:
        return
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "console",
                },
            },
            "loggers": {
                "unidocs": {
                    "handlers": ["console"],
                    "level": (level or settings.log_level).upper(),
                    "propagate": False,
                },
            },
        }
    )
    _configured = True
