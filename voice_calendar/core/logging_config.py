"""Logging configuration for the Voice Calendar application.
"""

import logging
import logging.config

LOG_LEVEL = logging.INFO

# Define logging format
LOG_FORMAT = "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Define the dictionary configuration
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False, # Keep existing loggers (e.g., uvicorn)
    "formatters": {
        "default": {
            "format": LOG_FORMAT,
            "datefmt": DATE_FORMAT,
        },
    },
    "handlers": {
        "console": {
            "level": LOG_LEVEL,
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        # Root logger configuration
        "": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": True,
        },
        "uvicorn.error": {
            "level": logging.INFO,
            "handlers": ["console"],
            "propagate": False,
        },
        "uvicorn.access": {
            "level": logging.WARNING, # Reduce verbosity of access logs
            "handlers": ["console"],
            "propagate": False,
        },
        "httpx": {
             "level": logging.WARNING,
             "handlers": ["console"],
             "propagate": False,
        },
        "googleapiclient.discovery_cache": {
            "level": logging.ERROR, # file_cache warning is noise with oauth2client absent
            "handlers": ["console"],
            "propagate": False,
        },
    }
}


def configure_logging(debug: bool = False) -> None:
    """Applies LOGGING_CONFIG, lowering the root level to DEBUG when requested."""
    config = dict(LOGGING_CONFIG)
    if debug:
        config["loggers"] = dict(config["loggers"])
        config["loggers"][""] = {**config["loggers"][""], "level": logging.DEBUG}
    logging.config.dictConfig(config)
