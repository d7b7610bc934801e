import logging
from pathlib import Path
from typing import Any, Dict, List

from calagator.config import get_settings

CONSOLE_FORMAT = "%(levelname)-8s %(name)s: %(message)s"
JSON_FIELDS = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(verbose: bool = False) -> Dict[str, Any]:
    """Build the dictConfig for command line runs.

    Messages go to stderr so command output on stdout stays clean. When
    ``LOG_DIR`` is set, a rotating JSON log is written there as well.

    Args:
        verbose: Show debug messages on the console

    Returns:
        Dict: Logging configuration dictionary
    """
    settings = get_settings()
    console_level = "DEBUG" if verbose else settings.LOG_LEVEL

    formatters: Dict[str, Any] = {"console": {"format": CONSOLE_FORMAT}}
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "level": console_level,
            "stream": "ext://sys.stderr",
        },
    }
    handler_names: List[str] = ["console"]

    if settings.LOG_DIR:
        log_path = Path(settings.LOG_DIR)
        log_path.mkdir(parents=True, exist_ok=True)
        formatters["json"] = {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "format": JSON_FIELDS,
        }
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "json",
            "level": settings.LOG_LEVEL,
            "filename": str(log_path / "calagator.log"),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "encoding": "utf-8",
        }
        handler_names.append("file")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": handlers,
        "loggers": {
            "calagator": {
                "handlers": handler_names,
                "level": "DEBUG" if verbose else settings.LOG_LEVEL,
                "propagate": False,
            },
            # SQL statements only with DEBUG on
            "sqlalchemy.engine": {
                "handlers": handler_names,
                "level": "INFO" if settings.DEBUG else "WARNING",
                "propagate": False,
            },
        },
    }


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``calagator`` namespace."""
    return logging.getLogger(f"calagator.{name}")
