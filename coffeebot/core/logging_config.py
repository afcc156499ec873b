import logging
import logging.config
import sys
from pathlib import Path
from typing import Dict, Any, Optional

from coffeebot.core.config import settings

MAX_LOG_BYTES = 10485760  # 10MB


def _rotating_file(filename: Path, level: str, backup_count: int = 5) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(filename),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": backup_count,
        "encoding": "utf8",
    }


def build_logging_config(log_dir: Path, level: str = "INFO", log_sql: bool = False) -> Dict[str, Any]:
    """Logging config for CoffeeBot.

    Everything goes to the console and `app.log`. Migration runs and
    backups also get their own files under `log_dir`.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s - %(lineno)d - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": sys.stdout,
            },
            "file": _rotating_file(log_dir / "app.log", "DEBUG"),
            "error_file": _rotating_file(log_dir / "errors.log", "ERROR"),
            "migrations_file": _rotating_file(log_dir / "migrations.log", "DEBUG", backup_count=3),
            "backups_file": _rotating_file(log_dir / "backups.log", "INFO", backup_count=3),
        },
        "loggers": {
            "": {  # Root logger
                "level": level,
                "handlers": ["console", "file"],
            },
            "coffeebot": {
                "level": "DEBUG",
                "handlers": ["console", "file", "error_file"],
                "propagate": False,
            },
            # Every step of every run, including the requesting user
            "coffeebot.migrations": {
                "level": "DEBUG",
                "handlers": ["console", "file", "migrations_file", "error_file"],
                "propagate": False,
            },
            "coffeebot.services.backup": {
                "level": "INFO",
                "handlers": ["console", "file", "backups_file", "error_file"],
                "propagate": False,
            },
            "coffeebot.services.backup_scheduler": {
                "level": "INFO",
                "handlers": ["console", "file", "backups_file", "error_file"],
                "propagate": False,
            },
            "uvicorn": {
                "level": "INFO",
                "handlers": ["console", "file"],
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "INFO",
                "handlers": ["console", "file"],
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "INFO" if log_sql else "WARNING",
                "handlers": ["file"],
                "propagate": False,
            },
            "botocore": {
                "level": "WARNING",
                "handlers": ["console", "file"],
                "propagate": False,
            },
        },
    }


def setup_logging(log_dir: Optional[str] = None):
    """Setup logging configuration"""
    logs_path = Path(log_dir or settings.LOG_DIR)
    logs_path.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(logs_path, settings.LOG_LEVEL.upper(), settings.DB_ECHO))

    logger = logging.getLogger("coffeebot")
    logger.info(f"Logging configuration initialized, writing to {logs_path}")

    return logger


def get_logger(name: str = "coffeebot") -> logging.Logger:
    """Get a logger with the specified name"""
    return logging.getLogger(name)
