import logging
import sys
from pythonjsonlogger.jsonlogger import JsonFormatter
from groundcrew.core.config import get_settings

SERVICE_NAME = "groundcrew-sync"

# Third-party loggers that drown out crew activity at INFO
QUIET_LOGGERS = ("apscheduler", "sqlalchemy.engine", "aiosqlite", "asyncio")


def _formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        # One JSON object per line; extra={...} keys are merged in
        return JsonFormatter(
            fmt='%(asctime)s %(name)s %(levelname)s %(message)s',
            rename_fields={"asctime": "timestamp", "levelname": "level"},
            static_fields={"service": SERVICE_NAME},
        )
    return logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )


def setup_logging() -> logging.Logger:
    """
    Configure the root logger from settings.
    Safe to call repeatedly; existing handlers are replaced.
    """
    settings = get_settings()
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper()))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_formatter(settings.LOG_FORMAT))
    root.handlers = [handler]

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if settings.DATABASE_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return root
