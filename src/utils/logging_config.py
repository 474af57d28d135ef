"""Logging setup for the serverless handlers, driven by environment variables."""

import os
import logging
import sys
from pythonjsonlogger import jsonlogger

# SDK loggers that log every HTTP round trip at INFO
SDK_LOGGERS = ("httpx", "httpcore", "hpack", "supabase", "gotrue", "storage3", "postgrest")


class LoggingConfig:
    """Process-wide logging options."""

    SERVICE_NAME = os.environ.get("LOG_SERVICE_NAME", "shramic-backend")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").lower()
    LOG_MASK_SENSITIVE = os.environ.get("LOG_MASK_SENSITIVE", "true").lower() == "true"
    LOG_SLOW_OPERATION_THRESHOLD_MS = int(os.environ.get("LOG_SLOW_OPERATION_THRESHOLD_MS", "1000"))

    @classmethod
    def setup_logging(cls) -> None:
        """Send all records to stdout, as JSON unless LOG_FORMAT=text."""
        level = getattr(logging, cls.LOG_LEVEL, logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)

        if cls.LOG_FORMAT == "json":
            formatter = jsonlogger.JsonFormatter(
                "%(timestamp)s %(levelname)s %(name)s %(message)s",
                timestamp=True,
                static_fields={"service": cls.SERVICE_NAME}
            )
        else:
            formatter = logging.Formatter(
                f'%(asctime)s - {cls.SERVICE_NAME} - %(name)s - %(levelname)s - %(message)s'
            )

        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

        for name in SDK_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)
