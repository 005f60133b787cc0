"""
Logging helpers for applications built on the library.

The library modules only log through logging.getLogger(__name__) and never
configure handlers. An application calls create_logger for the loggers it
wants printed, e.g. create_logger("class_schema") to see schema generation
and instantiation failures, with levels taken from LOGGER_LEVEL and
LOGGER_LEVEL.<name> in the environment or .env file.
"""

import logging
import os
import sys
import traceback
from typing import Optional

from .config import SchemaEnv

LOG_FORMAT = '%(asctime)s - %(levelname)-5s: %(name)s - %(message)s (file: %(filename)s, line: %(lineno)d)'


def env_log_level(name: Optional[str] = None, default: int = logging.INFO) -> int:
    """Level from LOGGER_LEVEL, overridden by LOGGER_LEVEL.<name> when set."""
    SchemaEnv.load_env()
    level = getattr(logging, os.getenv('LOGGER_LEVEL', 'INFO').upper(), default)
    if name:
        module_log_level = os.getenv(f'LOGGER_LEVEL.{name}')
        # check if there is a specific log level for the module
        if module_log_level:
            level = getattr(logging, module_log_level.upper(), level)
    return level


class CustomFormatter(logging.Formatter):
    LEVELNAME_MAP = {
        'WARNING': 'WARN',
        'CRITICAL': 'CRIT',
    }

    def format(self, record):
        original = record.levelname
        record.levelname = self.LEVELNAME_MAP.get(original, original)
        try:
            return super().format(record)
        finally:
            record.levelname = original


# Generic logger creation function to be used by applications of the library
def create_logger(name: str, level: Optional[int] = None, propagate: bool = False) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level if level is not None else env_log_level(name))
    if not any(getattr(handler, '_class_schema_handler', False) for handler in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(CustomFormatter(LOG_FORMAT))
        handler._class_schema_handler = True
        logger.addHandler(handler)
    logger.propagate = propagate
    return logger


def log_exception(logger: logging.Logger, message: str, exception: BaseException) -> None:
    logger.error(f"{message}: {exception}")
    logger.error(''.join(traceback.format_exception(type(exception), exception, exception.__traceback__)))
