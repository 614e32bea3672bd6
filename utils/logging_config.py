# utils/logging_config.py
import logging
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown logging level '{level}'")
        return resolved
    return level


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Configure the root logger with a console handler and optionally a file handler.

    Args:
        level: Logging level, numeric (logging.DEBUG) or by name ("DEBUG").
        log_file: Optional path to a file for logging output.
    """
    logger = logging.getLogger()
    logger.setLevel(_resolve_level(level))

    # Replace handlers so repeated calls do not duplicate output
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    ch = logging.StreamHandler()
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    if log_file:
        fh = logging.FileHandler(log_file)
        fh.setFormatter(formatter)
        logger.addHandler(fh)


def get_logger(name: str) -> logging.Logger:
    """
    Retrieve a module logger. Level is left to the root configuration so
    `setup_logging(level=...)` governs every module uniformly.
    """
    return logging.getLogger(name)
