# Logger - Shared Logging Setup
# One configured logger per component name

"""
Logger Module

Responsibilities:
- Create component loggers once and hand back the same instance afterwards
- Console handler on stdout, optional rotating file handler
- Runner-wide level/file settings applied to existing and future loggers
- Close handlers on interpreter exit
"""

import logging
import sys
import atexit
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Dict, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Loggers already configured by setup_logger, keyed by name
_configured_loggers: Dict[str, logging.Logger] = {}

# Set by configure(); win over per-component arguments
_level_override: Optional[int] = None
_log_file_override: Optional[str] = None


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def _file_handler(log_file: str) -> RotatingFileHandler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        log_file,
        maxBytes=10485760,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logger(name: str = "heartping", level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Setup a component logger (returns the existing one on repeated calls)

    Args:
        name: Logger name, usually the component class name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path, rotated at 10MB

    Returns:
        Configured logger instance
    """
    if name in _configured_loggers:
        return _configured_loggers[name]

    logger = logging.getLogger(name)

    # Handlers attached elsewhere (e.g. by an embedding application) win
    if logger.handlers:
        _configured_loggers[name] = logger
        return logger

    logger.setLevel(_level_override if _level_override is not None else _resolve_level(level))
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)

    log_file = log_file or _log_file_override
    if log_file:
        logger.addHandler(_file_handler(log_file))

    def cleanup_handlers():
        for handler in logger.handlers[:]:
            try:
                handler.close()
                logger.removeHandler(handler)
            except Exception:
                pass  # interpreter is shutting down

    atexit.register(cleanup_handlers)

    _configured_loggers[name] = logger
    return logger


def configure(level: str = "INFO", log_file: Optional[str] = None):
    """
    Apply a level (and optionally a log file) to every component logger,
    including the ones created after this call

    Args:
        level: Log level name
        log_file: Optional log file shared by all component loggers
    """
    global _level_override, _log_file_override

    _level_override = _resolve_level(level)
    if log_file:
        _log_file_override = log_file

    for logger in _configured_loggers.values():
        logger.setLevel(_level_override)
        if log_file and not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
            logger.addHandler(_file_handler(log_file))
