"""
Rotation Engine Logging Setup

Clean console output + optional timestamped debug file.
Services log through `logging.getLogger(__name__)`; this module only wires
handlers onto the package loggers.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

LOGGER_NAMES = ["src.services", "src.utils"]

FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
CONSOLE_FORMAT = '[%(asctime)s] %(message)s'

_log_file: Optional[Path] = None


def init_logging(settings=None) -> Optional[Path]:
    """
    Configure console (and in debug mode, file) logging.

    Args:
        settings: Settings instance; defaults to get_settings()

    Returns:
        Path of the debug log file, or None when debug mode is off
    """
    global _log_file
    if settings is None:
        from src.config import get_settings
        settings = get_settings()

    level = getattr(logging, str(settings.log_level).upper(), logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    handlers = [console_handler]

    _log_file = None
    if settings.debug_mode:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        _log_file = log_dir / f"rotation_debug_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

        file_handler = logging.FileHandler(_log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        handlers.append(file_handler)

    for name in LOGGER_NAMES:
        package_logger = logging.getLogger(name)
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()
        for handler in handlers:
            package_logger.addHandler(handler)
        package_logger.setLevel(logging.DEBUG if settings.debug_mode else level)
        package_logger.propagate = False

    if _log_file:
        logging.getLogger(LOGGER_NAMES[0]).info(f"📝 Debug mode enabled. Logging to: {_log_file}")
    return _log_file


def get_log_file() -> Optional[Path]:
    """Debug log file from the last init_logging() call."""
    return _log_file
