"""
Logging setup untuk aplikasi yang memakai hybridcache.
Library sendiri hanya memakai logging.getLogger(__name__).
"""

import logging
import sys

from .config import Config


def setup_logging(level: str = None, log_file: str = None):
    """
    Setup logging configuration.

    Args:
        level: Log level name, default Config.LOG_LEVEL
        log_file: Path ke log file, default Config.LOG_FILE (kosong = stdout only)
    """
    level = (level or Config.LOG_LEVEL).upper()
    log_file = Config.LOG_FILE if log_file is None else log_file

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )
