"""
X-Ray - Logging Utilities
File + console logging for the ingestion server and submitters.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "xray"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def build_logger(
    log_dir: Optional[Union[str, Path]] = None,
    name: str = LOGGER_NAME,
    level: int = logging.INFO
) -> logging.Logger:
    """
    Configure the X-Ray logger hierarchy.
    
    Args:
        log_dir: Directory for the rotating log file. Console only if None.
        name: Logger name; modules log under ``xray.*``.
        level: Logging level.
    
    Returns:
        The configured logger.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers when the app factory runs more than once
    if logger.handlers:
        return logger

    fmt = logging.Formatter(LOG_FORMAT)

    if log_dir is not None:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        log_path = Path(log_dir) / "xray.log"
        handler = RotatingFileHandler(str(log_path), maxBytes=2_000_000, backupCount=5, encoding="utf-8")
        handler.setFormatter(fmt)
        logger.addHandler(handler)

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    logger.addHandler(console)
    return logger
