"""
Logging configuration for the Rehla Trees field client.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Dict, Any


def setup_logging(config: Dict[str, Any]) -> None:
    """Setup console and rotating file logging."""

    log_level = config.get("log_level", "INFO").upper()
    log_file = config.get("log_file", "logs/rehla_trees.log")
    debug = config.get("debug", False)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    level = logging.DEBUG if debug else getattr(logging, log_level, logging.INFO)
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler
    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=10485760,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    except OSError as e:
        root_logger.warning(f"Could not setup file logging: {e}")

    # Third-party loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
