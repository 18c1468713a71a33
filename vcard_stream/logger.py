"""
Logging configuration and utilities for the vCard stream tools.

This module provides logging setup and the summary block printed by the
command-line interface.

Dependencies:
    - logging: Standard library for logging functionality
    - sys: Standard library for system-specific parameters
    - pathlib: Standard library for path handling
    - typing: Standard library for type hints
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from logging import Logger


def setup_logger(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True
) -> Logger:
    """
    Set up and configure the application logger.

    Console output goes to stderr so that token dumps on stdout stay clean.

    :param log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    :param log_file: Optional path to a log file receiving DEBUG output
    :param console_output: Whether to output logs to console
    :return: Configured logger instance
    """
    logger = logging.getLogger("vcard_stream")
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(logging.DEBUG if log_file else level)

    logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    simple_formatter = logging.Formatter(
        '%(levelname)s: %(message)s'
    )

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(simple_formatter)
        logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        logger.addHandler(file_handler)
        logger.debug("Logging initialized. Log file: %s", log_file)

    return logger


def log_statistics(logger: Logger, stats: Dict[str, Any]) -> None:
    """
    Log summary statistics.

    :param logger: Logger instance
    :param stats: Dictionary containing statistics
    """
    logger.info("=" * 60)
    logger.info("TOKENIZER SUMMARY")
    logger.info("=" * 60)
    for key, value in stats.items():
        logger.info(f"{key.replace('_', ' ').capitalize()}: {value}")
    logger.info("=" * 60)
