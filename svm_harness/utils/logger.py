"""
Logging utilities for the harness.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Dict, Any
import colorlog


DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: bool = True,
    color_output: bool = True,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Set up logging configuration for the harness.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        console_output: Whether to log to console
        color_output: Whether to use colored console output
        format_string: Custom format string

    Returns:
        Configured root logger
    """
    # Convert string level to logging constant
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    # Root logger, so every module's getLogger(__name__) inherits the handlers
    logger = logging.getLogger()
    logger.setLevel(numeric_level)

    # Clear existing handlers
    logger.handlers.clear()

    if format_string is None:
        format_string = DEFAULT_FORMAT

    # Console handler
    if console_output:
        if color_output:
            # Colored console handler
            console_handler = colorlog.StreamHandler(sys.stdout)
            console_formatter = colorlog.ColoredFormatter(
                '%(log_color)s' + format_string,
                log_colors={
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'red,bg_white',
                }
            )
            console_handler.setFormatter(console_formatter)
        else:
            # Plain console handler
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(logging.Formatter(format_string))

        console_handler.setLevel(numeric_level)
        logger.addHandler(console_handler)

    # File handler, never colored
    if log_file:
        # Ensure log directory exists
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(format_string))
        file_handler.setLevel(numeric_level)
        logger.addHandler(file_handler)

    return logger


def setup_logging_from_config(system_config: Dict[str, Any], verbose: bool = False) -> logging.Logger:
    """Configure logging from the `system.logging` config section."""
    log_config = system_config.get('logging', {}) or {}
    # --verbose overrides the configured level
    level = 'DEBUG' if verbose else log_config.get('level', 'INFO')
    return setup_logging(
        level=level,
        log_file=log_config.get('file'),
        console_output=log_config.get('console_logging', True),
        color_output=log_config.get('color', True),
        format_string=log_config.get('format')
    )
