"""Utility modules for the harness."""

from .config import Config, load_config
from .logger import setup_logging, setup_logging_from_config

__all__ = ['Config', 'load_config', 'setup_logging', 'setup_logging_from_config']
