"""
Configuration and logging helpers shared across the package.
"""

from .config import get_section, load_config
from .logging_utils import setup_logging

__all__ = ["get_section", "load_config", "setup_logging"]
