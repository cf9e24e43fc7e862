"""Utility functions for configuration, logging, and helpers."""

from image_curator.utils.config import Config
from image_curator.utils.logger import setup_logger

__all__ = ["Config", "setup_logger"]
