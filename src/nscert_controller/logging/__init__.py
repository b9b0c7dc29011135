"""Logging configuration for nscert_controller."""

from nscert_controller.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
