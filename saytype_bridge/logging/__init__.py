"""
Centralized logging for the SayType bridge.

Provides structured JSON logging with service tagging and log rotation.
"""

from saytype_bridge.logging.setup import get_logger, setup_logging

__all__ = ["setup_logging", "get_logger"]
