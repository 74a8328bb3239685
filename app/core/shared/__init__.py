"""
Shared utilities module

Logging helpers used across the application.
"""

from .logger import ColoredFormatter, ContextLogger, JSONFormatter, configure_logging, get_job_logger

__all__ = [
    "ColoredFormatter",
    "ContextLogger",
    "JSONFormatter",
    "configure_logging",
    "get_job_logger",
]
