"""
funcworker Configuration

Environment-driven worker settings.
"""

from .schemas import WorkerSettings
from .settings import configure_logging, get_settings

__all__ = [
    "WorkerSettings",
    "configure_logging",
    "get_settings",
]
