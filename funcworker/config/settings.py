"""
Settings access.

get_settings() reads the environment once per process; tests call
get_settings.cache_clear() after changing environment variables.

Environment:
    FUNCTIONS_WORKER_DIRECTORY      deployment root
    FUNCTIONS_WORKER_METADATA_FILE  metadata file name (functions.metadata)
    FUNCTIONS_WORKER_ID             worker identifier
    FUNCTIONS_WORKER_LOG_LEVEL      log level (INFO)
    FUNCTIONS_INVOCATION_TIMEOUT    default deadline in seconds (none)
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from funcworker.errors import ConfigurationError

from .schemas import WorkerSettings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@lru_cache()
def get_settings() -> WorkerSettings:
    """
    Get worker settings from environment.

    Uses lru_cache for singleton pattern.

    Raises:
        ConfigurationError: If FUNCTIONS_INVOCATION_TIMEOUT is not a number
    """
    timeout = os.getenv("FUNCTIONS_INVOCATION_TIMEOUT")
    try:
        default_timeout = float(timeout) if timeout else None
    except ValueError as e:
        raise ConfigurationError(
            f"FUNCTIONS_INVOCATION_TIMEOUT must be a number of seconds, got '{timeout}'"
        ) from e

    return WorkerSettings(
        deployment_root=os.getenv("FUNCTIONS_WORKER_DIRECTORY") or None,
        metadata_file=os.getenv("FUNCTIONS_WORKER_METADATA_FILE", "functions.metadata"),
        worker_id=os.getenv("FUNCTIONS_WORKER_ID", "funcworker"),
        log_level=os.getenv("FUNCTIONS_WORKER_LOG_LEVEL", "INFO"),
        default_invocation_timeout_seconds=default_timeout,
    )


def configure_logging(settings: WorkerSettings | None = None) -> None:
    """Configure root logging for the worker process."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
    )
    logger.debug(f"[settings] Logging configured at {settings.log_level}")
