"""
Configuration Schemas for funcworker.

Settings are read once from the environment at startup (see
funcworker.config.settings.get_settings) and are immutable afterwards.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WorkerSettings(BaseModel):
    """
    Worker process settings.

    Used for type-safe settings access.
    """

    model_config = ConfigDict(frozen=True)

    # Deployment
    deployment_root: str | None = Field(
        None, description="Directory containing the deployed load units"
    )
    metadata_file: str = Field(
        "functions.metadata", description="Metadata file inside the deployment root"
    )

    # Worker identity
    worker_id: str = Field("funcworker", description="Identifier reported to the orchestrator")

    # Logging
    log_level: str = Field("INFO", description="Root log level")

    # Invocations
    default_invocation_timeout_seconds: float | None = Field(
        None, gt=0, description="Deadline applied when a request carries none"
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"
