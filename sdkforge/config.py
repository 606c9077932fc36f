"""Process-level generator settings: env-driven.

Reads from a .env file and SDKFORGE_* environment variables. These settings
tune *how* the pipeline runs (pool sizes, timeouts, logging); *what* it
builds is described by the immutable ``GeneratorConfig`` value.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class GeneratorSettings(BaseSettings):
    """Runtime settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export SDKFORGE_LOG_LEVEL=DEBUG
        export SDKFORGE_MAX_CONCURRENT_DOWNLOADS=2
        export SDKFORGE_ARTIFACT_TIMEOUT_SECONDS=600
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SDKFORGE_",
        env_file_encoding="utf-8",
    )

    log_level: str = "INFO"

    # Worker pools for the per-artifact phases
    max_concurrent_downloads: int = 4
    max_concurrent_checksums: int = 8

    # Applies to each network request, not the whole run
    artifact_timeout_seconds: float = 300.0

    container_runtime: str = "docker"
    user_agent: str = "sdkforge/0.1.0"
