"""
Configuration for the container exporter
"""
import os
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ExporterConfig(BaseModel):
    """Exporter settings, defaulting from environment variables"""

    model_config = ConfigDict(validate_default=True)

    # HTTP exposition
    port: int = Field(
        default_factory=lambda: os.getenv('EXPORTER_PORT', '9200'),
        gt=0,
        lt=65536
    )
    host: str = Field(default_factory=lambda: os.getenv('EXPORTER_HOST', '0.0.0.0'))

    # Seconds between two ticks of each refresh cycle
    poll_interval: float = Field(
        default_factory=lambda: os.getenv('POLL_INTERVAL', '15'),
        gt=0
    )

    # Docker daemon URL, e.g. unix:///var/run/docker.sock
    docker_socket_path: Optional[str] = Field(
        default_factory=lambda: os.getenv('DOCKER_SOCKET_PATH') or None
    )

    log_level: str = Field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO'))

    @field_validator('log_level')
    @classmethod
    def check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return level

    @classmethod
    def from_env(cls, **overrides: Any) -> "ExporterConfig":
        """
        Build the configuration from the environment, applying overrides

        Args:
            **overrides: Explicit values (e.g. from the command line).
                None values are ignored so the environment default applies.

        Returns:
            Validated ExporterConfig
        """
        return cls(**{key: value for key, value in overrides.items() if value is not None})
