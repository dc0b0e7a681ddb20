#app_controller\config.py

from typing import Optional

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app_controller.cluster.objects import DEFAULT_GROUP, DEFAULT_VERSION
from app_controller.core.models import Placement


class ControllerSettings(BaseSettings):
    """Controller configuration from CONTROLLER_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CONTROLLER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Custom resource (empty namespace = all namespaces)
    namespace: str = ""
    group: str = DEFAULT_GROUP
    version: str = DEFAULT_VERSION
    plural: str = "applications"

    # Workers
    workers: int = 2
    resync_seconds: float = 300.0

    # Placement
    ambient_environment: Optional[Placement] = None
    cloud_region: str = "us-west-2"
    cloud_database_user: Optional[SecretStr] = None
    cloud_database_password: Optional[SecretStr] = None

    # Probes
    health_probe_bind_address: str = ":8081"

    simulate: bool = False
    log_level: str = "INFO"

    @field_validator("ambient_environment", mode="before")
    @classmethod
    def normalize_ambient(cls, value):
        if value in (None, "", "auto"):
            return None
        if isinstance(value, str) and value.lower() == "aws":
            return "cloud"
        return value.lower() if isinstance(value, str) else value

    @property
    def owner_api_version(self) -> str:
        return f"{self.group}/{self.version}"

    @property
    def probe_host(self) -> str:
        host, _, _ = self.health_probe_bind_address.rpartition(":")
        return host or "0.0.0.0"

    @property
    def probe_port(self) -> int:
        _, _, port = self.health_probe_bind_address.rpartition(":")
        return int(port)
