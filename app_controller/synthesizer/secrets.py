# app_controller/synthesizer/secrets.py
"""Credential material for infrastructure connections."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from app_controller.core.models import Application, Placement


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str


# Development-only credentials baked into local containers.
LOCAL_DATABASE_CREDENTIALS = Credentials(username="appuser", password="localpassword")
LOCAL_OBJECT_STORE_CREDENTIALS = Credentials(username="minioadmin", password="minioadmin")


class SecretProvider(ABC):
    """Issues credentials per application and placement."""

    @abstractmethod
    def database_credentials(
        self,
        application: Application,
        placement: Placement,
    ) -> Optional[Credentials]:
        """None means the connection URL carries no credentials."""
        raise NotImplementedError

    @abstractmethod
    def object_store_credentials(
        self,
        application: Application,
        placement: Placement,
    ) -> Optional[Credentials]:
        """None means the workload relies on its own cloud identity."""
        raise NotImplementedError


class LocalDevelopmentSecrets(SecretProvider):
    """
    Fixed credentials for local placements.

    Cloud placements get whatever was configured at startup, or nothing.
    """

    def __init__(self, cloud_database: Optional[Credentials] = None):
        self._cloud_database = cloud_database

    def database_credentials(self, application, placement):
        if placement is Placement.LOCAL:
            return LOCAL_DATABASE_CREDENTIALS
        return self._cloud_database

    def object_store_credentials(self, application, placement):
        if placement is Placement.LOCAL:
            return LOCAL_OBJECT_STORE_CREDENTIALS
        return None
