# app_controller/core/repository.py

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from app_controller.core.models import Application, RecordKey


class ApplicationRepository(ABC):
    """
    Persistence contract for Application records.
    """

    @abstractmethod
    def get(self, key: RecordKey) -> Optional[Application]:
        """
        Fetch application by key.
        Returns None if not found.
        """
        raise NotImplementedError

    @abstractmethod
    def replace_status(self, application: Application) -> None:
        """
        Overwrite the whole observed state of the application.
        Never a partial patch.
        """
        raise NotImplementedError

    @abstractmethod
    def list(self, namespace: Optional[str] = None) -> Iterable[Application]:
        """
        List applications, optionally within one namespace.
        Used for resync and the status API.
        """
        raise NotImplementedError


class ClusterClient(ABC):
    """
    Contract for the workload, network and volume objects the controller owns.

    Objects are kubernetes client models (V1Deployment, V1Service, ...) with
    kind and metadata set.
    """

    @abstractmethod
    def create(self, obj: Any) -> None:
        """
        Create an object.
        Must raise ObjectAlreadyExists if it is already there.
        """
        raise NotImplementedError

    @abstractmethod
    def read(self, kind: str, namespace: str, name: str) -> Optional[Any]:
        """
        Fetch object by kind and name.
        Returns None if not found.
        """
        raise NotImplementedError

    @abstractmethod
    def replace(self, obj: Any) -> None:
        """
        Overwrite an existing object with obj as a whole.
        Lists such as container env are replaced, never merged.
        Must raise RecordNotFound if the object is gone.
        """
        raise NotImplementedError
