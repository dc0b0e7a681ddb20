# app_controller/infrastructure/kubernetes/repository.py

import logging
from typing import Any, Dict, Iterable, List, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException
from pydantic import ValidationError as SchemaError

from app_controller.cluster.objects import DEFAULT_GROUP, DEFAULT_VERSION, OWNER_KIND
from app_controller.core.errors import (
    MalformedRecordError, StatusPersistError, StoreError, UnrecognizedPhaseError,
)
from app_controller.core.models import Application, RecordKey
from app_controller.core.repository import ApplicationRepository
from app_controller.core.schemas import ApplicationStatusSchema, load_application

logger = logging.getLogger(__name__)


class KubernetesApplicationRepository(ApplicationRepository):
    """Application custom resources served by the API server."""

    def __init__(
        self,
        api: Optional[client.CustomObjectsApi] = None,
        *,
        group: str = DEFAULT_GROUP,
        version: str = DEFAULT_VERSION,
        plural: str = "applications",
    ):
        self._api = api or client.CustomObjectsApi()
        self._group = group
        self._version = version
        self._plural = plural

    def get(self, key: RecordKey) -> Optional[Application]:
        try:
            document = self._api.get_namespaced_custom_object(
                self._group, self._version, key.namespace, self._plural, key.name,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise StoreError(f"get {key} failed: {e.status} {e.reason}") from e

        return self._to_domain(document)

    def replace_status(self, application: Application) -> None:
        body = {
            "apiVersion": f"{self._group}/{self._version}",
            "kind": OWNER_KIND,
            "metadata": {
                "name": application.name,
                "namespace": application.namespace,
                "resourceVersion": application.resource_version,
            },
            "status": ApplicationStatusSchema.from_domain(application.status).to_wire(),
        }

        try:
            updated = self._api.replace_namespaced_custom_object_status(
                self._group, self._version, application.namespace, self._plural,
                application.name, body,
            )
        except ApiException as e:
            raise StatusPersistError(
                f"status write for {application.key} failed: {e.status} {e.reason}"
            ) from e

        application.resource_version = updated.get("metadata", {}).get("resourceVersion")

    def list(self, namespace: Optional[str] = None) -> Iterable[Application]:
        try:
            if namespace:
                response = self._api.list_namespaced_custom_object(
                    self._group, self._version, namespace, self._plural,
                )
            else:
                response = self._api.list_cluster_custom_object(
                    self._group, self._version, self._plural,
                )
        except ApiException as e:
            raise StoreError(f"list {self._plural} failed: {e.status} {e.reason}") from e

        results: List[Application] = []
        for document in response.get("items", []):
            try:
                results.append(self._to_domain(document))
            except (MalformedRecordError, UnrecognizedPhaseError, StoreError) as e:
                name = document.get("metadata", {}).get("name")
                logger.warning(f"[kubernetes] skipping application {name}: {e}")
        return results

    @staticmethod
    def _to_domain(document: Dict[str, Any]) -> Application:
        try:
            return load_application(document)
        except SchemaError as e:
            raise StoreError(f"malformed application document: {e}") from e
