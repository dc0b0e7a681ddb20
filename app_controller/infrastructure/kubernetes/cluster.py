# app_controller/infrastructure/kubernetes/cluster.py

import logging
from typing import Any, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from app_controller.cluster.objects import (
    DEPLOYMENT, PERSISTENT_VOLUME_CLAIM, SERVICE, STATEFUL_SET, describe,
)
from app_controller.core.errors import ObjectAlreadyExists, RecordNotFound, StoreError, WriteConflict
from app_controller.core.repository import ClusterClient

logger = logging.getLogger(__name__)


class KubernetesCluster(ClusterClient):
    """Workload, network and volume objects through the typed Kubernetes APIs."""

    def __init__(
        self,
        core: Optional[client.CoreV1Api] = None,
        apps: Optional[client.AppsV1Api] = None,
    ):
        self._core = core or client.CoreV1Api()
        self._apps = apps or client.AppsV1Api()

        self._create = {
            DEPLOYMENT: self._apps.create_namespaced_deployment,
            STATEFUL_SET: self._apps.create_namespaced_stateful_set,
            SERVICE: self._core.create_namespaced_service,
            PERSISTENT_VOLUME_CLAIM: self._core.create_namespaced_persistent_volume_claim,
        }
        self._read = {
            DEPLOYMENT: self._apps.read_namespaced_deployment,
            STATEFUL_SET: self._apps.read_namespaced_stateful_set,
            SERVICE: self._core.read_namespaced_service,
            PERSISTENT_VOLUME_CLAIM: self._core.read_namespaced_persistent_volume_claim,
        }
        self._replace = {
            DEPLOYMENT: self._apps.replace_namespaced_deployment,
            STATEFUL_SET: self._apps.replace_namespaced_stateful_set,
            SERVICE: self._core.replace_namespaced_service,
            PERSISTENT_VOLUME_CLAIM: self._core.replace_namespaced_persistent_volume_claim,
        }

    def create(self, obj: Any) -> None:
        create = self._dispatch(self._create, obj.kind)
        try:
            create(obj.metadata.namespace, obj)
        except ApiException as e:
            if e.status == 409:
                raise ObjectAlreadyExists(describe(obj)) from e
            raise StoreError(f"create {describe(obj)} failed: {e.status} {e.reason}") from e

    def read(self, kind: str, namespace: str, name: str) -> Optional[Any]:
        read = self._dispatch(self._read, kind)
        try:
            obj = read(name, namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise StoreError(f"read {kind} {namespace}/{name} failed: {e.status} {e.reason}") from e

        # Typed reads do not always echo kind back
        if not obj.kind:
            obj.kind = kind
        return obj

    def replace(self, obj: Any) -> None:
        """PUT the whole object. A stale resourceVersion comes back as 409."""
        replace = self._dispatch(self._replace, obj.kind)
        try:
            replace(obj.metadata.name, obj.metadata.namespace, obj)
        except ApiException as e:
            if e.status == 404:
                raise RecordNotFound(describe(obj)) from e
            if e.status == 409:
                raise WriteConflict(f"replace {describe(obj)} conflicted: {e.reason}") from e
            raise StoreError(f"replace {describe(obj)} failed: {e.status} {e.reason}") from e

    @staticmethod
    def _dispatch(table, kind: str):
        try:
            return table[kind]
        except KeyError:
            raise StoreError(f"unsupported object kind {kind!r}")
