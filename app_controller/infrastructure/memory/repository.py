# app_controller/infrastructure/memory/repository.py

import copy
from threading import Lock
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from kubernetes import client

from app_controller.cluster.objects import DEPLOYMENT, STATEFUL_SET
from app_controller.core.errors import (
    ObjectAlreadyExists, RecordNotFound, StatusPersistError, StoreError, WriteConflict,
)
from app_controller.core.models import Application, ApplicationSpec, RecordKey
from app_controller.core.repository import ApplicationRepository, ClusterClient
from app_controller.core.schemas import ApplicationResource, ApplicationStatusSchema


Listener = Callable[[RecordKey], None]


class InMemoryApplicationRepository(ApplicationRepository):
    """
    Application store for simulation and tests.

    Specs are kept as domain copies; status is kept in its wire form so every
    read goes through the same schema as the Kubernetes store.
    """

    def __init__(self):
        self._specs: Dict[RecordKey, Application] = {}
        self._statuses: Dict[RecordKey, Dict[str, Any]] = {}
        self._lock = Lock()
        self._listeners: List[Listener] = []
        self._version = 0

        self.status_writes = 0
        self.fail_status_writes = False
        self.fail_reads = False

    # -------------------------
    # Test / simulation helpers
    # -------------------------

    def add(self, application: Application) -> Application:
        with self._lock:
            stored = copy.deepcopy(application)
            stored.resource_version = self._next_version()
            self._specs[stored.key] = stored
            self._statuses[stored.key] = ApplicationStatusSchema.from_domain(stored.status).to_wire()
        self._notify(stored.key)
        return copy.deepcopy(stored)

    def add_resource(self, document: Dict[str, Any]) -> RecordKey:
        """Store a raw custom-resource document (camelCase)."""
        raw_status = document.get("status") or {}
        resource = ApplicationResource.model_validate({**document, "status": {}})
        application = resource.to_domain()

        with self._lock:
            application.resource_version = self._next_version()
            self._specs[application.key] = application
            self._statuses[application.key] = dict(raw_status)
        self._notify(application.key)
        return application.key

    def update_spec(self, key: RecordKey, spec: ApplicationSpec) -> int:
        """Replace the desired state, bumping generation like the API server does."""
        with self._lock:
            stored = self._specs.get(key)
            if stored is None:
                raise RecordNotFound(f"Application {key} not found")
            stored.spec = copy.deepcopy(spec)
            stored.generation += 1
            stored.resource_version = self._next_version()
            generation = stored.generation
        self._notify(key)
        return generation

    def put_raw_status(self, key: RecordKey, status: Dict[str, Any]) -> None:
        with self._lock:
            if key not in self._specs:
                raise RecordNotFound(f"Application {key} not found")
            self._statuses[key] = dict(status)

    def raw_status(self, key: RecordKey) -> Dict[str, Any]:
        with self._lock:
            return dict(self._statuses.get(key, {}))

    def delete(self, key: RecordKey) -> None:
        with self._lock:
            self._specs.pop(key, None)
            self._statuses.pop(key, None)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    # -------------------------
    # ApplicationRepository
    # -------------------------

    def get(self, key: RecordKey) -> Optional[Application]:
        if self.fail_reads:
            raise StoreError("store unavailable")

        with self._lock:
            stored = self._specs.get(key)
            if stored is None:
                return None
            application = copy.deepcopy(stored)
            raw = self._statuses.get(key, {})

        application.status = ApplicationStatusSchema.model_validate(raw).to_domain()
        return application

    def replace_status(self, application: Application) -> None:
        if self.fail_status_writes:
            raise StatusPersistError(f"status write for {application.key} rejected")

        with self._lock:
            stored = self._specs.get(application.key)
            if stored is None:
                raise StatusPersistError(f"Application {application.key} not found")

            self._statuses[application.key] = ApplicationStatusSchema.from_domain(
                application.status
            ).to_wire()
            stored.resource_version = self._next_version()
            application.resource_version = stored.resource_version
            self.status_writes += 1

    def list(self, namespace: Optional[str] = None) -> Iterable[Application]:
        with self._lock:
            keys = [k for k in self._specs if namespace is None or k.namespace == namespace]

        results = []
        for key in keys:
            application = self.get(key)
            if application is not None:
                results.append(application)
        return results

    # -------------------------
    # Internals
    # -------------------------

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def _notify(self, key: RecordKey) -> None:
        for listener in list(self._listeners):
            listener(key)


ObjectKey = Tuple[str, str, str]


class InMemoryCluster(ClusterClient):
    """
    Object store standing in for the cluster API.

    With auto_ready=True every Deployment or StatefulSet reports all of its
    replicas ready as soon as it is created or replaced. Every write stamps
    a fresh resourceVersion; replacing with a stale one is a conflict.
    """

    def __init__(self, auto_ready: bool = False):
        self._objects: Dict[ObjectKey, Any] = {}
        self._lock = Lock()
        self.auto_ready = auto_ready

        self.created: List[ObjectKey] = []
        self.replaced: List[ObjectKey] = []
        self._version = 0

        self.fail_creates: Dict[str, Exception] = {}
        self.fail_reads: Optional[Exception] = None

    def create(self, obj: Any) -> None:
        key = _object_key(obj)

        with self._lock:
            failure = self.fail_creates.get(obj.kind)
            if failure is not None:
                raise failure

            if key in self._objects:
                raise ObjectAlreadyExists(f"{obj.kind} {key[1]}/{key[2]} already exists")

            stored = copy.deepcopy(obj)
            self._stamp(stored)
            self._mark_ready(stored)
            self._objects[key] = stored
            self.created.append(key)

    def read(self, kind: str, namespace: str, name: str) -> Optional[Any]:
        if self.fail_reads is not None:
            raise self.fail_reads

        with self._lock:
            stored = self._objects.get((kind, namespace, name))
            return copy.deepcopy(stored) if stored is not None else None

    def replace(self, obj: Any) -> None:
        key = _object_key(obj)

        with self._lock:
            existing = self._objects.get(key)
            if existing is None:
                raise RecordNotFound(f"{obj.kind} {key[1]}/{key[2]} not found")

            expected = obj.metadata.resource_version
            if expected and expected != existing.metadata.resource_version:
                raise WriteConflict(
                    f"{obj.kind} {key[1]}/{key[2]} was modified, resourceVersion {expected} is stale"
                )

            stored = copy.deepcopy(obj)
            stored.status = existing.status if hasattr(existing, "status") else None
            self._stamp(stored)
            self._mark_ready(stored)
            self._objects[key] = stored
            self.replaced.append(key)

    # -------------------------
    # Helpers
    # -------------------------

    def set_ready_replicas(self, namespace: str, name: str, ready: int, kind: str = DEPLOYMENT) -> None:
        with self._lock:
            obj = self._objects[(kind, namespace, name)]
            obj.status = _workload_status(kind, ready)

    def delete(self, kind: str, namespace: str, name: str) -> None:
        with self._lock:
            self._objects.pop((kind, namespace, name), None)

    def objects(self, kind: Optional[str] = None) -> List[Any]:
        with self._lock:
            return [
                copy.deepcopy(obj)
                for (k, _, _), obj in self._objects.items()
                if kind is None or k == kind
            ]

    def exists(self, kind: str, namespace: str, name: str) -> bool:
        with self._lock:
            return (kind, namespace, name) in self._objects

    def _stamp(self, obj: Any) -> None:
        self._version += 1
        obj.metadata.resource_version = str(self._version)

    def _mark_ready(self, obj: Any) -> None:
        if self.auto_ready and obj.kind in (DEPLOYMENT, STATEFUL_SET):
            obj.status = _workload_status(obj.kind, obj.spec.replicas or 0)


def _object_key(obj: Any) -> ObjectKey:
    return obj.kind, obj.metadata.namespace, obj.metadata.name


def _workload_status(kind: str, ready: int):
    if kind == STATEFUL_SET:
        return client.V1StatefulSetStatus(replicas=ready, ready_replicas=ready)
    return client.V1DeploymentStatus(replicas=ready, ready_replicas=ready)
