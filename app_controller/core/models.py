"""Core domain models (desired and observed application state)."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional


DEFAULT_PORT = 8080
DEFAULT_REPLICAS = 1


class Phase(Enum):
    """Application lifecycle phase."""

    PENDING = "Pending"
    PROVISIONING_INFRASTRUCTURE = "ProvisioningInfrastructure"
    DEPLOYING = "Deploying"
    READY = "Ready"
    FAILED = "Failed"


class Environment(Enum):
    """Requested environment for infrastructure."""

    LOCAL = "local"
    CLOUD = "cloud"
    AUTO = "auto"


class Placement(Enum):
    """Where an infrastructure resource actually lives."""

    LOCAL = "local"
    CLOUD = "cloud"


class InfrastructureKind(Enum):
    """Supported infrastructure kinds, valued by their object-name suffix."""

    DATABASE = "postgres"
    CACHE = "redis"
    OBJECT_STORE = "s3"


# ============================================
# DESIRED STATE
# ============================================

@dataclass
class DatabaseSpec:
    """PostgreSQL requirement."""
    environment: Optional[Environment] = None
    version: str = "15"
    instance_type: Optional[str] = None
    storage_size: Optional[int] = None  # GiB, cloud only
    database_name: str = "webapp"
    local_storage_size: str = "2Gi"


@dataclass
class CacheSpec:
    """Redis requirement."""
    environment: Optional[Environment] = None
    version: str = "7"
    node_type: Optional[str] = None


@dataclass
class ObjectStoreSpec:
    """S3-compatible object store requirement."""
    environment: Optional[Environment] = None
    bucket_name: Optional[str] = None
    versioning: bool = False


@dataclass
class InfrastructureSpec:
    """Infrastructure requirements plus the application-wide environment default."""
    environment: Optional[Environment] = None
    database: Optional[DatabaseSpec] = None
    cache: Optional[CacheSpec] = None
    object_store: Optional[ObjectStoreSpec] = None

    def requested_kinds(self) -> List[InfrastructureKind]:
        kinds = []
        if self.database is not None:
            kinds.append(InfrastructureKind.DATABASE)
        if self.cache is not None:
            kinds.append(InfrastructureKind.CACHE)
        if self.object_store is not None:
            kinds.append(InfrastructureKind.OBJECT_STORE)
        return kinds


@dataclass
class ApplicationSpec:
    """What the developer wants to deploy."""
    image: str
    port: Optional[int] = None
    replicas: Optional[int] = None
    env: Dict[str, str] = field(default_factory=dict)
    infrastructure: InfrastructureSpec = field(default_factory=InfrastructureSpec)

    def resolved_port(self) -> int:
        if not self.port or self.port <= 0:
            return DEFAULT_PORT
        return self.port

    def resolved_replicas(self) -> int:
        if self.replicas is None:
            return DEFAULT_REPLICAS
        return max(self.replicas, 0)


# ============================================
# OBSERVED STATE
# ============================================

@dataclass
class ApplicationStatus:
    """Controller-owned observed state. Always persisted as a whole."""
    phase: Optional[Phase] = None
    message: str = ""
    ready_replicas: int = 0
    last_updated: Optional[datetime] = None
    infrastructure_ready: bool = False
    observed_generation: Optional[int] = None

    database_endpoint: str = ""
    database_placement: Optional[Placement] = None

    cache_endpoint: str = ""
    cache_placement: Optional[Placement] = None

    object_store_endpoint: str = ""
    object_store_placement: Optional[Placement] = None
    object_store_bucket: str = ""

    def endpoint_for(self, kind: InfrastructureKind) -> str:
        if kind is InfrastructureKind.DATABASE:
            return self.database_endpoint
        if kind is InfrastructureKind.CACHE:
            return self.cache_endpoint
        return self.object_store_endpoint

    def placement_for(self, kind: InfrastructureKind) -> Optional[Placement]:
        if kind is InfrastructureKind.DATABASE:
            return self.database_placement
        if kind is InfrastructureKind.CACHE:
            return self.cache_placement
        return self.object_store_placement

    def record_endpoint(
        self,
        kind: InfrastructureKind,
        endpoint: str,
        placement: Placement,
    ) -> None:
        if kind is InfrastructureKind.DATABASE:
            self.database_endpoint = endpoint
            self.database_placement = placement
        elif kind is InfrastructureKind.CACHE:
            self.cache_endpoint = endpoint
            self.cache_placement = placement
        else:
            self.object_store_endpoint = endpoint
            self.object_store_placement = placement


# ============================================
# RECORD
# ============================================

@dataclass(frozen=True)
class RecordKey:
    """Namespace-qualified record identity."""
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class Application:
    """One declared application: desired spec plus observed status."""
    name: str
    namespace: str
    spec: ApplicationSpec
    status: ApplicationStatus = field(default_factory=ApplicationStatus)

    uid: str = ""
    generation: int = 1
    resource_version: Optional[str] = None

    @property
    def key(self) -> RecordKey:
        return RecordKey(self.namespace, self.name)

    def update_status(self, phase: Phase, message: str) -> None:
        """Set phase and message, stamping last_updated."""
        self.status.phase = phase
        self.status.message = message
        self.status.last_updated = datetime.now(timezone.utc)

    def needs_database(self) -> bool:
        return self.spec.infrastructure.database is not None

    def needs_cache(self) -> bool:
        return self.spec.infrastructure.cache is not None

    def needs_object_store(self) -> bool:
        return self.spec.infrastructure.object_store is not None

    def infrastructure_complete(self) -> bool:
        """True iff every requested kind has a non-empty endpoint."""
        return all(
            self.status.endpoint_for(kind)
            for kind in self.spec.infrastructure.requested_kinds()
        )

    def is_ready(self) -> bool:
        return self.status.phase == Phase.READY and (
            self.status.ready_replicas > 0 or self.spec.resolved_replicas() == 0
        )

    def infrastructure_summary(self) -> str:
        kinds = self.spec.infrastructure.requested_kinds()
        if not kinds:
            return "No external infrastructure"
        return "Infrastructure: " + ", ".join(kind.value for kind in kinds)
