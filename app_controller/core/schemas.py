"""Pydantic schemas for the Application custom resource wire format."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as SchemaError
from pydantic.alias_generators import to_camel

from app_controller.core.errors import MalformedRecordError, UnrecognizedPhaseError
from app_controller.core.models import (
    Application, ApplicationSpec, ApplicationStatus, CacheSpec, DatabaseSpec,
    Environment, InfrastructureSpec, ObjectStoreSpec, Phase, Placement,
)


# Older resources were written with "aws" before the cloud placement was generalised.
ENVIRONMENT_ALIASES = {"aws": "cloud"}


def _normalize_environment(value: Any) -> Any:
    if value in (None, ""):
        return None
    if isinstance(value, str):
        return ENVIRONMENT_ALIASES.get(value.lower(), value.lower())
    return value


class WireModel(BaseModel):
    """Base for camelCase resource documents."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ============================================
# SPEC
# ============================================

class PostgreSQLSchema(WireModel):
    environment: Optional[Environment] = None
    version: Optional[str] = None
    instance_type: Optional[str] = None
    storage: Optional[int] = None
    database_name: Optional[str] = None
    local_storage: Optional[str] = None

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, value):
        return _normalize_environment(value)


class RedisSchema(WireModel):
    environment: Optional[Environment] = None
    version: Optional[str] = None
    node_type: Optional[str] = None

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, value):
        return _normalize_environment(value)


class S3Schema(WireModel):
    environment: Optional[Environment] = None
    bucket_name: Optional[str] = None
    versioning: bool = False

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, value):
        return _normalize_environment(value)


class InfrastructureSchema(WireModel):
    environment: Optional[Environment] = None
    postgresql: Optional[PostgreSQLSchema] = None
    redis: Optional[RedisSchema] = None
    s3: Optional[S3Schema] = None

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, value):
        return _normalize_environment(value)


class ApplicationSpecSchema(WireModel):
    image: str = ""
    port: Optional[int] = None
    replicas: Optional[int] = None
    env: Dict[str, str] = Field(default_factory=dict)
    infrastructure: InfrastructureSchema = Field(default_factory=InfrastructureSchema)

    def to_domain(self) -> ApplicationSpec:
        infra = self.infrastructure
        database = cache = object_store = None

        if infra.postgresql is not None:
            pg = infra.postgresql
            database = DatabaseSpec(environment=pg.environment, instance_type=pg.instance_type,
                                    storage_size=pg.storage)
            if pg.version:
                database.version = pg.version
            if pg.database_name:
                database.database_name = pg.database_name
            if pg.local_storage:
                database.local_storage_size = pg.local_storage

        if infra.redis is not None:
            cache = CacheSpec(environment=infra.redis.environment, node_type=infra.redis.node_type)
            if infra.redis.version:
                cache.version = infra.redis.version

        if infra.s3 is not None:
            object_store = ObjectStoreSpec(
                environment=infra.s3.environment,
                bucket_name=infra.s3.bucket_name or None,
                versioning=infra.s3.versioning,
            )

        return ApplicationSpec(
            image=self.image,
            port=self.port,
            replicas=self.replicas,
            env=dict(self.env),
            infrastructure=InfrastructureSpec(
                environment=infra.environment,
                database=database,
                cache=cache,
                object_store=object_store,
            ),
        )


# ============================================
# STATUS
# ============================================

class ApplicationStatusSchema(WireModel):
    phase: Optional[str] = None
    message: str = ""
    ready_replicas: int = 0
    last_updated: Optional[datetime] = None
    infrastructure_ready: bool = False
    observed_generation: Optional[int] = None

    database_endpoint: str = ""
    database_environment: Optional[Placement] = None
    redis_endpoint: str = ""
    redis_environment: Optional[Placement] = None
    s3_bucket_name: str = ""
    s3_endpoint: str = ""
    s3_environment: Optional[Placement] = None

    @field_validator("database_environment", "redis_environment", "s3_environment", mode="before")
    @classmethod
    def normalize_placements(cls, value):
        return _normalize_environment(value)

    def to_domain(self) -> ApplicationStatus:
        phase = None
        if self.phase:
            try:
                phase = Phase(self.phase)
            except ValueError:
                raise UnrecognizedPhaseError(f"Unknown phase {self.phase!r}")

        return ApplicationStatus(
            phase=phase,
            message=self.message,
            ready_replicas=self.ready_replicas,
            last_updated=self.last_updated,
            infrastructure_ready=self.infrastructure_ready,
            observed_generation=self.observed_generation,
            database_endpoint=self.database_endpoint,
            database_placement=self.database_environment,
            cache_endpoint=self.redis_endpoint,
            cache_placement=self.redis_environment,
            object_store_endpoint=self.s3_endpoint,
            object_store_placement=self.s3_environment,
            object_store_bucket=self.s3_bucket_name,
        )

    @classmethod
    def from_domain(cls, status: ApplicationStatus) -> "ApplicationStatusSchema":
        return cls(
            phase=status.phase.value if status.phase else None,
            message=status.message,
            ready_replicas=status.ready_replicas,
            last_updated=status.last_updated,
            infrastructure_ready=status.infrastructure_ready,
            observed_generation=status.observed_generation,
            database_endpoint=status.database_endpoint,
            database_environment=status.database_placement,
            redis_endpoint=status.cache_endpoint,
            redis_environment=status.cache_placement,
            s3_bucket_name=status.object_store_bucket,
            s3_endpoint=status.object_store_endpoint,
            s3_environment=status.object_store_placement,
        )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ============================================
# RESOURCE
# ============================================

class ObjectMetaSchema(WireModel):
    name: str
    namespace: str = "default"
    uid: str = ""
    generation: int = 1
    resource_version: Optional[str] = None


class ApplicationResource(WireModel):
    """Whole custom resource document as served by the API server."""

    api_version: Optional[str] = None
    kind: Optional[str] = None
    metadata: ObjectMetaSchema
    spec: ApplicationSpecSchema = Field(default_factory=ApplicationSpecSchema)
    status: ApplicationStatusSchema = Field(default_factory=ApplicationStatusSchema)

    def to_domain(self) -> Application:
        return Application(
            name=self.metadata.name,
            namespace=self.metadata.namespace,
            spec=self.spec.to_domain(),
            status=self.status.to_domain(),
            uid=self.metadata.uid,
            generation=self.metadata.generation,
            resource_version=self.metadata.resource_version,
        )


def describe_schema_error(error: SchemaError) -> str:
    """'spec.port: Input should be a valid integer' style summary."""
    return "; ".join(
        f"{'.'.join(str(part) for part in detail['loc'])}: {detail['msg']}"
        for detail in error.errors()
    )


def load_application(document: Dict[str, Any]) -> Application:
    """
    Domain record from a resource document.

    A spec that does not fit the schema raises MalformedRecordError carrying
    the record without its spec. Unreadable metadata or status still raises
    pydantic's ValidationError.
    """
    try:
        resource = ApplicationResource.model_validate(document)
    except SchemaError as e:
        shell = ApplicationResource.model_validate({**document, "spec": {}})
        raise MalformedRecordError(shell.to_domain(), describe_schema_error(e)) from e
    return resource.to_domain()
