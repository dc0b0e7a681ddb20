# app_controller/provisioner/provisioner.py
"""Infrastructure provisioner - creates or locates backing resources per kind."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from app_controller.cluster.objects import DEFAULT_OWNER_API_VERSION, describe
from app_controller.core.errors import ObjectAlreadyExists, ProvisioningError, StoreError
from app_controller.core.models import Application, InfrastructureKind, Placement
from app_controller.core.repository import ClusterClient
from app_controller.environment.resolver import EnvironmentResolver
from app_controller.provisioner import manifests
from app_controller.provisioner.cloud import CloudProvider
from app_controller.synthesizer.secrets import SecretProvider

logger = logging.getLogger(__name__)


DEFAULT_BUCKET = "default-bucket"


@dataclass
class ProvisionedEndpoint:
    """Where one infrastructure kind can be reached."""
    kind: InfrastructureKind
    endpoint: str
    placement: Placement
    bucket_name: Optional[str] = None


class InfrastructureProvisioner:
    """
    Provisions database, cache and object store for an application.

    Each call records endpoint and placement on application.status but never
    persists it; the engine owns every status write.
    """

    def __init__(
        self,
        *,
        cluster: ClusterClient,
        resolver: EnvironmentResolver,
        secrets: SecretProvider,
        cloud: CloudProvider,
        owner_api_version: str = DEFAULT_OWNER_API_VERSION,
    ):
        self._cluster = cluster
        self._resolver = resolver
        self._secrets = secrets
        self._cloud = cloud
        self._owner_api_version = owner_api_version

    def provision_all(self, application: Application) -> List[ProvisionedEndpoint]:
        """Provision every requested kind: database, cache, then object store."""
        provisioned = []

        if application.needs_database():
            provisioned.append(self.provision_database(application))

        if application.needs_cache():
            provisioned.append(self.provision_cache(application))

        if application.needs_object_store():
            provisioned.append(self.provision_object_store(application))

        return provisioned

    # ============================================
    # DATABASE
    # ============================================

    def provision_database(self, application: Application) -> ProvisionedEndpoint:
        kind = InfrastructureKind.DATABASE
        placement = self._placement(application, kind)

        if placement is Placement.LOCAL:
            logger.info(f"[provisioner] 🏠 provisioning local PostgreSQL for {application.key}")
            credentials = self._secrets.database_credentials(application, placement)
            self._ensure(kind, manifests.postgres_volume_claim(application, self._owner_api_version))
            self._ensure(kind, manifests.postgres_stateful_set(
                application, credentials, self._owner_api_version,
            ))
            self._ensure(kind, manifests.internal_service(
                application, kind, [("postgres", manifests.POSTGRES_PORT)], self._owner_api_version,
            ))
            endpoint = f"{manifests.infrastructure_name(application, kind)}:{manifests.POSTGRES_PORT}"
        else:
            endpoint = self._from_cloud(kind, self._cloud.database_endpoint, application)

        application.status.record_endpoint(kind, endpoint, placement)
        logger.info(f"[provisioner] ✅ database ready for {application.key}: {endpoint} ({placement.value})")
        return ProvisionedEndpoint(kind=kind, endpoint=endpoint, placement=placement)

    # ============================================
    # CACHE
    # ============================================

    def provision_cache(self, application: Application) -> ProvisionedEndpoint:
        kind = InfrastructureKind.CACHE
        placement = self._placement(application, kind)

        if placement is Placement.LOCAL:
            logger.info(f"[provisioner] 🏠 provisioning local Redis for {application.key}")
            self._ensure(kind, manifests.redis_deployment(application, self._owner_api_version))
            self._ensure(kind, manifests.internal_service(
                application, kind, [("redis", manifests.REDIS_PORT)], self._owner_api_version,
            ))
            endpoint = f"{manifests.infrastructure_name(application, kind)}:{manifests.REDIS_PORT}"
        else:
            endpoint = self._from_cloud(kind, self._cloud.cache_endpoint, application)

        application.status.record_endpoint(kind, endpoint, placement)
        logger.info(f"[provisioner] ✅ cache ready for {application.key}: {endpoint} ({placement.value})")
        return ProvisionedEndpoint(kind=kind, endpoint=endpoint, placement=placement)

    # ============================================
    # OBJECT STORE
    # ============================================

    def provision_object_store(self, application: Application) -> ProvisionedEndpoint:
        kind = InfrastructureKind.OBJECT_STORE
        placement = self._placement(application, kind)

        if placement is Placement.LOCAL:
            logger.info(f"[provisioner] 🏠 provisioning local S3 (MinIO) for {application.key}")
            credentials = self._secrets.object_store_credentials(application, placement)
            self._ensure(kind, manifests.minio_deployment(application, credentials, self._owner_api_version))
            self._ensure(kind, manifests.internal_service(
                application,
                kind,
                [("api", manifests.MINIO_API_PORT), ("console", manifests.MINIO_CONSOLE_PORT)],
                self._owner_api_version,
            ))
            bucket = application.spec.infrastructure.object_store.bucket_name or DEFAULT_BUCKET
            endpoint = f"{manifests.infrastructure_name(application, kind)}:{manifests.MINIO_API_PORT}"
        else:
            bucket, endpoint = self._from_cloud(kind, self._cloud.object_store, application)

        application.status.record_endpoint(kind, endpoint, placement)
        application.status.object_store_bucket = bucket
        logger.info(
            f"[provisioner] ✅ object store ready for {application.key}: "
            f"{endpoint} bucket={bucket} ({placement.value})"
        )
        return ProvisionedEndpoint(kind=kind, endpoint=endpoint, placement=placement, bucket_name=bucket)

    # ============================================
    # HELPERS
    # ============================================

    def _placement(self, application: Application, kind: InfrastructureKind) -> Placement:
        """Recorded placement wins over the resolver for the record's lifetime."""
        resolved = self._resolver.placement_for(application, kind)
        recorded = application.status.placement_for(kind)

        if recorded is None:
            return resolved

        if recorded is not resolved:
            logger.warning(
                f"[provisioner] {application.key} {kind.value} stays {recorded.value} "
                f"(spec now resolves to {resolved.value})"
            )
        return recorded

    def _ensure(self, kind: InfrastructureKind, obj) -> None:
        """Create-if-absent."""
        try:
            self._cluster.create(obj)
            logger.info(f"[provisioner] created {describe(obj)}")
        except ObjectAlreadyExists:
            logger.debug(f"[provisioner] {describe(obj)} already exists")
        except StoreError as e:
            raise ProvisioningError(kind, f"failed to create {describe(obj)}: {e}") from e

    def _from_cloud(self, kind: InfrastructureKind, call, application: Application):
        try:
            return call(application)
        except Exception as e:
            raise ProvisioningError(kind, f"cloud {kind.value} provisioning failed: {e}") from e
