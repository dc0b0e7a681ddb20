# app_controller/synthesizer/synthesizer.py
"""Workload synthesizer - builds the process group and network endpoint for an application."""

import logging
from typing import List, Optional, Tuple

from kubernetes import client

from app_controller.cluster.objects import (
    API_VERSIONS, APP_COMPONENT, DEFAULT_OWNER_API_VERSION, DEPLOYMENT, SERVICE,
    object_meta, selector_labels,
)
from app_controller.core.models import Application, Placement
from app_controller.synthesizer.secrets import SecretProvider

logger = logging.getLogger(__name__)


SERVICE_PORT = 80


class WorkloadSynthesizer:
    """
    Pure builders for the workload objects.

    Nothing here talks to the cluster; the engine creates or replaces what
    these methods return.
    """

    def __init__(
        self,
        secrets: SecretProvider,
        owner_api_version: str = DEFAULT_OWNER_API_VERSION,
    ):
        self._secrets = secrets
        self._owner_api_version = owner_api_version

    # ============================================
    # ENVIRONMENT
    # ============================================

    def build_environment(self, application: Application) -> List[Tuple[str, str]]:
        """
        Connection details for the container, in a fixed order.

        User variables come first, then DATABASE_URL, REDIS_URL, S3_BUCKET and,
        for a local object store only, S3_ENDPOINT / S3_ACCESS_KEY / S3_SECRET_KEY.
        Kinds without an endpoint yet are skipped.
        """
        status = application.status
        env = list(application.spec.env.items())

        database = application.spec.infrastructure.database
        if database is not None and status.database_endpoint:
            credentials = self._secrets.database_credentials(
                application, status.database_placement or Placement.LOCAL,
            )
            auth = f"{credentials.username}:{credentials.password}@" if credentials else ""
            env.append((
                "DATABASE_URL",
                f"postgres://{auth}{status.database_endpoint}/{database.database_name}",
            ))

        if application.needs_cache() and status.cache_endpoint:
            env.append(("REDIS_URL", f"redis://{status.cache_endpoint}"))

        if application.needs_object_store() and status.object_store_endpoint:
            env.append(("S3_BUCKET", status.object_store_bucket))

            if status.object_store_placement is Placement.LOCAL:
                credentials = self._secrets.object_store_credentials(application, Placement.LOCAL)
                env.append(("S3_ENDPOINT", f"http://{status.object_store_endpoint}"))
                if credentials is not None:
                    env.append(("S3_ACCESS_KEY", credentials.username))
                    env.append(("S3_SECRET_KEY", credentials.password))

        return env

    # ============================================
    # OBJECTS
    # ============================================

    def build_process_group_spec(self, application: Application) -> client.V1Deployment:
        port = application.spec.resolved_port()

        container = client.V1Container(
            name="app",
            image=application.spec.image,
            ports=[client.V1ContainerPort(container_port=port)],
            env=[
                client.V1EnvVar(name=name, value=value)
                for name, value in self.build_environment(application)
            ],
        )

        return client.V1Deployment(
            api_version=API_VERSIONS[DEPLOYMENT],
            kind=DEPLOYMENT,
            metadata=object_meta(
                application, application.name, APP_COMPONENT, owner_api_version=self._owner_api_version,
            ),
            spec=client.V1DeploymentSpec(
                replicas=application.spec.resolved_replicas(),
                selector=client.V1LabelSelector(match_labels=selector_labels(application, APP_COMPONENT)),
                template=client.V1PodTemplateSpec(
                    metadata=client.V1ObjectMeta(labels=selector_labels(application, APP_COMPONENT)),
                    spec=client.V1PodSpec(containers=[container]),
                ),
            ),
        )

    def build_endpoint_spec(self, application: Application) -> client.V1Service:
        return client.V1Service(
            api_version=API_VERSIONS[SERVICE],
            kind=SERVICE,
            metadata=object_meta(
                application, application.name, APP_COMPONENT, owner_api_version=self._owner_api_version,
            ),
            spec=client.V1ServiceSpec(
                type="ClusterIP",
                selector=selector_labels(application, APP_COMPONENT),
                ports=[
                    client.V1ServicePort(
                        port=SERVICE_PORT,
                        target_port=application.spec.resolved_port(),
                        protocol="TCP",
                    ),
                ],
            ),
        )

    # ============================================
    # DRIFT
    # ============================================

    @staticmethod
    def carry_over(existing, desired) -> None:
        """Copy onto desired what a whole-object replace has to echo back."""
        desired.metadata.resource_version = existing.metadata.resource_version

        # clusterIP is immutable once allocated
        if desired.kind == SERVICE and existing.spec is not None:
            desired.spec.cluster_ip = existing.spec.cluster_ip
            desired.spec.cluster_ips = existing.spec.cluster_ips

    @staticmethod
    def needs_update(existing, desired) -> bool:
        """True when image, replicas, port or environment of a workload drifted."""
        if existing.kind == SERVICE:
            return _service_ports(existing) != _service_ports(desired)

        if existing.spec.replicas != desired.spec.replicas:
            return True

        current = _first_container(existing)
        wanted = _first_container(desired)
        if current is None or wanted is None:
            return current is not wanted

        if current.image != wanted.image:
            return True
        if _container_ports(current) != _container_ports(wanted):
            return True
        return _env_pairs(current) != _env_pairs(wanted)


def _first_container(deployment) -> Optional[client.V1Container]:
    try:
        containers = deployment.spec.template.spec.containers
    except AttributeError:
        return None
    return containers[0] if containers else None


def _container_ports(container) -> List[int]:
    return [p.container_port for p in container.ports or []]


def _env_pairs(container) -> List[Tuple[str, Optional[str]]]:
    return [(e.name, e.value) for e in container.env or []]


def _service_ports(service) -> List[Tuple[int, object]]:
    return [(p.port, p.target_port) for p in service.spec.ports or []]
