# app_controller/provisioner/manifests.py
"""Object builders for locally provisioned infrastructure."""

from typing import List, Tuple

from kubernetes import client

from app_controller.cluster.objects import (
    API_VERSIONS, DEPLOYMENT, PERSISTENT_VOLUME_CLAIM, SERVICE, STATEFUL_SET,
    object_meta, selector_labels,
)
from app_controller.core.models import Application, InfrastructureKind
from app_controller.synthesizer.secrets import Credentials


POSTGRES_PORT = 5432
REDIS_PORT = 6379
MINIO_API_PORT = 9000
MINIO_CONSOLE_PORT = 9001

MINIO_IMAGE = "minio/minio:latest"

COMPONENTS = {
    InfrastructureKind.DATABASE: "database",
    InfrastructureKind.CACHE: "cache",
    InfrastructureKind.OBJECT_STORE: "storage",
}


def infrastructure_name(application: Application, kind: InfrastructureKind) -> str:
    return f"{application.name}-{kind.value}"


def postgres_volume_claim(
    application: Application,
    owner_api_version: str,
) -> client.V1PersistentVolumeClaim:
    database = application.spec.infrastructure.database
    name = f"{infrastructure_name(application, InfrastructureKind.DATABASE)}-pvc"

    return client.V1PersistentVolumeClaim(
        api_version=API_VERSIONS[PERSISTENT_VOLUME_CLAIM],
        kind=PERSISTENT_VOLUME_CLAIM,
        metadata=object_meta(application, name, "database", owner_api_version),
        spec=client.V1PersistentVolumeClaimSpec(
            access_modes=["ReadWriteOnce"],
            resources=client.V1VolumeResourceRequirements(
                requests={"storage": database.local_storage_size},
            ),
        ),
    )


def postgres_stateful_set(
    application: Application,
    credentials: Credentials,
    owner_api_version: str,
) -> client.V1StatefulSet:
    database = application.spec.infrastructure.database
    name = infrastructure_name(application, InfrastructureKind.DATABASE)
    claim_name = f"{name}-pvc"

    container = client.V1Container(
        name="postgres",
        image=f"postgres:{database.version}",
        env=[
            client.V1EnvVar(name="POSTGRES_DB", value=database.database_name),
            client.V1EnvVar(name="POSTGRES_USER", value=credentials.username),
            client.V1EnvVar(name="POSTGRES_PASSWORD", value=credentials.password),
            client.V1EnvVar(name="PGDATA", value="/var/lib/postgresql/data/pgdata"),
        ],
        ports=[client.V1ContainerPort(container_port=POSTGRES_PORT)],
        volume_mounts=[
            client.V1VolumeMount(name="postgres-data", mount_path="/var/lib/postgresql/data"),
        ],
    )

    return client.V1StatefulSet(
        api_version=API_VERSIONS[STATEFUL_SET],
        kind=STATEFUL_SET,
        metadata=object_meta(application, name, "database", owner_api_version),
        spec=client.V1StatefulSetSpec(
            replicas=1,
            service_name=name,
            selector=client.V1LabelSelector(match_labels=selector_labels(application, "database")),
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(labels=selector_labels(application, "database")),
                spec=client.V1PodSpec(
                    containers=[container],
                    volumes=[
                        client.V1Volume(
                            name="postgres-data",
                            persistent_volume_claim=client.V1PersistentVolumeClaimVolumeSource(
                                claim_name=claim_name,
                            ),
                        ),
                    ],
                ),
            ),
        ),
    )


def redis_deployment(application: Application, owner_api_version: str) -> client.V1Deployment:
    cache = application.spec.infrastructure.cache
    name = infrastructure_name(application, InfrastructureKind.CACHE)

    container = client.V1Container(
        name="redis",
        image=f"redis:{cache.version}",
        ports=[client.V1ContainerPort(container_port=REDIS_PORT)],
    )
    return _single_replica_deployment(application, name, "cache", container, owner_api_version)


def minio_deployment(
    application: Application,
    credentials: Credentials,
    owner_api_version: str,
) -> client.V1Deployment:
    name = infrastructure_name(application, InfrastructureKind.OBJECT_STORE)

    container = client.V1Container(
        name="minio",
        image=MINIO_IMAGE,
        command=["/usr/bin/docker-entrypoint.sh"],
        args=["server", "/data", "--console-address", f":{MINIO_CONSOLE_PORT}"],
        env=[
            client.V1EnvVar(name="MINIO_ROOT_USER", value=credentials.username),
            client.V1EnvVar(name="MINIO_ROOT_PASSWORD", value=credentials.password),
        ],
        ports=[
            client.V1ContainerPort(container_port=MINIO_API_PORT, name="api"),
            client.V1ContainerPort(container_port=MINIO_CONSOLE_PORT, name="console"),
        ],
    )
    return _single_replica_deployment(application, name, "storage", container, owner_api_version)


def internal_service(
    application: Application,
    kind: InfrastructureKind,
    ports: List[Tuple[str, int]],
    owner_api_version: str,
) -> client.V1Service:
    """Cluster-internal Service in front of one infrastructure kind."""
    name = infrastructure_name(application, kind)
    component = COMPONENTS[kind]

    return client.V1Service(
        api_version=API_VERSIONS[SERVICE],
        kind=SERVICE,
        metadata=object_meta(application, name, component, owner_api_version),
        spec=client.V1ServiceSpec(
            type="ClusterIP",
            selector=selector_labels(application, component),
            ports=[
                client.V1ServicePort(name=port_name, port=port, target_port=port, protocol="TCP")
                for port_name, port in ports
            ],
        ),
    )


def _single_replica_deployment(application, name, component, container, owner_api_version):
    return client.V1Deployment(
        api_version=API_VERSIONS[DEPLOYMENT],
        kind=DEPLOYMENT,
        metadata=object_meta(application, name, component, owner_api_version),
        spec=client.V1DeploymentSpec(
            replicas=1,
            selector=client.V1LabelSelector(match_labels=selector_labels(application, component)),
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(labels=selector_labels(application, component)),
                spec=client.V1PodSpec(containers=[container]),
            ),
        ),
    )
