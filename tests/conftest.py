#tests\conftest.py

"""Pytest configuration and fixtures."""

import pytest

from app_controller.core.events import LoggingEventEmitter
from app_controller.core.models import (
    Application, ApplicationSpec, CacheSpec, DatabaseSpec, Environment,
    InfrastructureSpec, ObjectStoreSpec,
)
from app_controller.engine.engine import ReconciliationEngine
from app_controller.environment.resolver import EnvironmentResolver
from app_controller.infrastructure.memory.repository import InMemoryApplicationRepository, InMemoryCluster
from app_controller.provisioner.cloud import SimulatedCloudProvider
from app_controller.provisioner.provisioner import InfrastructureProvisioner
from app_controller.synthesizer.secrets import LocalDevelopmentSecrets
from app_controller.synthesizer.synthesizer import WorkloadSynthesizer


# -------------------------
# Builders
# -------------------------

def build_application(
    name="simple-nginx",
    namespace="default",
    image="nginx:latest",
    port=80,
    replicas=3,
    env=None,
    database=False,
    cache=False,
    object_store=False,
    environment=Environment.LOCAL,
) -> Application:
    """Application with the requested infrastructure kinds, all at the given environment."""
    return Application(
        name=name,
        namespace=namespace,
        uid=f"uid-{name}",
        spec=ApplicationSpec(
            image=image,
            port=port,
            replicas=replicas,
            env=dict(env or {}),
            infrastructure=InfrastructureSpec(
                environment=environment,
                database=DatabaseSpec() if database else None,
                cache=CacheSpec() if cache else None,
                object_store=ObjectStoreSpec() if object_store else None,
            ),
        ),
    )


@pytest.fixture
def make_application():
    return build_application


# -------------------------
# Stores
# -------------------------

@pytest.fixture
def repository():
    return InMemoryApplicationRepository()


@pytest.fixture
def cluster():
    return InMemoryCluster()


# -------------------------
# Services
# -------------------------

@pytest.fixture
def secrets():
    return LocalDevelopmentSecrets()


@pytest.fixture
def resolver():
    return EnvironmentResolver(ambient_is_local=True)


@pytest.fixture
def provisioner(cluster, resolver, secrets):
    return InfrastructureProvisioner(
        cluster=cluster,
        resolver=resolver,
        secrets=secrets,
        cloud=SimulatedCloudProvider(region="us-west-2"),
    )


@pytest.fixture
def synthesizer(secrets):
    return WorkloadSynthesizer(secrets)


@pytest.fixture
def events():
    return LoggingEventEmitter()


@pytest.fixture
def engine(repository, cluster, provisioner, synthesizer, events):
    return ReconciliationEngine(
        repository=repository,
        cluster=cluster,
        provisioner=provisioner,
        synthesizer=synthesizer,
        emitter=events,
    )
