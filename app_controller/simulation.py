# app_controller/simulation.py
"""Simulation mode - reconciles a sample application against in-memory stores."""

import logging
from typing import Optional

from app_controller.config import ControllerSettings
from app_controller.container import Container, build_container
from app_controller.core.models import (
    Application, ApplicationSpec, CacheSpec, DatabaseSpec, Environment, InfrastructureSpec,
)
from app_controller.infrastructure.memory.repository import InMemoryApplicationRepository, InMemoryCluster

logger = logging.getLogger(__name__)


MAX_PASSES = 20


def sample_application(namespace: str = "default") -> Application:
    return Application(
        name="sample-app",
        namespace=namespace,
        uid="00000000-0000-0000-0000-000000000001",
        spec=ApplicationSpec(
            image="nginx:latest",
            port=80,
            replicas=3,
            env={"APP_ENV": "development"},
            infrastructure=InfrastructureSpec(
                environment=Environment.LOCAL,
                database=DatabaseSpec(environment=Environment.LOCAL, version="14.9"),
                cache=CacheSpec(environment=Environment.LOCAL, version="7.0"),
            ),
        ),
    )


def build_simulation(settings: ControllerSettings) -> Container:
    return build_container(
        settings,
        repository=InMemoryApplicationRepository(),
        cluster=InMemoryCluster(auto_ready=True),
    )


def run_simulation(
    settings: ControllerSettings,
    application: Optional[Application] = None,
) -> Application:
    """
    Drive one application to a resting state.

    Requeue delays are logged but not waited for.
    """
    container = build_simulation(settings)
    application = application or sample_application(settings.namespace or "default")
    container.repository.add(application)

    logger.info("=" * 60)
    logger.info(f"🧪 Simulating {application.key} ({application.infrastructure_summary()})")
    logger.info(f"   Placement: {container.resolver.describe(application)}")
    logger.info("=" * 60)

    for attempt in range(1, MAX_PASSES + 1):
        result = container.engine.reconcile(application.key)
        current = container.repository.get(application.key)
        phase = current.status.phase.value if current.status.phase else "<empty>"

        logger.info(f"[simulation] pass {attempt}: phase={phase} requeue_after={result.requeue_after}")

        if result.requeue_after is None or current.is_ready():
            break
    else:
        logger.warning(f"[simulation] no resting state after {MAX_PASSES} passes")

    final = container.repository.get(application.key)
    log_status(final)
    return final


def log_status(application: Application) -> None:
    status = application.status

    logger.info("=" * 60)
    logger.info(f"📋 Final status of {application.key}")
    logger.info(f"   Phase:           {status.phase.value if status.phase else '<empty>'}")
    logger.info(f"   Message:         {status.message}")
    logger.info(f"   Ready replicas:  {status.ready_replicas}/{application.spec.resolved_replicas()}")
    logger.info(f"   Infrastructure:  {'ready' if status.infrastructure_ready else 'not ready'}")
    if status.database_endpoint:
        logger.info(f"   Database:        {status.database_endpoint} ({status.database_placement.value})")
    if status.cache_endpoint:
        logger.info(f"   Cache:           {status.cache_endpoint} ({status.cache_placement.value})")
    if status.object_store_endpoint:
        logger.info(
            f"   Object store:    {status.object_store_endpoint} "
            f"bucket={status.object_store_bucket} ({status.object_store_placement.value})"
        )
    logger.info("=" * 60)
