# app_controller/environment/resolver.py
"""Environment resolver - decides local vs cloud placement per infrastructure kind."""

import logging
import os
from typing import Mapping, Optional

from app_controller.core.models import Application, Environment, InfrastructureKind, Placement

logger = logging.getLogger(__name__)


def resolve_placement(
    resource_env: Optional[Environment],
    app_env: Optional[Environment],
    ambient_is_local: bool,
) -> Placement:
    """
    Three-tier override: resource setting, then application setting, then ambient.

    AUTO at either level defers to the next tier.
    """
    for env in (resource_env, app_env):
        if env is not None and env is not Environment.AUTO:
            return Placement(env.value)

    return Placement.LOCAL if ambient_is_local else Placement.CLOUD


def detect_ambient_is_local(environ: Optional[Mapping[str, str]] = None) -> bool:
    """
    Best-effort guess at whether we run outside a cloud account.

    Only the entry point calls this; the result is passed into the resolver.
    """
    environ = os.environ if environ is None else environ

    # Cloud credentials present
    if environ.get("AWS_ACCESS_KEY_ID") and environ.get("AWS_SECRET_ACCESS_KEY"):
        return False

    # In-cluster on a cloud provider
    if environ.get("KUBERNETES_SERVICE_HOST"):
        if environ.get("AWS_REGION") or environ.get("GCP_PROJECT"):
            return False

    return True


class EnvironmentResolver:
    """Resolves placement for an application's infrastructure."""

    def __init__(self, ambient_is_local: bool):
        self.ambient_is_local = ambient_is_local

    def placement_for(self, application: Application, kind: InfrastructureKind) -> Placement:
        infra = application.spec.infrastructure

        if kind is InfrastructureKind.DATABASE:
            resource = infra.database
        elif kind is InfrastructureKind.CACHE:
            resource = infra.cache
        else:
            resource = infra.object_store

        resource_env = resource.environment if resource is not None else None
        return resolve_placement(resource_env, infra.environment, self.ambient_is_local)

    def describe(self, application: Application) -> str:
        """Human-readable placement summary, e.g. for logs."""
        parts = []
        for kind in application.spec.infrastructure.requested_kinds():
            parts.append(f"{kind.value}={self.placement_for(application, kind).value}")
        return ", ".join(parts) if parts else "none"
