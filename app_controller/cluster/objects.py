# app_controller/cluster/objects.py
"""Shared metadata for every object the controller creates."""

from typing import Dict, Optional

from kubernetes import client

from app_controller.core.models import Application


MANAGED_BY = "app-platform-controller"

DEFAULT_GROUP = "platform.orion.dev"
DEFAULT_VERSION = "v1alpha1"
DEFAULT_OWNER_API_VERSION = f"{DEFAULT_GROUP}/{DEFAULT_VERSION}"
OWNER_KIND = "Application"

# Object kinds
DEPLOYMENT = "Deployment"
STATEFUL_SET = "StatefulSet"
SERVICE = "Service"
PERSISTENT_VOLUME_CLAIM = "PersistentVolumeClaim"

# Component label of the application's own pods; infrastructure pods carry their kind
APP_COMPONENT = "app"

API_VERSIONS = {
    DEPLOYMENT: "apps/v1",
    STATEFUL_SET: "apps/v1",
    SERVICE: "v1",
    PERSISTENT_VOLUME_CLAIM: "v1",
}


def selector_labels(application: Application, component: Optional[str] = None) -> Dict[str, str]:
    labels = {"app": application.name}
    if component:
        labels["component"] = component
    return labels


def object_labels(application: Application, component: Optional[str] = None) -> Dict[str, str]:
    return {**selector_labels(application, component), "managed-by": MANAGED_BY}


def owner_reference(
    application: Application,
    owner_api_version: str = DEFAULT_OWNER_API_VERSION,
) -> client.V1OwnerReference:
    """Marks an object as owned by the application so deletion cascades."""
    return client.V1OwnerReference(
        api_version=owner_api_version,
        kind=OWNER_KIND,
        name=application.name,
        uid=application.uid,
        controller=True,
        block_owner_deletion=True,
    )


def object_meta(
    application: Application,
    name: str,
    component: Optional[str] = None,
    owner_api_version: str = DEFAULT_OWNER_API_VERSION,
) -> client.V1ObjectMeta:
    return client.V1ObjectMeta(
        name=name,
        namespace=application.namespace,
        labels=object_labels(application, component),
        owner_references=[owner_reference(application, owner_api_version)],
    )


def describe(obj) -> str:
    """'Kind namespace/name' for log lines."""
    return f"{obj.kind} {obj.metadata.namespace}/{obj.metadata.name}"
