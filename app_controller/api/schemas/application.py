from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app_controller.core.models import Application


class InfrastructureEndpointResponse(BaseModel):
    kind: str
    endpoint: str
    placement: Optional[str]


class ApplicationResponse(BaseModel):
    namespace: str
    name: str
    image: str
    replicas: int
    phase: Optional[str]
    message: str
    ready_replicas: int
    infrastructure_ready: bool
    last_updated: Optional[datetime]
    infrastructure: list[InfrastructureEndpointResponse]

    @classmethod
    def from_domain(cls, application: Application) -> "ApplicationResponse":
        status = application.status
        return cls(
            namespace=application.namespace,
            name=application.name,
            image=application.spec.image,
            replicas=application.spec.resolved_replicas(),
            phase=status.phase.value if status.phase else None,
            message=status.message,
            ready_replicas=status.ready_replicas,
            infrastructure_ready=status.infrastructure_ready,
            last_updated=status.last_updated,
            infrastructure=[
                InfrastructureEndpointResponse(
                    kind=kind.value,
                    endpoint=status.endpoint_for(kind),
                    placement=status.placement_for(kind).value if status.placement_for(kind) else None,
                )
                for kind in application.spec.infrastructure.requested_kinds()
            ],
        )
