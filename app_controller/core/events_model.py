"""Event models for the reconciliation engine."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app_controller.core.models import Phase


@dataclass
class ApplicationEvent:
    """Base application event."""

    event_type: str
    record: str
    timestamp: datetime
    metadata: Dict[str, Any]

    @staticmethod
    def phase_changed(application, previous: Optional[Phase]):
        """Phase transition event."""
        return ApplicationEvent(
            event_type="application.phase_changed",
            record=str(application.key),
            timestamp=datetime.now(timezone.utc),
            metadata={
                "from": previous.value if previous else None,
                "to": application.status.phase.value,
                "message": application.status.message,
            },
        )

    @staticmethod
    def infrastructure_provisioned(application, endpoint):
        """One infrastructure kind has an endpoint."""
        return ApplicationEvent(
            event_type="application.infrastructure_provisioned",
            record=str(application.key),
            timestamp=datetime.now(timezone.utc),
            metadata={
                "kind": endpoint.kind.value,
                "endpoint": endpoint.endpoint,
                "placement": endpoint.placement.value,
            },
        )

    @staticmethod
    def workload_updated(application, object_kind: str):
        """Existing workload object replaced to match the spec."""
        return ApplicationEvent(
            event_type="application.workload_updated",
            record=str(application.key),
            timestamp=datetime.now(timezone.utc),
            metadata={
                "object_kind": object_kind,
                "generation": application.generation,
            },
        )
