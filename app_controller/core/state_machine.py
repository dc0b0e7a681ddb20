#app_controller\core\state_machine.py

from datetime import datetime, timezone
from typing import Optional

from app_controller.core.errors import InvalidPhaseTransition
from app_controller.core.models import Application, Phase


# None is the empty phase of a record the controller has never touched.
ALLOWED_TRANSITIONS = {
    None: {
        Phase.PENDING,
        Phase.PROVISIONING_INFRASTRUCTURE,
        Phase.FAILED,
    },
    Phase.PENDING: {
        Phase.PROVISIONING_INFRASTRUCTURE,
        Phase.FAILED,
    },
    Phase.PROVISIONING_INFRASTRUCTURE: {
        Phase.DEPLOYING,
        Phase.FAILED,
    },
    Phase.DEPLOYING: {
        Phase.READY,
        Phase.FAILED,
    },
    Phase.READY: {
        Phase.FAILED,
    },
}


class PhaseStateMachine:
    @staticmethod
    def can_transition(current: Optional[Phase], new_phase: Phase) -> bool:
        if current == new_phase:
            return True
        return new_phase in ALLOWED_TRANSITIONS.get(current, set())

    @staticmethod
    def transition(
        application: Application,
        new_phase: Phase,
        message: str,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[Phase]:
        """
        Move the application to new_phase.

        Returns the previous phase. Re-entering the current phase only
        refreshes the message.
        """
        current = application.status.phase

        if not PhaseStateMachine.can_transition(current, new_phase):
            raise InvalidPhaseTransition(
                f"Cannot transition from {_label(current)} to {new_phase.value}"
            )

        application.update_status(new_phase, message)
        if now is not None:
            application.status.last_updated = now
        return current

    @staticmethod
    def reset(application: Application, message: str) -> Optional[Phase]:
        """
        Send a Ready or Failed application back to Pending.

        Only legal in response to an external change (edited spec or operator
        action). Placements and endpoints are kept so placement stays sticky.
        """
        current = application.status.phase
        if current not in (Phase.READY, Phase.FAILED):
            raise InvalidPhaseTransition(f"Cannot reset from {_label(current)}")

        application.status.phase = Phase.PENDING
        application.status.message = message
        application.status.infrastructure_ready = False
        application.status.ready_replicas = 0
        application.status.last_updated = datetime.now(timezone.utc)
        return current


def _label(phase: Optional[Phase]) -> str:
    return phase.value if phase else "<empty>"
