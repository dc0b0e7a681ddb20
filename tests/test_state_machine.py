#tests\test_state_machine.py

"""Test phase transitions."""

import pytest

from app_controller.core.errors import InvalidPhaseTransition
from app_controller.core.models import InfrastructureKind, Phase, Placement
from app_controller.core.state_machine import PhaseStateMachine


ORDER = [
    Phase.PENDING,
    Phase.PROVISIONING_INFRASTRUCTURE,
    Phase.DEPLOYING,
    Phase.READY,
]


class TestPhaseStateMachine:

    @pytest.fixture
    def application(self, make_application):
        return make_application(database=True)

    # -------------------------
    # FORWARD
    # -------------------------

    def test_forward_path(self, application):
        previous = None
        for phase in ORDER:
            assert PhaseStateMachine.transition(application, phase, phase.value) == previous
            previous = phase

        assert application.status.phase is Phase.READY
        assert application.status.last_updated is not None

    def test_empty_may_skip_pending(self, application):
        PhaseStateMachine.transition(application, Phase.PROVISIONING_INFRASTRUCTURE, "go")
        assert application.status.phase is Phase.PROVISIONING_INFRASTRUCTURE

    @pytest.mark.parametrize("start, target", [
        (Phase.PROVISIONING_INFRASTRUCTURE, Phase.PENDING),
        (Phase.DEPLOYING, Phase.PROVISIONING_INFRASTRUCTURE),
        (Phase.READY, Phase.DEPLOYING),
        (Phase.READY, Phase.PENDING),
        (Phase.PENDING, Phase.READY),
    ])
    def test_backwards_or_skipping_is_refused(self, application, start, target):
        application.status.phase = start

        with pytest.raises(InvalidPhaseTransition):
            PhaseStateMachine.transition(application, target, "nope")
        assert application.status.phase is start

    # -------------------------
    # FAILED
    # -------------------------

    @pytest.mark.parametrize("start", [None] + ORDER)
    def test_failed_reachable_from_anywhere(self, application, start):
        application.status.phase = start
        PhaseStateMachine.transition(application, Phase.FAILED, "boom")
        assert application.status.phase is Phase.FAILED

    @pytest.mark.parametrize("target", ORDER)
    def test_failed_is_sticky(self, application, target):
        application.status.phase = Phase.FAILED
        with pytest.raises(InvalidPhaseTransition):
            PhaseStateMachine.transition(application, target, "retry")

    def test_same_phase_refreshes_message(self, application):
        application.status.phase = Phase.DEPLOYING
        PhaseStateMachine.transition(application, Phase.DEPLOYING, "Waiting for replicas")
        assert application.status.message == "Waiting for replicas"

    # -------------------------
    # RESET
    # -------------------------

    def test_reset_keeps_placement(self, application):
        application.status.phase = Phase.READY
        application.status.ready_replicas = 3
        application.status.infrastructure_ready = True
        application.status.record_endpoint(
            InfrastructureKind.DATABASE, "simple-nginx-postgres:5432", Placement.LOCAL,
        )

        previous = PhaseStateMachine.reset(application, "Spec changed")

        assert previous is Phase.READY
        assert application.status.phase is Phase.PENDING
        assert application.status.ready_replicas == 0
        assert application.status.infrastructure_ready is False
        assert application.status.database_placement is Placement.LOCAL
        assert application.status.database_endpoint == "simple-nginx-postgres:5432"

    def test_reset_from_failed(self, application):
        application.status.phase = Phase.FAILED
        assert PhaseStateMachine.reset(application, "retry") is Phase.FAILED

    @pytest.mark.parametrize("start", [None, Phase.PENDING, Phase.DEPLOYING])
    def test_reset_refused_mid_flight(self, application, start):
        application.status.phase = start
        with pytest.raises(InvalidPhaseTransition):
            PhaseStateMachine.reset(application, "nope")
