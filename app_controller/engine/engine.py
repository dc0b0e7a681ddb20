# app_controller/engine/engine.py
"""Reconciliation engine - drives one application one step toward its desired state."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from app_controller.cluster.objects import DEPLOYMENT, describe
from app_controller.core.errors import (
    ControllerError, InvalidPhaseTransition, MalformedRecordError, ObjectAlreadyExists,
    ProvisioningError, ReadinessCheckError, StoreError, SynthesisError, UnrecognizedPhaseError,
    ValidationError, WriteConflict,
)
from app_controller.core.events import EventEmitter, NullEventEmitter
from app_controller.core.events_model import ApplicationEvent
from app_controller.core.models import Application, Phase, RecordKey
from app_controller.core.repository import ApplicationRepository, ClusterClient
from app_controller.core.state_machine import PhaseStateMachine
from app_controller.core.validation import validate_spec
from app_controller.engine.config import RequeuePolicy
from app_controller.provisioner.provisioner import InfrastructureProvisioner
from app_controller.synthesizer.synthesizer import WorkloadSynthesizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one pass. requeue_after=None means wait for the next change."""
    requeue_after: Optional[timedelta] = None

    @classmethod
    def done(cls) -> "ReconcileResult":
        return cls(None)

    @classmethod
    def after(cls, delay: timedelta) -> "ReconcileResult":
        return cls(delay)


class ReconciliationEngine:
    """
    Level-triggered reconciler.

    Each pass loads the record, validates it and performs the single step its
    phase calls for. The phase is persisted before the side effects of that
    phase run, so a pass that dies halfway is resumed by the next one.
    """

    def __init__(
        self,
        *,
        repository: ApplicationRepository,
        cluster: ClusterClient,
        provisioner: InfrastructureProvisioner,
        synthesizer: WorkloadSynthesizer,
        emitter: Optional[EventEmitter] = None,
        policy: Optional[RequeuePolicy] = None,
    ):
        self._repository = repository
        self._cluster = cluster
        self._provisioner = provisioner
        self._synthesizer = synthesizer
        self._emitter = emitter or NullEventEmitter()
        self._policy = policy or RequeuePolicy()

    @property
    def policy(self) -> RequeuePolicy:
        return self._policy

    def reconcile(self, key: RecordKey) -> ReconcileResult:
        """Run one pass for key. Never raises."""
        malformed = None
        try:
            application = self._repository.get(key)
        except MalformedRecordError as e:
            application, malformed = e.application, e.reason
        except UnrecognizedPhaseError as e:
            logger.warning(f"[engine] {key}: {e}, leaving it alone")
            return ReconcileResult.after(self._policy.unrecognized_phase)
        except StoreError as e:
            logger.warning(f"[engine] {key}: failed to load: {e}")
            return ReconcileResult.after(self._policy.load_error)

        if application is None:
            logger.debug(f"[engine] {key} is gone, nothing to do")
            return ReconcileResult.done()

        try:
            if malformed is not None:
                return self._fail_validation(application, malformed)
            return self._reconcile(application)
        except StoreError as e:
            logger.warning(f"[engine] {key}: store error, retrying: {e}")
            return ReconcileResult.after(self._policy.persist_error)
        except ControllerError as e:
            logger.exception(f"[engine] {key}: unexpected controller error: {e}")
            return ReconcileResult.after(self._policy.persist_error)

    # ============================================
    # DISPATCH
    # ============================================

    def _reconcile(self, application: Application) -> ReconcileResult:
        try:
            validate_spec(application.spec)
        except ValidationError as e:
            return self._fail_validation(application, str(e))

        phase = application.status.phase

        if phase in (Phase.READY, Phase.FAILED) and \
                application.generation != application.status.observed_generation:
            logger.info(
                f"[engine] {application.key} spec changed "
                f"(generation {application.status.observed_generation} -> {application.generation})"
            )
            previous = PhaseStateMachine.reset(application, "Spec changed, reconciling")
            self._emit(ApplicationEvent.phase_changed(application, previous))
            phase = Phase.PENDING

        if phase is None or phase is Phase.PENDING:
            return self._start_provisioning(application)

        if phase is Phase.PROVISIONING_INFRASTRUCTURE:
            if not application.status.infrastructure_ready:
                logger.info(f"[engine] {application.key} resuming provisioning")
                return self._provision(application)
            return self._start_deploying(application)

        if phase is Phase.DEPLOYING:
            return self._check_readiness(application)

        if phase is Phase.READY:
            return ReconcileResult.after(self._policy.ready_heartbeat)

        # Unknown phase strings are rejected on load
        assert phase is Phase.FAILED, phase
        return ReconcileResult.done()

    # ============================================
    # VALIDATION
    # ============================================

    def _fail_validation(self, application: Application, reason: str) -> ReconcileResult:
        message = f"Validation failed: {reason}"
        status = application.status

        if status.phase is Phase.FAILED and status.message == message \
                and status.observed_generation == application.generation:
            return ReconcileResult.done()

        logger.warning(f"[engine] {application.key} {message}")
        previous = self._transition(application, Phase.FAILED, message)
        status.observed_generation = application.generation
        self._persist(application, previous)
        return ReconcileResult.done()

    # ============================================
    # INFRASTRUCTURE
    # ============================================

    def _start_provisioning(self, application: Application) -> ReconcileResult:
        previous = self._transition(
            application,
            Phase.PROVISIONING_INFRASTRUCTURE,
            f"Provisioning infrastructure. {application.infrastructure_summary()}",
        )
        application.status.infrastructure_ready = False
        application.status.observed_generation = application.generation
        self._persist(application, previous)

        return self._provision(application)

    def _provision(self, application: Application) -> ReconcileResult:
        try:
            provisioned = self._provisioner.provision_all(application)
        except ProvisioningError as e:
            logger.error(f"[engine] {application.key} infrastructure failed: {e}")
            previous = self._transition(application, Phase.FAILED, f"Infrastructure failed: {e}")
            self._persist(application, previous)
            return ReconcileResult.after(self._policy.provisioning_failure)

        application.status.infrastructure_ready = application.infrastructure_complete()
        application.status.message = "Infrastructure ready"
        self._repository.replace_status(application)

        self._emit(*[
            ApplicationEvent.infrastructure_provisioned(application, endpoint)
            for endpoint in provisioned
        ])
        logger.info(f"[engine] ✅ {application.key} infrastructure ready ({len(provisioned)} resources)")
        return ReconcileResult.after(self._policy.after_provisioning)

    # ============================================
    # WORKLOAD
    # ============================================

    def _start_deploying(self, application: Application) -> ReconcileResult:
        previous = self._transition(application, Phase.DEPLOYING, "Deploying application")
        self._persist(application, previous)

        return self._deploy(application)

    def _deploy(self, application: Application) -> ReconcileResult:
        steps = (
            ("Deployment", self._synthesizer.build_process_group_spec),
            ("Service", self._synthesizer.build_endpoint_spec),
        )

        for label, build in steps:
            try:
                self._apply(application, build(application))
            except SynthesisError as e:
                logger.error(f"[engine] {application.key} {label.lower()} failed: {e}")
                previous = self._transition(application, Phase.FAILED, f"{label} failed: {e}")
                self._persist(application, previous)
                return ReconcileResult.after(self._policy.synthesis_failure)

        return ReconcileResult.after(self._policy.deploy_poll)

    def _apply(self, application: Application, desired) -> None:
        """Create-if-absent, replacing an existing object that drifted from the spec."""
        try:
            self._cluster.create(desired)
            logger.info(f"[engine] created {describe(desired)}")
            return
        except ObjectAlreadyExists:
            pass
        except StoreError as e:
            raise SynthesisError(desired.kind, str(e)) from e

        try:
            existing = self._cluster.read(desired.kind, desired.metadata.namespace, desired.metadata.name)
            if existing is None or not self._synthesizer.needs_update(existing, desired):
                return

            self._synthesizer.carry_over(existing, desired)
            self._cluster.replace(desired)
        except WriteConflict:
            raise
        except StoreError as e:
            raise SynthesisError(desired.kind, str(e)) from e

        logger.info(f"[engine] replaced {describe(desired)} to match generation {application.generation}")
        self._emit(ApplicationEvent.workload_updated(application, desired.kind))

    # ============================================
    # READINESS
    # ============================================

    def _check_readiness(self, application: Application) -> ReconcileResult:
        desired = application.spec.resolved_replicas()

        try:
            observed = self._observed_ready_replicas(application)
        except ReadinessCheckError as e:
            logger.warning(f"[engine] {application.key} readiness unknown: {e}")
            return ReconcileResult.after(self._policy.readiness_error)

        if observed is None:
            logger.warning(f"[engine] {application.key} workload missing while deploying, recreating")
            return self._deploy(application)

        ready = min(observed, desired)
        application.status.ready_replicas = ready

        if ready >= desired:
            previous = self._transition(
                application,
                Phase.READY,
                f"Application is running with {ready} replicas",
            )
            self._persist(application, previous)
            logger.info(f"[engine] ✅ {application.key} is ready")
            return ReconcileResult.done()

        application.status.message = f"Waiting for replicas: {ready}/{desired} ready"
        self._repository.replace_status(application)
        return ReconcileResult.after(self._policy.deploy_poll)

    def _observed_ready_replicas(self, application: Application) -> Optional[int]:
        """None when the workload object does not exist."""
        try:
            workload = self._cluster.read(DEPLOYMENT, application.namespace, application.name)
        except StoreError as e:
            raise ReadinessCheckError(str(e)) from e

        if workload is None:
            return None

        if workload.status is None:
            return 0
        return workload.status.ready_replicas or 0

    # ============================================
    # HELPERS
    # ============================================

    def _transition(self, application: Application, phase: Phase, message: str) -> Optional[Phase]:
        try:
            return PhaseStateMachine.transition(application, phase, message)
        except InvalidPhaseTransition:
            logger.error(f"[engine] {application.key} refused transition to {phase.value}")
            raise

    def _persist(self, application: Application, previous: Optional[Phase]) -> None:
        """Write the whole status, then announce the phase change if there was one."""
        self._repository.replace_status(application)

        if previous is not application.status.phase:
            logger.info(
                f"[engine] {application.key} "
                f"{previous.value if previous else '<empty>'} -> {application.status.phase.value}"
            )
            self._emit(ApplicationEvent.phase_changed(application, previous))

    def _emit(self, *events: ApplicationEvent) -> None:
        if events:
            self._emitter.emit(events)
