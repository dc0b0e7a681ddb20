# app_controller/core/errors.py

# -----------------------------
# Base Errors
# -----------------------------

class ControllerError(Exception):
    """Base class for all controller errors."""
    pass


# -----------------------------
# Reconciliation Errors
# -----------------------------

class ValidationError(ControllerError):
    """Invalid application spec. Terminal until the spec is edited."""
    pass


class ProvisioningError(ControllerError):
    """Infrastructure could not be created or located."""

    def __init__(self, kind, message: str):
        super().__init__(message)
        self.kind = kind


class SynthesisError(ControllerError):
    """Workload or endpoint object could not be created or updated."""

    def __init__(self, object_kind: str, message: str):
        super().__init__(message)
        self.object_kind = object_kind


class ReadinessCheckError(ControllerError):
    """Workload readiness could not be observed. Transient."""
    pass


class UnrecognizedPhaseError(ControllerError):
    """Stored phase is not one the engine knows about."""
    pass


class MalformedRecordError(ControllerError):
    """
    Declared state does not fit the resource schema (e.g. environment: gcp).
    Carries the record with an empty spec so the failure can be recorded.
    """

    def __init__(self, application, reason: str):
        super().__init__(reason)
        self.application = application
        self.reason = reason


class InvalidPhaseTransition(ControllerError):
    """Illegal phase transition attempted."""
    pass


# -----------------------------
# Store Errors
# -----------------------------

class StoreError(ControllerError):
    pass


class RecordNotFound(StoreError):
    pass


class ObjectAlreadyExists(StoreError):
    pass


class StatusPersistError(StoreError):
    pass


class WriteConflict(StoreError):
    """Object changed since it was read. Retry with a fresh read."""
    pass
