#app_controller\core\validation.py
"""Guard clauses for a declared application spec."""

from app_controller.core.models import ApplicationSpec
from app_controller.core.errors import ValidationError


def validate_spec(spec: ApplicationSpec) -> None:
    # -------------------------
    # Image
    # -------------------------
    if not spec.image or not spec.image.strip():
        raise ValidationError("image is required")

    # -------------------------
    # Networking
    # -------------------------
    if spec.port and (spec.port < 1 or spec.port > 65535):
        raise ValidationError("port must be between 1 and 65535")

    # -------------------------
    # Scaling
    # -------------------------
    if spec.replicas is not None and spec.replicas < 0:
        raise ValidationError("replicas cannot be negative")

    # -------------------------
    # Environment
    # -------------------------
    for key in spec.env:
        if not key:
            raise ValidationError("env variable names must not be empty")

