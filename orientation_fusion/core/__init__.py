"""Core module for orientation fusion."""

from .types import (
    SensorType,
    Vector3,
    RotationMatrix,
    Quaternion,
    OrientationVector,
    SensorSample,
    FusionState,
    ValidationResult,
    SessionStats,
)
from .errors import (
    OrientationFusionError,
    InvalidReferenceOrientation,
    InvalidConfiguration,
)
from .rotation import RotationOps
from .config import Config, load_config, validate_config

__all__ = [
    "SensorType",
    "Vector3",
    "RotationMatrix",
    "Quaternion",
    "OrientationVector",
    "SensorSample",
    "FusionState",
    "ValidationResult",
    "SessionStats",
    "OrientationFusionError",
    "InvalidReferenceOrientation",
    "InvalidConfiguration",
    "RotationOps",
    "Config",
    "load_config",
    "validate_config",
]
