"""Real-time device orientation from gyroscope, accelerometer and magnetometer."""

from .core import (
    SensorType,
    Vector3,
    RotationMatrix,
    OrientationVector,
    SensorSample,
    Config,
    load_config,
    InvalidConfiguration,
    InvalidReferenceOrientation,
)
from .fusion import OrientationSession, SessionState

__version__ = "0.1.0"

__all__ = [
    "SensorType",
    "Vector3",
    "RotationMatrix",
    "OrientationVector",
    "SensorSample",
    "Config",
    "load_config",
    "InvalidConfiguration",
    "InvalidReferenceOrientation",
    "OrientationSession",
    "SessionState",
]
