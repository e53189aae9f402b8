"""Sensor fusion module for device orientation estimation."""

from .smoothing import MeanFilterSmoothing
from .static_estimator import StaticOrientationEstimator, StaticEstimate
from .gyro_integrator import (
    EPSILON,
    delta_quaternion,
    delta_rotation,
    integrate,
)
from .strategies import (
    FusionStrategy,
    ComplementaryFusion,
    KalmanFusion,
    complementary_blend,
    complementary_fuse,
    create_strategy,
)
from .session import OrientationSession, SessionState

__all__ = [
    "MeanFilterSmoothing",
    "StaticOrientationEstimator",
    "StaticEstimate",
    "EPSILON",
    "delta_quaternion",
    "delta_rotation",
    "integrate",
    "FusionStrategy",
    "ComplementaryFusion",
    "KalmanFusion",
    "complementary_blend",
    "complementary_fuse",
    "create_strategy",
    "OrientationSession",
    "SessionState",
]
