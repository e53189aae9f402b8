"""Pytest fixtures for orientation fusion tests."""

import sys
from pathlib import Path
import pytest
import numpy as np

repo_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(repo_root))

from orientation_fusion.core.config import Config
from orientation_fusion.core.types import Vector3, RotationMatrix
from orientation_fusion.fusion.session import OrientationSession

NS_PER_MS = 1_000_000


@pytest.fixture
def config() -> Config:
    """Create default configuration for tests."""
    return Config()


@pytest.fixture
def level_acceleration() -> Vector3:
    """Accelerometer reading of a device lying flat and still."""
    return Vector3(0.0, 0.0, 9.81)


@pytest.fixture
def north_field() -> Vector3:
    """Horizontal magnetic field along the device Y axis."""
    return Vector3(0.0, 50.0, 0.0)


@pytest.fixture
def dipping_field() -> Vector3:
    """Northern-hemisphere field: north component and downward dip."""
    return Vector3(0.0, 22.0, -42.0)


@pytest.fixture
def identity_matrix() -> RotationMatrix:
    """Identity rotation matrix."""
    return RotationMatrix.identity()


@pytest.fixture
def yaw_30_matrix() -> RotationMatrix:
    """Rotation of 30 degrees about +Z."""
    angle = np.deg2rad(30)
    return RotationMatrix.from_array(np.array([
        [np.cos(angle), -np.sin(angle), 0.0],
        [np.sin(angle), np.cos(angle), 0.0],
        [0.0, 0.0, 1.0],
    ]))


@pytest.fixture
def tracking_session(config, level_acceleration, north_field) -> OrientationSession:
    """Session seeded with a level, north-facing reference.

    The gyroscope timestamp baseline is set at t = 0 ms.
    """
    session = OrientationSession(config)
    session.on_magnetic_field_sample(north_field, 0)
    session.on_acceleration_sample(level_acceleration, 0)
    session.on_angular_velocity_sample(Vector3.zero(), 0)
    return session


def feed_gyro(session, omega: Vector3, steps: int, dt_ms: int = 10, start_ms: int = 0) -> None:
    """Push ``steps`` gyroscope samples spaced ``dt_ms`` apart."""
    for i in range(1, steps + 1):
        session.on_angular_velocity_sample(omega, (start_ms + i * dt_ms) * NS_PER_MS)
