"""Absolute orientation from gravity and magnetic field.

The estimator builds an orthonormal East-North-Up frame from the
two vectors measured in the device frame:

- H = m x a points East (magnetic field tilt-compensated by gravity)
- A = a / |a| points Up
- M = A x H points toward magnetic North

The rows of the rotation matrix are H, M, A, so the matrix maps
device coordinates to world coordinates.
"""

import logging
from dataclasses import dataclass

import numpy as np

from ..core.config import AccelerometerConfig, MagnetometerConfig
from ..core.errors import InvalidReferenceOrientation
from ..core.rotation import RotationOps
from ..core.types import Vector3, RotationMatrix, OrientationVector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StaticEstimate:
    """Orientation derived from a single accel/mag pair."""
    matrix: RotationMatrix
    orientation: OrientationVector


class StaticOrientationEstimator:
    """Stateless accelerometer/magnetometer orientation estimator."""

    def __init__(
        self,
        accelerometer: AccelerometerConfig = None,
        magnetometer: MagnetometerConfig = None,
    ):
        """Initialize the estimator.

        Args:
            accelerometer: Gravity reference and tolerance.
            magnetometer: Minimum field/gravity separation.
        """
        self._acc_cfg = accelerometer or AccelerometerConfig()
        self._mag_cfg = magnetometer or MagnetometerConfig()

    def estimate(self, acceleration: Vector3, magnetic_field: Vector3) -> StaticEstimate:
        """Compute the device orientation from gravity and magnetic field.

        Args:
            acceleration: Accelerometer reading in m/s^2.
            magnetic_field: Magnetometer reading in uT.

        Returns:
            Rotation matrix and the orientation decomposed from it.

        Raises:
            InvalidReferenceOrientation: If the vectors do not define a
                unique rotation.
        """
        if not acceleration.is_finite() or not magnetic_field.is_finite():
            raise InvalidReferenceOrientation("Non-finite acceleration or magnetic field")

        a = acceleration.to_array()
        m = magnetic_field.to_array()

        acc_norm = float(np.linalg.norm(a))
        expected_g = self._acc_cfg.gravity_nominal
        tolerance = self._acc_cfg.gravity_tolerance
        if abs(acc_norm - expected_g) > tolerance:
            raise InvalidReferenceOrientation(
                f"Acceleration magnitude {acc_norm:.2f} m/s^2 outside "
                f"{expected_g:.2f} +/- {tolerance:.2f} m/s^2"
            )

        mag_norm = float(np.linalg.norm(m))
        if mag_norm < 1e-6:
            raise InvalidReferenceOrientation("Magnetic field vanishes")

        east = np.cross(m, a)
        east_norm = float(np.linalg.norm(east))
        sine = east_norm / (mag_norm * acc_norm)
        if sine < self._mag_cfg.min_field_gravity_sine:
            raise InvalidReferenceOrientation(
                f"Magnetic field nearly parallel to gravity (sin={sine:.3f})"
            )

        east = east / east_norm
        up = a / acc_norm
        north = np.cross(up, east)

        matrix = RotationMatrix.from_rows(east, north, up)
        return StaticEstimate(
            matrix=matrix,
            orientation=RotationOps.orientation_from_matrix(matrix),
        )
