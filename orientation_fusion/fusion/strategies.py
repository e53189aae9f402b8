"""Fusion strategies combining gyroscope and accel/mag orientations.

A strategy receives the running gyroscope matrix (previous fused
orientation with the latest gyroscope increment composed on) and the
latest accel/mag matrix, and returns the fused matrix. The session
feeds the fused matrix back as the next running gyroscope matrix.
"""

import logging
from typing import Protocol

import numpy as np
from numpy.typing import NDArray

from ..core.config import Config, KalmanConfig, check_coefficient, check_kalman_noise
from ..core.errors import InvalidConfiguration
from ..core.rotation import RotationOps
from ..core.types import Quaternion, RotationMatrix, OrientationVector

logger = logging.getLogger(__name__)


class FusionStrategy(Protocol):
    """Interface shared by the fusion strategies."""

    name: str

    def fuse(
        self,
        gyro_matrix: RotationMatrix,
        static_matrix: RotationMatrix,
        dt_s: float,
    ) -> RotationMatrix:
        """Combine both orientations into the fused orientation."""
        ...

    def set_coefficient(self, coefficient: float) -> None:
        """Update the blend coefficient, already validated to (0, 1]."""
        ...

    def reset(self) -> None:
        """Forget any internal filter state."""
        ...


def complementary_blend(
    gyro_matrix: RotationMatrix,
    static_matrix: RotationMatrix,
    coefficient: float,
) -> RotationMatrix:
    """Weighted element-wise sum ``c * gyro + (1 - c) * static``.

    This is a linear combination of matrix entries, not an
    interpolation on the rotation group: the result is not guaranteed
    to be orthonormal. The departure stays small when the blend is
    applied at every short gyroscope step with ``c`` close to 1, and
    grows with low coefficients or low sample rates.
    """
    return gyro_matrix.scaled(coefficient) + static_matrix.scaled(1.0 - coefficient)


def complementary_fuse(
    gyro_matrix: RotationMatrix,
    static_matrix: RotationMatrix,
    coefficient: float,
) -> OrientationVector:
    """Blend both matrices and decompose the result into angles."""
    blended = complementary_blend(gyro_matrix, static_matrix, coefficient)
    return RotationOps.orientation_from_matrix(blended)


class ComplementaryFusion:
    """Complementary filter on rotation matrices.

    ``coefficient = 1`` keeps pure gyroscope integration; values
    toward 0 follow the accel/mag orientation.
    """

    name = "complementary"

    def __init__(self, coefficient: float = 0.5):
        self._coefficient = check_coefficient(coefficient)

    @property
    def coefficient(self) -> float:
        """Weight of the gyroscope orientation, in (0, 1]."""
        return self._coefficient

    def set_coefficient(self, coefficient: float) -> None:
        self._coefficient = check_coefficient(coefficient)

    def fuse(
        self,
        gyro_matrix: RotationMatrix,
        static_matrix: RotationMatrix,
        dt_s: float,
    ) -> RotationMatrix:
        return complementary_blend(gyro_matrix, static_matrix, self._coefficient)

    def reset(self) -> None:
        pass


class KalmanFusion:
    """Linear Kalman filter on the orientation quaternion.

    State: q = [w, x, y, z]

    Process model:
    - Prediction: quaternion of the gyroscope-propagated matrix
    - Process noise: ``process_noise * dt`` on each component

    Measurement model:
    - Quaternion of the accel/mag matrix, sign-aligned to the
      prediction so both lie on the same hemisphere

    The corrected quaternion is normalized, so unlike the
    complementary blend the fused matrix is always orthonormal.
    """

    name = "kalman"

    def __init__(
        self,
        process_noise: float = 1e-3,
        measurement_noise: float = 1e-1,
        initial_covariance: float = 0.1,
    ):
        """Initialize the filter.

        Args:
            process_noise: Quaternion process noise density per second.
            measurement_noise: Accel/mag quaternion measurement variance.
            initial_covariance: Initial variance of each component.
        """
        self.Q, self.R = check_kalman_noise(process_noise, measurement_noise)
        self._initial_covariance = initial_covariance
        self.P = np.eye(4) * initial_covariance
        self.update_count = 0

    def set_coefficient(self, coefficient: float) -> None:
        """Accepted for interface compatibility; the Kalman gain
        takes the place of a fixed coefficient."""
        logger.debug("Kalman fusion ignores coefficient %.3f", coefficient)

    def fuse(
        self,
        gyro_matrix: RotationMatrix,
        static_matrix: RotationMatrix,
        dt_s: float,
    ) -> RotationMatrix:
        q_pred = RotationOps.matrix_to_quaternion(gyro_matrix).to_array()
        z = RotationOps.matrix_to_quaternion(static_matrix).to_array()

        # q and -q are the same rotation
        if np.dot(q_pred, z) < 0.0:
            z = -z

        self.P = self.P + np.eye(4) * self.Q * max(dt_s, 0.0)

        S = self.P + np.eye(4) * self.R
        K = self.P @ np.linalg.inv(S)

        q = q_pred + K @ (z - q_pred)
        q = q / np.linalg.norm(q)

        I_KH = np.eye(4) - K
        # Joseph form keeps P symmetric positive definite
        self.P = I_KH @ self.P @ I_KH.T + K @ (np.eye(4) * self.R) @ K.T
        self.P = self._ensure_spd(self.P)

        self.update_count += 1
        return RotationOps.quaternion_to_matrix(Quaternion.from_array(q))

    def reset(self) -> None:
        """Restore the initial covariance."""
        self.P = np.eye(4) * self._initial_covariance
        self.update_count = 0

    @staticmethod
    def _ensure_spd(P: NDArray[np.float64]) -> NDArray[np.float64]:
        """Ensure matrix is symmetric positive definite."""
        P = (P + P.T) / 2.0

        eigvals = np.linalg.eigvalsh(P)
        min_eig = np.min(eigvals)
        if min_eig < 1e-10:
            P = P + np.eye(P.shape[0]) * (1e-10 - min_eig)

        return P


def create_strategy(config: Config) -> FusionStrategy:
    """Build the strategy named by ``config.fusion.strategy``.

    Raises:
        InvalidConfiguration: If the name is unknown.
    """
    fusion = config.fusion
    if fusion.strategy == ComplementaryFusion.name:
        return ComplementaryFusion(coefficient=fusion.coefficient)
    if fusion.strategy == KalmanFusion.name:
        kalman: KalmanConfig = fusion.kalman
        return KalmanFusion(
            process_noise=kalman.process_noise,
            measurement_noise=kalman.measurement_noise,
        )
    raise InvalidConfiguration(f"Unknown fusion strategy {fusion.strategy!r}")
