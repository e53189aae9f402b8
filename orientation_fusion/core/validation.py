"""Input validation for sensor samples and filter state."""

import numpy as np

from .types import SensorType, Vector3, RotationMatrix, ValidationResult
from .config import Config


def validate_vector(values: Vector3, sensor: SensorType) -> ValidationResult:
    """Check a sensor vector can enter the filter.

    Args:
        values: Sensor vector.
        sensor: Stream the vector came from, used in messages.

    Returns:
        ValidationResult with status.
    """
    result = ValidationResult(is_valid=True)

    for axis, val in zip("xyz", (values.x, values.y, values.z)):
        if not np.isfinite(val):
            result.add_error(f"Non-finite {sensor.value} {axis}: {val}")

    return result


def validate_dt(dt: float, config: Config) -> ValidationResult:
    """Validate time step for a gyroscope integration step.

    Args:
        dt: Time step in seconds.
        config: System configuration.

    Returns:
        ValidationResult with status.
    """
    result = ValidationResult(is_valid=True)
    cfg = config.validation.timestamp

    if not np.isfinite(dt):
        result.add_error(f"Non-finite dt: {dt}")
    elif dt <= 0:
        result.add_error(f"Non-positive dt: {dt}")
    elif dt > cfg.max_dt_s:
        result.add_warning(f"dt too large: {dt*1000:.2f}ms")

    return result


def validate_matrix(matrix: RotationMatrix, config: Config) -> ValidationResult:
    """Check how far a matrix has departed from a proper rotation.

    Departure is reported as a warning only: integration and the
    complementary blend are allowed to drift.

    Args:
        matrix: Matrix to check.
        config: System configuration.

    Returns:
        ValidationResult with status.
    """
    result = ValidationResult(is_valid=True)

    if not matrix.is_finite():
        result.add_error("Rotation matrix contains non-finite values")
        return result

    tolerance = config.validation.matrix.orthonormality_tolerance
    error = matrix.orthonormality_error()
    if error > tolerance:
        result.add_warning(f"Orthonormality drift: {error:.2e}")

    det = matrix.determinant
    if abs(det - 1.0) > tolerance:
        result.add_warning(f"Determinant drift: det={det:.6f}")

    return result
