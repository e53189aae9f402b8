"""Gyroscope integration by axis-angle rotation increments.

Each angular velocity sample is turned into an incremental rotation
over the sample period: the normalized rate vector is the axis,
``|omega| * dt`` the angle. The increment goes through a quaternion
into a rotation matrix and is composed on the right of the running
orientation, i.e. in the body frame.

The running matrix is never re-orthonormalized. Rounding error in
its orthonormality accumulates over long runs; this is accepted.
"""

import math

from ..core.rotation import RotationOps
from ..core.types import Vector3, Quaternion, RotationMatrix

EPSILON = 1e-9


def delta_quaternion(omega: Vector3, dt_s: float) -> Quaternion:
    """Rotation quaternion for ``omega`` applied over ``dt_s`` seconds.

    Rates with magnitude at or below EPSILON give the identity.
    """
    magnitude = omega.norm
    if magnitude <= EPSILON:
        return Quaternion.identity()

    axis_x = omega.x / magnitude
    axis_y = omega.y / magnitude
    axis_z = omega.z / magnitude

    half_angle = magnitude * dt_s / 2.0
    sin_half = math.sin(half_angle)

    return Quaternion(
        w=math.cos(half_angle),
        x=sin_half * axis_x,
        y=sin_half * axis_y,
        z=sin_half * axis_z,
    )


def delta_rotation(omega: Vector3, dt_s: float) -> RotationMatrix:
    """Rotation matrix for ``omega`` applied over ``dt_s`` seconds."""
    return RotationOps.quaternion_to_matrix(delta_quaternion(omega, dt_s))


def integrate(current: RotationMatrix, omega: Vector3, dt_s: float) -> RotationMatrix:
    """Compose one gyroscope step onto ``current``.

    Args:
        current: Accumulated orientation.
        omega: Angular velocity in rad/s, device frame.
        dt_s: Sample period in seconds.

    Returns:
        ``current @ delta``.
    """
    return current @ delta_rotation(omega, dt_s)

