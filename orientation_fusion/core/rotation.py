"""Rotation conversions shared by the estimators and fusion strategies."""

import numpy as np

from .types import Quaternion, RotationMatrix, OrientationVector


class RotationOps:
    """Static methods for rotation conversions."""

    @staticmethod
    def quaternion_to_matrix(q: Quaternion) -> RotationMatrix:
        """Convert quaternion to rotation matrix.

        The quaternion is used as given; a non-unit input yields a
        scaled, non-orthonormal matrix.

        Args:
            q: Rotation quaternion [w, x, y, z].

        Returns:
            3x3 rotation matrix.
        """
        w, x, y, z = q.w, q.x, q.y, q.z

        sq_x = 2.0 * x * x
        sq_y = 2.0 * y * y
        sq_z = 2.0 * z * z
        xy = 2.0 * x * y
        zw = 2.0 * z * w
        xz = 2.0 * x * z
        yw = 2.0 * y * w
        yz = 2.0 * y * z
        xw = 2.0 * x * w

        return RotationMatrix(values=(
            1.0 - sq_y - sq_z, xy - zw, xz + yw,
            xy + zw, 1.0 - sq_x - sq_z, yz - xw,
            xz - yw, yz + xw, 1.0 - sq_x - sq_y,
        ))

    @staticmethod
    def matrix_to_quaternion(matrix: RotationMatrix) -> Quaternion:
        """Convert rotation matrix to quaternion.

        Uses Shepperd's method for numerical stability.

        Args:
            matrix: 3x3 rotation matrix.

        Returns:
            Unit quaternion representing the same rotation.
        """
        R = matrix.to_array()
        trace = np.trace(R)

        if trace > 0:
            s = 0.5 / np.sqrt(trace + 1.0)
            w = 0.25 / s
            x = (R[2, 1] - R[1, 2]) * s
            y = (R[0, 2] - R[2, 0]) * s
            z = (R[1, 0] - R[0, 1]) * s
        elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
            s = 2.0 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
            w = (R[2, 1] - R[1, 2]) / s
            x = 0.25 * s
            y = (R[0, 1] + R[1, 0]) / s
            z = (R[0, 2] + R[2, 0]) / s
        elif R[1, 1] > R[2, 2]:
            s = 2.0 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
            w = (R[0, 2] - R[2, 0]) / s
            x = (R[0, 1] + R[1, 0]) / s
            y = 0.25 * s
            z = (R[1, 2] + R[2, 1]) / s
        else:
            s = 2.0 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
            w = (R[1, 0] - R[0, 1]) / s
            x = (R[0, 2] + R[2, 0]) / s
            y = (R[1, 2] + R[2, 1]) / s
            z = 0.25 * s

        q = Quaternion(w=float(w), x=float(x), y=float(y), z=float(z))
        return q.normalized()

    @staticmethod
    def orientation_from_matrix(matrix: RotationMatrix) -> OrientationVector:
        """Decompose a rotation matrix into azimuth, pitch and roll.

        Host platform convention:
        azimuth = atan2(R01, R11), pitch = asin(-R21), roll = atan2(-R20, R22).
        Azimuth grows clockwise seen from above, so a positive rotation
        about +Z lowers it.

        Args:
            matrix: Rotation matrix, device frame to world frame.

        Returns:
            Orientation in radians.
        """
        azimuth = np.arctan2(matrix[0, 1], matrix[1, 1])
        # Blended matrices can leave |R21| slightly above 1
        pitch = np.arcsin(np.clip(-matrix[2, 1], -1.0, 1.0))
        roll = np.arctan2(-matrix[2, 0], matrix[2, 2])

        return OrientationVector(
            azimuth=float(azimuth), pitch=float(pitch), roll=float(roll)
        )

    @staticmethod
    def multiply(q1: Quaternion, q2: Quaternion) -> Quaternion:
        """Multiply two quaternions (Hamilton product).

        Args:
            q1: First quaternion.
            q2: Second quaternion.

        Returns:
            Product quaternion q1 * q2.
        """
        w = q1.w * q2.w - q1.x * q2.x - q1.y * q2.y - q1.z * q2.z
        x = q1.w * q2.x + q1.x * q2.w + q1.y * q2.z - q1.z * q2.y
        y = q1.w * q2.y - q1.x * q2.z + q1.y * q2.w + q1.z * q2.x
        z = q1.w * q2.z + q1.x * q2.y - q1.y * q2.x + q1.z * q2.w
        return Quaternion(w=w, x=x, y=y, z=z)

    @staticmethod
    def conjugate(q: Quaternion) -> Quaternion:
        """Compute quaternion conjugate."""
        return Quaternion(w=q.w, x=-q.x, y=-q.y, z=-q.z)

    @staticmethod
    def angle_between(a: RotationMatrix, b: RotationMatrix) -> float:
        """Compute the rotation angle separating two rotation matrices.

        Args:
            a: First rotation.
            b: Second rotation.

        Returns:
            Angle in radians, in [0, pi].
        """
        qa = RotationOps.matrix_to_quaternion(a)
        qb = RotationOps.matrix_to_quaternion(b)
        q_diff = RotationOps.multiply(qb, RotationOps.conjugate(qa))
        angle = 2.0 * np.arccos(np.clip(abs(q_diff.w), -1.0, 1.0))
        return float(angle)
