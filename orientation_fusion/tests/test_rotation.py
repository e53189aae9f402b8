"""Tests for rotation types and conversions."""

import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal, assert_allclose
from scipy.spatial.transform import Rotation

from orientation_fusion.core.types import Quaternion, RotationMatrix, OrientationVector
from orientation_fusion.core.rotation import RotationOps


def rz(angle: float) -> RotationMatrix:
    """Rotation about +Z by ``angle`` radians."""
    return RotationMatrix.from_array(Rotation.from_rotvec([0.0, 0.0, angle]).as_matrix())


class TestRotationMatrix:
    """RotationMatrix value type."""

    def test_requires_nine_values(self):
        """Test wrong element count is rejected."""
        with pytest.raises(ValueError):
            RotationMatrix(values=(1.0,) * 8)

    def test_identity(self, identity_matrix):
        """Test identity matrix is orthonormal with unit determinant."""
        assert_array_almost_equal(identity_matrix.to_array(), np.eye(3))
        assert identity_matrix.is_orthonormal()
        assert abs(identity_matrix.determinant - 1.0) < 1e-12

    def test_indexing_is_row_major(self):
        """Test (row, col) indexing follows row-major storage."""
        m = RotationMatrix(values=tuple(float(i) for i in range(9)))
        assert m[0, 1] == 1.0
        assert m[1, 0] == 3.0
        assert m[2, 1] == 7.0

    def test_matmul_composes(self):
        """Test two yaw rotations compose to their sum."""
        result = rz(0.3) @ rz(0.4)
        assert_allclose(result.to_array(), rz(0.7).to_array(), atol=1e-12)

    def test_element_wise_blend_is_not_orthonormal(self):
        """Test half-half blend of distinct rotations leaves SO(3)."""
        blended = rz(0.0).scaled(0.5) + rz(np.pi / 2).scaled(0.5)
        assert not blended.is_orthonormal()
        assert blended.orthonormality_error() > 0.1

    def test_transposed_inverts(self, yaw_30_matrix):
        """Test transpose is the inverse of an orthonormal matrix."""
        product = yaw_30_matrix @ yaw_30_matrix.transposed()
        assert_allclose(product.to_array(), np.eye(3), atol=1e-12)

    def test_non_finite(self):
        """Test NaN entries are detected."""
        values = list(np.eye(3).reshape(9))
        values[4] = float("nan")
        m = RotationMatrix(values=tuple(values))
        assert not m.is_finite()
        assert not m.is_orthonormal()


class TestQuaternionToMatrix:
    """Quaternion to matrix conversion."""

    def test_identity(self):
        """Test identity quaternion gives identity matrix."""
        m = RotationOps.quaternion_to_matrix(Quaternion.identity())
        assert_array_almost_equal(m.to_array(), np.eye(3))

    def test_yaw_90(self):
        """Test 90 deg about Z gives the standard Rz matrix."""
        half = np.pi / 4
        q = Quaternion(w=np.cos(half), x=0.0, y=0.0, z=np.sin(half))
        m = RotationOps.quaternion_to_matrix(q)
        expected = np.array([
            [0.0, -1.0, 0.0],
            [1.0, 0.0, 0.0],
            [0.0, 0.0, 1.0],
        ])
        assert_allclose(m.to_array(), expected, atol=1e-12)

    def test_matches_scipy(self):
        """Test conversion agrees with scipy for an arbitrary rotation."""
        rot = Rotation.from_euler("zyx", [40, -20, 65], degrees=True)
        x, y, z, w = rot.as_quat()
        m = RotationOps.quaternion_to_matrix(Quaternion(w=w, x=x, y=y, z=z))
        assert_allclose(m.to_array(), rot.as_matrix(), atol=1e-12)

    def test_matrix_to_quaternion_recovers_rotation(self):
        """Test matrix to quaternion then back reproduces the matrix."""
        rot = Rotation.from_euler("xyz", [170, 10, -95], degrees=True)
        matrix = RotationMatrix.from_array(rot.as_matrix())
        q = RotationOps.matrix_to_quaternion(matrix)
        assert q.norm == pytest.approx(1.0, abs=1e-12)
        back = RotationOps.quaternion_to_matrix(q)
        assert_allclose(back.to_array(), rot.as_matrix(), atol=1e-10)


class TestOrientationFromMatrix:
    """Azimuth/pitch/roll decomposition."""

    def test_identity_is_zero(self, identity_matrix):
        """Test identity decomposes to zero angles."""
        o = RotationOps.orientation_from_matrix(identity_matrix)
        assert_allclose(o.to_array(), [0.0, 0.0, 0.0], atol=1e-12)

    def test_positive_yaw_lowers_azimuth(self, yaw_30_matrix):
        """Test azimuth is clockwise: +30 deg about Z reads -30 deg."""
        o = RotationOps.orientation_from_matrix(yaw_30_matrix)
        assert o.azimuth_deg == pytest.approx(-30.0)
        assert o.pitch == pytest.approx(0.0, abs=1e-12)
        assert o.roll == pytest.approx(0.0, abs=1e-12)

    def test_pitch_about_x(self):
        """Test a rotation about X appears as pitch."""
        m = RotationMatrix.from_array(Rotation.from_euler("x", 20, degrees=True).as_matrix())
        o = RotationOps.orientation_from_matrix(m)
        assert o.pitch_deg == pytest.approx(-20.0)
        assert o.azimuth == pytest.approx(0.0, abs=1e-12)

    def test_pitch_argument_is_clipped(self):
        """Test |R21| slightly above 1 still yields a finite pitch."""
        values = [0.0] * 9
        values[0] = 1.0
        values[5] = 1.0
        values[7] = -1.0000001
        o = RotationOps.orientation_from_matrix(RotationMatrix(values=tuple(values)))
        assert np.isfinite(o.pitch)
        assert o.pitch == pytest.approx(np.pi / 2)


class TestAngleBetween:
    """Rotation distance."""

    def test_same_rotation(self, yaw_30_matrix):
        """Test distance to itself is zero."""
        assert RotationOps.angle_between(yaw_30_matrix, yaw_30_matrix) == pytest.approx(0.0, abs=1e-6)

    def test_yaw_difference(self):
        """Test distance between two yaws is their difference."""
        angle = RotationOps.angle_between(rz(0.2), rz(0.9))
        assert angle == pytest.approx(0.7, abs=1e-9)


class TestOrientationVector:
    """OrientationVector helpers."""

    def test_zero(self):
        """Test zero orientation."""
        assert OrientationVector.zero().to_array().tolist() == [0.0, 0.0, 0.0]

    def test_to_dict_has_degrees(self):
        """Test dictionary form carries radians and degrees."""
        d = OrientationVector(azimuth=np.pi, pitch=0.0, roll=-np.pi / 2).to_dict()
        assert d["azimuth_deg"] == pytest.approx(180.0)
        assert d["roll_deg"] == pytest.approx(-90.0)
        assert d["pitch"] == 0.0


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
