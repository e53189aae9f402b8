"""Data types for orientation fusion."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple
import numpy as np
from numpy.typing import NDArray


class SensorType(Enum):
    """Sensor streams accepted by an orientation session."""
    ACCELEROMETER = "accelerometer"
    MAGNETIC_FIELD = "magnetic_field"
    GYROSCOPE = "gyroscope"
    GYROSCOPE_UNCALIBRATED = "gyroscope_uncalibrated"


@dataclass(frozen=True)
class Vector3:
    """Three-axis sensor vector in the device frame.

    Units depend on the stream:
    - Accelerometer: m/s^2
    - Magnetometer: uT (microtesla)
    - Gyroscope: rad/s
    """
    x: float
    y: float
    z: float

    @classmethod
    def zero(cls) -> "Vector3":
        """Return the zero vector."""
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def from_array(cls, arr: NDArray[np.float64]) -> "Vector3":
        """Create from numpy array [x, y, z]."""
        return cls(x=float(arr[0]), y=float(arr[1]), z=float(arr[2]))

    def to_array(self) -> NDArray[np.float64]:
        """Convert to numpy array [x, y, z]."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @property
    def norm(self) -> float:
        """Euclidean norm of the vector."""
        return float(np.sqrt(self.x**2 + self.y**2 + self.z**2))

    def is_finite(self) -> bool:
        """Check all components are finite."""
        return bool(np.all(np.isfinite([self.x, self.y, self.z])))


@dataclass(frozen=True)
class RotationMatrix:
    """3x3 rotation matrix stored as 9 row-major values.

    Composition is matrix multiplication (``a @ b``). Element-wise
    ``scaled`` and ``+`` exist only for the complementary blend, whose
    result is not guaranteed to stay orthonormal.
    """
    values: Tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.values) != 9:
            raise ValueError(f"RotationMatrix needs 9 values, got {len(self.values)}")

    @classmethod
    def identity(cls) -> "RotationMatrix":
        """Return identity matrix (no rotation)."""
        return cls.from_array(np.eye(3))

    @classmethod
    def from_array(cls, arr: NDArray[np.float64]) -> "RotationMatrix":
        """Create from a 3x3 numpy array."""
        flat = np.asarray(arr, dtype=np.float64).reshape(9)
        return cls(values=tuple(float(v) for v in flat))

    @classmethod
    def from_rows(
        cls,
        row0: NDArray[np.float64],
        row1: NDArray[np.float64],
        row2: NDArray[np.float64],
    ) -> "RotationMatrix":
        """Create from three row vectors."""
        return cls.from_array(np.vstack([row0, row1, row2]))

    def to_array(self) -> NDArray[np.float64]:
        """Convert to a 3x3 numpy array."""
        return np.array(self.values, dtype=np.float64).reshape(3, 3)

    def __getitem__(self, index: Tuple[int, int]) -> float:
        row, col = index
        return self.values[row * 3 + col]

    def __matmul__(self, other: "RotationMatrix") -> "RotationMatrix":
        return RotationMatrix.from_array(self.to_array() @ other.to_array())

    def __add__(self, other: "RotationMatrix") -> "RotationMatrix":
        return RotationMatrix(
            values=tuple(a + b for a, b in zip(self.values, other.values))
        )

    def scaled(self, factor: float) -> "RotationMatrix":
        """Return a copy with every element multiplied by ``factor``."""
        return RotationMatrix(values=tuple(v * factor for v in self.values))

    def transposed(self) -> "RotationMatrix":
        """Return the transpose (the inverse rotation when orthonormal)."""
        return RotationMatrix.from_array(self.to_array().T)

    @property
    def determinant(self) -> float:
        """Determinant of the matrix."""
        return float(np.linalg.det(self.to_array()))

    def orthonormality_error(self) -> float:
        """Largest absolute entry of R^T R - I."""
        m = self.to_array()
        return float(np.max(np.abs(m.T @ m - np.eye(3))))

    def is_orthonormal(self, tolerance: float = 1e-4) -> bool:
        """Check R^T R = I and det(R) = 1 within tolerance."""
        return (
            self.is_finite()
            and self.orthonormality_error() < tolerance
            and abs(self.determinant - 1.0) < tolerance
        )

    def is_finite(self) -> bool:
        """Check all entries are finite."""
        return bool(np.all(np.isfinite(self.values)))


@dataclass(frozen=True)
class Quaternion:
    """Quaternion representing a rotation.

    Convention: [w, x, y, z] where w is the scalar component.
    """
    w: float
    x: float
    y: float
    z: float

    @classmethod
    def identity(cls) -> "Quaternion":
        """Return identity quaternion (no rotation)."""
        return cls(w=1.0, x=0.0, y=0.0, z=0.0)

    @classmethod
    def from_array(cls, arr: NDArray[np.float64]) -> "Quaternion":
        """Create from numpy array [w, x, y, z]."""
        return cls(w=float(arr[0]), x=float(arr[1]),
                   y=float(arr[2]), z=float(arr[3]))

    def to_array(self) -> NDArray[np.float64]:
        """Convert to numpy array [w, x, y, z]."""
        return np.array([self.w, self.x, self.y, self.z], dtype=np.float64)

    @property
    def norm(self) -> float:
        """Euclidean norm of quaternion."""
        return float(np.sqrt(self.w**2 + self.x**2 + self.y**2 + self.z**2))

    def normalized(self) -> "Quaternion":
        """Return normalized copy."""
        n = self.norm
        if n < 1e-10:
            return Quaternion.identity()
        return Quaternion(w=self.w/n, x=self.x/n, y=self.y/n, z=self.z/n)


@dataclass(frozen=True)
class OrientationVector:
    """Orientation angles in radians.

    Host platform convention: azimuth about Z, pitch about X,
    roll about Y.
    """
    azimuth: float
    pitch: float
    roll: float

    @classmethod
    def zero(cls) -> "OrientationVector":
        """Orientation reported before the first fused update."""
        return cls(azimuth=0.0, pitch=0.0, roll=0.0)

    @property
    def azimuth_deg(self) -> float:
        """Azimuth angle in degrees."""
        return float(np.rad2deg(self.azimuth))

    @property
    def pitch_deg(self) -> float:
        """Pitch angle in degrees."""
        return float(np.rad2deg(self.pitch))

    @property
    def roll_deg(self) -> float:
        """Roll angle in degrees."""
        return float(np.rad2deg(self.roll))

    def to_array(self) -> NDArray[np.float64]:
        """Convert to numpy array [azimuth, pitch, roll]."""
        return np.array([self.azimuth, self.pitch, self.roll], dtype=np.float64)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "azimuth": self.azimuth,
            "pitch": self.pitch,
            "roll": self.roll,
            "azimuth_deg": self.azimuth_deg,
            "pitch_deg": self.pitch_deg,
            "roll_deg": self.roll_deg,
        }


@dataclass(frozen=True)
class SensorSample:
    """One timestamped reading from a single sensor stream."""
    sensor: SensorType
    values: Vector3
    timestamp_ns: int  # Monotonic, nanoseconds


@dataclass
class FusionState:
    """Mutable filter state owned by one orientation session."""
    gyro_matrix: RotationMatrix = field(default_factory=RotationMatrix.identity)
    static_matrix: Optional[RotationMatrix] = None
    last_gyro_timestamp_ns: Optional[int] = None
    orientation: OrientationVector = field(default_factory=OrientationVector.zero)

    @property
    def is_reference_valid(self) -> bool:
        """True once a static accel/mag estimate has been computed."""
        return self.static_matrix is not None


@dataclass
class ValidationResult:
    """Result of sensor data validation."""
    is_valid: bool
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.is_valid = False
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


@dataclass
class SessionStats:
    """Counters describing what a session did with its input."""
    samples: Dict[SensorType, int] = field(
        default_factory=lambda: {sensor: 0 for sensor in SensorType}
    )
    rejected_samples: int = 0
    ignored_gyroscope_samples: int = 0
    reference_failures: int = 0
    integration_steps: int = 0
    resets: int = 0

    @property
    def total_samples(self) -> int:
        """Number of samples received across all streams."""
        return sum(self.samples.values())

    @property
    def reference_failure_rate(self) -> float:
        """Fraction of accelerometer samples that produced no reference."""
        acc = self.samples[SensorType.ACCELEROMETER]
        if acc == 0:
            return 0.0
        return self.reference_failures / acc
