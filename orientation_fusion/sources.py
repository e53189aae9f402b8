"""Sample sources for driving an orientation session without hardware.

- SyntheticSensorSource: simulated device turning about a fixed axis
- SampleRecording: recorded sample streams stored as JSON for replay
"""

import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation

from .core.types import SensorType, SensorSample, Vector3, RotationMatrix

logger = logging.getLogger(__name__)

NS_PER_S = 1_000_000_000

# Stream order for samples sharing a timestamp: the accelerometer
# must see the magnetometer vector of the same instant.
_STREAM_ORDER = {
    SensorType.MAGNETIC_FIELD: 0,
    SensorType.ACCELEROMETER: 1,
    SensorType.GYROSCOPE: 2,
    SensorType.GYROSCOPE_UNCALIBRATED: 2,
}


class SyntheticSensorSource:
    """Simulated device rotating at constant rate about a world axis.

    World frame is East-North-Up. At rest the accelerometer measures
    +g along Up and the magnetometer measures the local field, which
    points North and dips below the horizon.
    """

    def __init__(
        self,
        rate_rad_s: float = 0.0,
        axis: tuple = (0.0, 0.0, 1.0),
        initial: Optional[Rotation] = None,
        gyro_rate_hz: float = 100.0,
        acc_rate_hz: float = 50.0,
        mag_rate_hz: float = 50.0,
        gravity: float = 9.81,
        field_ut: tuple = (0.0, 22.0, -42.0),
        acc_noise: float = 0.0,
        gyr_noise: float = 0.0,
        mag_noise: float = 0.0,
        gyr_bias: tuple = (0.0, 0.0, 0.0),
        seed: int = 42,
        start_ns: int = NS_PER_S,
    ):
        """Initialize the simulation.

        Args:
            rate_rad_s: Rotation rate about ``axis``.
            axis: World-frame rotation axis, normalized internally.
            initial: Device-to-world rotation at t=0, identity if None.
            gyro_rate_hz: Gyroscope sample rate.
            acc_rate_hz: Accelerometer sample rate.
            mag_rate_hz: Magnetometer sample rate.
            gravity: Gravity magnitude in m/s^2.
            field_ut: World magnetic field [E, N, U] in uT.
            acc_noise: Accelerometer noise standard deviation.
            gyr_noise: Gyroscope noise standard deviation.
            mag_noise: Magnetometer noise standard deviation.
            gyr_bias: Constant gyroscope bias in rad/s.
            seed: Noise generator seed.
            start_ns: Timestamp of the first sample.
        """
        axis_arr = np.asarray(axis, dtype=np.float64)
        self._axis = axis_arr / np.linalg.norm(axis_arr)
        self._rate = float(rate_rad_s)
        self._initial = initial if initial is not None else Rotation.identity()
        self._rates = {
            SensorType.GYROSCOPE: gyro_rate_hz,
            SensorType.ACCELEROMETER: acc_rate_hz,
            SensorType.MAGNETIC_FIELD: mag_rate_hz,
        }
        self._gravity = np.array([0.0, 0.0, gravity])
        self._field = np.asarray(field_ut, dtype=np.float64)
        self._noise = {
            SensorType.GYROSCOPE: gyr_noise,
            SensorType.ACCELEROMETER: acc_noise,
            SensorType.MAGNETIC_FIELD: mag_noise,
        }
        self._gyr_bias = np.asarray(gyr_bias, dtype=np.float64)
        self._rng = np.random.default_rng(seed)
        self._start_ns = int(start_ns)

    def attitude(self, t_s: float) -> Rotation:
        """Device-to-world rotation at ``t_s`` seconds."""
        turn = Rotation.from_rotvec(self._axis * self._rate * t_s)
        return turn * self._initial

    def true_matrix(self, t_s: float) -> RotationMatrix:
        """Device-to-world rotation matrix at ``t_s`` seconds."""
        return RotationMatrix.from_array(self.attitude(t_s).as_matrix())

    def timestamp_ns(self, t_s: float) -> int:
        """Sample timestamp for ``t_s`` seconds after the start."""
        return self._start_ns + int(round(t_s * NS_PER_S))

    def samples(self, duration_s: float) -> List[SensorSample]:
        """Generate every stream for ``duration_s`` seconds, time ordered."""
        out: List[SensorSample] = []

        for sensor, rate_hz in self._rates.items():
            if rate_hz <= 0:
                continue
            count = int(np.floor(duration_s * rate_hz)) + 1
            for i in range(count):
                t_s = i / rate_hz
                out.append(SensorSample(
                    sensor=sensor,
                    values=Vector3.from_array(self._measure(sensor, t_s)),
                    timestamp_ns=self.timestamp_ns(t_s),
                ))

        out.sort(key=lambda s: (s.timestamp_ns, _STREAM_ORDER[s.sensor]))
        return out

    def _measure(self, sensor: SensorType, t_s: float) -> NDArray[np.float64]:
        """Ideal device-frame reading plus noise."""
        to_device = self.attitude(t_s).inv()

        if sensor is SensorType.ACCELEROMETER:
            ideal = to_device.apply(self._gravity)
        elif sensor is SensorType.MAGNETIC_FIELD:
            ideal = to_device.apply(self._field)
        else:
            ideal = to_device.apply(self._axis * self._rate) + self._gyr_bias

        noise = self._noise[sensor]
        if noise > 0:
            ideal = ideal + self._rng.normal(0, noise, 3)
        return ideal


@dataclass
class SampleRecording:
    """Recorded sensor streams for offline replay."""
    description: str = ""
    samples: List[SensorSample] = field(default_factory=list)

    @property
    def duration_s(self) -> float:
        """Time spanned by the samples."""
        if len(self.samples) < 2:
            return 0.0
        return (self.samples[-1].timestamp_ns - self.samples[0].timestamp_ns) / NS_PER_S

    def save(self, filepath: str) -> None:
        """Save recording to JSON file."""
        data = {
            "description": self.description,
            "sample_count": len(self.samples),
            "samples": [
                {
                    "sensor": s.sensor.value,
                    "timestamp_ns": s.timestamp_ns,
                    "x": s.values.x,
                    "y": s.values.y,
                    "z": s.values.z,
                }
                for s in self.samples
            ],
        }
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        logger.info("Saved %d samples to %s", len(self.samples), filepath)

    @classmethod
    def load(cls, filepath: str) -> "SampleRecording":
        """Load recording from JSON file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If an entry names an unknown sensor.
        """
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)

        samples = [
            SensorSample(
                sensor=SensorType(s["sensor"]),
                values=Vector3(x=float(s["x"]), y=float(s["y"]), z=float(s["z"])),
                timestamp_ns=int(s["timestamp_ns"]),
            )
            for s in data["samples"]
        ]
        samples.sort(key=lambda s: (s.timestamp_ns, _STREAM_ORDER[s.sensor]))
        return cls(description=data.get("description", ""), samples=samples)
