"""Configuration management for orientation fusion."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple
import math
import os

import yaml

from .errors import InvalidConfiguration

STRATEGIES = ("complementary", "kalman")


@dataclass
class AccelerometerConfig:
    """Accelerometer reference configuration."""
    gravity_nominal: float = 9.81
    gravity_tolerance: float = 2.0


@dataclass
class MagnetometerConfig:
    """Magnetometer reference configuration."""
    # Minimum sine of the angle between field and gravity
    min_field_gravity_sine: float = 0.1


@dataclass
class GyroscopeConfig:
    """Gyroscope stream selection."""
    use_calibrated: bool = True


@dataclass
class SensorConfig:
    """Sensor configuration."""
    accelerometer: AccelerometerConfig = field(default_factory=AccelerometerConfig)
    magnetometer: MagnetometerConfig = field(default_factory=MagnetometerConfig)
    gyroscope: GyroscopeConfig = field(default_factory=GyroscopeConfig)


@dataclass
class KalmanConfig:
    """Quaternion Kalman strategy noise configuration."""
    process_noise: float = 1e-3
    measurement_noise: float = 1e-1


@dataclass
class FusionConfig:
    """Fusion strategy configuration."""
    strategy: str = "complementary"
    coefficient: float = 0.5
    kalman: KalmanConfig = field(default_factory=KalmanConfig)


@dataclass
class SmoothingConfig:
    """Mean filter smoothing configuration."""
    enabled: bool = False
    time_constant_s: float = 0.5


@dataclass
class TimestampValidationConfig:
    """Timestamp validation configuration."""
    max_dt_s: float = 0.1


@dataclass
class MatrixValidationConfig:
    """Rotation matrix validation configuration."""
    orthonormality_tolerance: float = 1e-4


@dataclass
class ValidationConfig:
    """Validation configuration."""
    timestamp: TimestampValidationConfig = field(default_factory=TimestampValidationConfig)
    matrix: MatrixValidationConfig = field(default_factory=MatrixValidationConfig)


@dataclass
class Config:
    """Complete configuration for an orientation session."""
    sensor: SensorConfig = field(default_factory=SensorConfig)
    fusion: FusionConfig = field(default_factory=FusionConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)


def _as_float(value, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise InvalidConfiguration(f"{name} must be a number, got {value!r}") from e


def check_coefficient(coefficient: float) -> float:
    """Return ``coefficient`` if it lies in (0, 1].

    Raises:
        InvalidConfiguration: If not a number or outside the legal range.
    """
    value = _as_float(coefficient, "Filter coefficient")
    if not math.isfinite(value) or not 0.0 < value <= 1.0:
        raise InvalidConfiguration(
            f"Filter coefficient must be in (0, 1], got {coefficient}"
        )
    return value


def check_time_constant(time_constant_s: float) -> float:
    """Return ``time_constant_s`` if it is a positive finite number.

    Raises:
        InvalidConfiguration: If not a number or not strictly positive.
    """
    value = _as_float(time_constant_s, "Smoothing time constant")
    if not math.isfinite(value) or value <= 0.0:
        raise InvalidConfiguration(
            f"Smoothing time constant must be > 0 s, got {time_constant_s}"
        )
    return value


def check_kalman_noise(process_noise: float, measurement_noise: float) -> Tuple[float, float]:
    """Return both noise values if finite with process >= 0 and measurement > 0.

    Raises:
        InvalidConfiguration: If either value is not a number or out of range.
    """
    q = _as_float(process_noise, "Kalman process_noise")
    r = _as_float(measurement_noise, "Kalman measurement_noise")
    if not (math.isfinite(q) and math.isfinite(r)) or q < 0.0 or r <= 0.0:
        raise InvalidConfiguration(
            "Kalman noise must satisfy process_noise >= 0 and "
            f"measurement_noise > 0, got {process_noise}, {measurement_noise}"
        )
    return q, r


def validate_config(config: Config) -> Config:
    """Check every range-limited setting of ``config``.

    Args:
        config: Configuration to check.

    Returns:
        The same configuration object.

    Raises:
        InvalidConfiguration: On the first out-of-range setting.
    """
    check_coefficient(config.fusion.coefficient)
    check_time_constant(config.smoothing.time_constant_s)

    if config.fusion.strategy not in STRATEGIES:
        raise InvalidConfiguration(
            f"Unknown fusion strategy {config.fusion.strategy!r}, "
            f"expected one of {STRATEGIES}"
        )

    kalman = config.fusion.kalman
    check_kalman_noise(kalman.process_noise, kalman.measurement_noise)

    acc = config.sensor.accelerometer
    gravity = (_as_float(acc.gravity_nominal, "gravity_nominal"),
               _as_float(acc.gravity_tolerance, "gravity_tolerance"))
    if not all(math.isfinite(g) and g > 0.0 for g in gravity):
        raise InvalidConfiguration(
            f"Gravity reference must be positive, got "
            f"{acc.gravity_nominal} +/- {acc.gravity_tolerance}"
        )

    sine = _as_float(config.sensor.magnetometer.min_field_gravity_sine,
                     "min_field_gravity_sine")
    if not 0.0 <= sine < 1.0:
        raise InvalidConfiguration(
            f"min_field_gravity_sine must be in [0, 1), got {sine}"
        )

    max_dt = _as_float(config.validation.timestamp.max_dt_s, "max_dt_s")
    if not math.isfinite(max_dt) or max_dt <= 0.0:
        raise InvalidConfiguration(
            f"max_dt_s must be > 0, got {config.validation.timestamp.max_dt_s}"
        )

    return config


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file. If None, uses the
            ORIENTATION_FUSION_CONFIG environment variable, then the
            repository default, then built-in defaults.

    Returns:
        Validated configuration object.

    Raises:
        FileNotFoundError: If specified config file doesn't exist.
        InvalidConfiguration: If a setting is out of range.
    """
    if config_path is None:
        env_path = os.environ.get("ORIENTATION_FUSION_CONFIG")
        if env_path:
            config_path = env_path
        else:
            default_path = Path(__file__).parent.parent.parent / "config" / "default.yaml"
            if default_path.exists():
                config_path = str(default_path)
            else:
                return Config()

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return Config()

    return validate_config(_build_config(data))


def _build_config(data: dict) -> Config:
    """Build Config object from dictionary."""
    sensor_data = data.get("sensor", {})
    sensor = SensorConfig(
        accelerometer=AccelerometerConfig(**sensor_data.get("accelerometer", {})),
        magnetometer=MagnetometerConfig(**sensor_data.get("magnetometer", {})),
        gyroscope=GyroscopeConfig(**sensor_data.get("gyroscope", {})),
    )

    fusion_data = data.get("fusion", {})
    fusion = FusionConfig(
        strategy=fusion_data.get("strategy", "complementary"),
        coefficient=fusion_data.get("coefficient", 0.5),
        kalman=KalmanConfig(**fusion_data.get("kalman", {})),
    )

    smoothing = SmoothingConfig(**data.get("smoothing", {}))

    val_data = data.get("validation", {})
    validation = ValidationConfig(
        timestamp=TimestampValidationConfig(**val_data.get("timestamp", {})),
        matrix=MatrixValidationConfig(**val_data.get("matrix", {})),
    )

    return Config(
        sensor=sensor,
        fusion=fusion,
        smoothing=smoothing,
        validation=validation,
    )
