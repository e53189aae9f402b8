"""Orientation session: sample ingestion and fusion state machine.

States:
- UNINITIALIZED: nothing received since construction or reset()
- AWAITING_REFERENCE: accel/mag samples arriving, no valid
  accel/mag orientation yet; gyroscope samples are discarded
- TRACKING: gyroscope matrix seeded from the first valid accel/mag
  orientation; gyroscope samples are integrated and fused

The gyroscope matrix is seeded exactly once per reset. Afterwards the
accel/mag orientation only reaches the filter through the strategy.

Sample handlers never raise: samples come from a push source that
cannot retry them.
"""

import logging
from enum import Enum
from typing import Dict, Optional

from ..core.config import Config, check_coefficient, check_time_constant, validate_config
from ..core.errors import InvalidReferenceOrientation
from ..core.rotation import RotationOps
from ..core.types import (
    SensorType,
    SensorSample,
    Vector3,
    OrientationVector,
    FusionState,
    SessionStats,
)
from ..core.validation import validate_vector, validate_dt, validate_matrix
from .gyro_integrator import integrate
from .smoothing import MeanFilterSmoothing
from .static_estimator import StaticOrientationEstimator
from .strategies import FusionStrategy, create_strategy

logger = logging.getLogger(__name__)

NS2S = 1e-9


class SessionState(Enum):
    """Lifecycle of an orientation session."""
    UNINITIALIZED = "uninitialized"
    AWAITING_REFERENCE = "awaiting_reference"
    TRACKING = "tracking"


class OrientationSession:
    """Fuses accelerometer, magnetometer and gyroscope streams.

    Usage:
        session = OrientationSession(config)

        # from the sensor callbacks
        session.on_acceleration_sample(acc, t_ns)
        session.on_magnetic_field_sample(mag, t_ns)
        session.on_angular_velocity_sample(gyr, t_ns)

        orientation = session.get_orientation()
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        strategy: Optional[FusionStrategy] = None,
    ):
        """Initialize the session.

        Args:
            config: System configuration. Defaults are used if None.
            strategy: Fusion strategy. If None, built from
                ``config.fusion``. Must not be shared with another
                session.

        Raises:
            InvalidConfiguration: If the configuration is out of range.
        """
        self._config = validate_config(config or Config())
        self._strategy = strategy or create_strategy(self._config)
        self._estimator = StaticOrientationEstimator(
            accelerometer=self._config.sensor.accelerometer,
            magnetometer=self._config.sensor.magnetometer,
        )

        # An injected strategy keeps its own coefficient
        injected = getattr(strategy, "coefficient", None)
        if injected is None:
            injected = self._config.fusion.coefficient
        self._coefficient = check_coefficient(injected)
        self._use_calibrated = self._config.sensor.gyroscope.use_calibrated
        self._smoothing_enabled = self._config.smoothing.enabled
        time_constant = check_time_constant(self._config.smoothing.time_constant_s)
        self._filters: Dict[SensorType, MeanFilterSmoothing] = {
            SensorType.ACCELEROMETER: MeanFilterSmoothing(time_constant),
            SensorType.MAGNETIC_FIELD: MeanFilterSmoothing(time_constant),
            SensorType.GYROSCOPE: MeanFilterSmoothing(time_constant),
        }

        self._stats = SessionStats()
        self._clear()

    # Sensor callbacks

    def on_acceleration_sample(self, values: Vector3, timestamp_ns: int) -> None:
        """Handle an accelerometer sample (m/s^2).

        Accelerometer samples drive the accel/mag orientation, using
        the most recent magnetometer vector.
        """
        values = self._condition(SensorType.ACCELEROMETER, values, timestamp_ns)
        if values is None:
            return

        self._acceleration = values
        self._mark_samples_arriving()
        self._update_reference()

    def on_magnetic_field_sample(self, values: Vector3, timestamp_ns: int) -> None:
        """Handle a magnetometer sample (uT)."""
        values = self._condition(SensorType.MAGNETIC_FIELD, values, timestamp_ns)
        if values is None:
            return

        self._magnetic_field = values
        self._mark_samples_arriving()

    def on_angular_velocity_sample(
        self,
        values: Vector3,
        timestamp_ns: int,
        calibrated: bool = True,
    ) -> None:
        """Handle a gyroscope sample (rad/s).

        Args:
            values: Angular velocity in the device frame.
            timestamp_ns: Sample timestamp in nanoseconds.
            calibrated: False for the uncalibrated gyroscope stream.
                Only the stream selected in the configuration is used.
        """
        sensor = SensorType.GYROSCOPE if calibrated else SensorType.GYROSCOPE_UNCALIBRATED
        if calibrated != self._use_calibrated:
            self._stats.samples[sensor] += 1
            self._stats.ignored_gyroscope_samples += 1
            return

        values = self._condition(sensor, values, timestamp_ns)
        if values is None:
            return

        # No reference frame to integrate from yet
        if self._state is not SessionState.TRACKING:
            return

        last = self._fusion.last_gyro_timestamp_ns
        if last is None:
            self._fusion.last_gyro_timestamp_ns = timestamp_ns
            return

        dt = (timestamp_ns - last) * NS2S
        dt_check = validate_dt(dt, self._config)
        if not dt_check.is_valid:
            self._stats.rejected_samples += 1
            for error in dt_check.errors:
                logger.warning("Gyroscope sample skipped: %s", error)
            return
        for warning in dt_check.warnings:
            logger.warning("Gyroscope timing: %s", warning)

        # A discarded step keeps the baseline so its interval is not lost
        if self._step(values, dt):
            self._fusion.last_gyro_timestamp_ns = timestamp_ns

    def on_sample(self, sample: SensorSample) -> None:
        """Dispatch a sample to the handler for its stream."""
        if sample.sensor is SensorType.ACCELEROMETER:
            self.on_acceleration_sample(sample.values, sample.timestamp_ns)
        elif sample.sensor is SensorType.MAGNETIC_FIELD:
            self.on_magnetic_field_sample(sample.values, sample.timestamp_ns)
        elif sample.sensor is SensorType.GYROSCOPE:
            self.on_angular_velocity_sample(sample.values, sample.timestamp_ns)
        else:
            self.on_angular_velocity_sample(
                sample.values, sample.timestamp_ns, calibrated=False
            )

    # Collaborator interface

    def get_orientation(self) -> OrientationVector:
        """Most recent fused orientation, zero before the first fusion."""
        return self._fusion.orientation

    def set_filter_coefficient(self, coefficient: float) -> None:
        """Set the gyroscope weight of the blend.

        Raises:
            InvalidConfiguration: If not in (0, 1].
        """
        self._coefficient = check_coefficient(coefficient)
        self._strategy.set_coefficient(self._coefficient)

    def set_smoothing_enabled(self, enabled: bool) -> None:
        """Turn mean filter smoothing of the raw streams on or off.

        Enabling starts every filter from an empty history.
        """
        if enabled and not self._smoothing_enabled:
            self._reset_filters()
        self._smoothing_enabled = bool(enabled)

    def set_smoothing_time_constant(self, time_constant_s: float) -> None:
        """Set the smoothing period in seconds.

        Raises:
            InvalidConfiguration: If not strictly positive.
        """
        time_constant_s = check_time_constant(time_constant_s)
        for mean_filter in self._filters.values():
            mean_filter.time_constant = time_constant_s

    def set_gyroscope_source(self, calibrated: bool) -> None:
        """Select the calibrated or uncalibrated gyroscope stream."""
        calibrated = bool(calibrated)
        if calibrated == self._use_calibrated:
            return
        self._use_calibrated = calibrated
        self._filters[SensorType.GYROSCOPE].reset()
        self._fusion.last_gyro_timestamp_ns = None
        logger.info("Gyroscope source: %s", "calibrated" if calibrated else "uncalibrated")

    def reset(self) -> None:
        """Discard all filter state and return to UNINITIALIZED."""
        self._clear()
        self._stats.resets += 1
        logger.info("Orientation session reset")

    # Read-only state

    @property
    def state(self) -> SessionState:
        """Current lifecycle state."""
        return self._state

    @property
    def stats(self) -> SessionStats:
        """Sample and update counters, kept across resets."""
        return self._stats

    @property
    def fusion_state(self) -> FusionState:
        """Current filter state. Treat as read-only."""
        return self._fusion

    @property
    def strategy(self) -> FusionStrategy:
        """Active fusion strategy."""
        return self._strategy

    @property
    def coefficient(self) -> float:
        """Gyroscope weight of the blend."""
        return self._coefficient

    @property
    def smoothing_enabled(self) -> bool:
        """Whether raw streams are mean filtered."""
        return self._smoothing_enabled

    @property
    def smoothing_time_constant(self) -> float:
        """Smoothing period in seconds."""
        return self._filters[SensorType.ACCELEROMETER].time_constant

    @property
    def reference_orientation(self) -> Optional[OrientationVector]:
        """Latest accel/mag orientation, None until one is valid."""
        if self._fusion.static_matrix is None:
            return None
        return RotationOps.orientation_from_matrix(self._fusion.static_matrix)

    # Internals

    def _clear(self) -> None:
        """Replace every piece of filter state with a fresh one."""
        self._state = SessionState.UNINITIALIZED
        self._fusion = FusionState()
        self._acceleration: Optional[Vector3] = None
        self._magnetic_field: Optional[Vector3] = None
        self._reset_filters()
        self._strategy.reset()
        self._strategy.set_coefficient(self._coefficient)

    def _reset_filters(self) -> None:
        for mean_filter in self._filters.values():
            mean_filter.reset()

    def _condition(
        self,
        sensor: SensorType,
        values: Vector3,
        timestamp_ns: int,
    ) -> Optional[Vector3]:
        """Count, validate and optionally smooth a raw sample.

        Returns:
            Vector to use, or None if the sample is rejected.
        """
        self._stats.samples[sensor] += 1

        check = validate_vector(values, sensor)
        if not check.is_valid:
            self._stats.rejected_samples += 1
            for error in check.errors:
                logger.warning("Sample rejected: %s", error)
            return None

        if not self._smoothing_enabled:
            return values

        if sensor is SensorType.GYROSCOPE_UNCALIBRATED:
            sensor = SensorType.GYROSCOPE
        return self._filters[sensor].add_sample(values, timestamp_ns)

    def _mark_samples_arriving(self) -> None:
        if self._state is SessionState.UNINITIALIZED:
            self._transition(SessionState.AWAITING_REFERENCE)

    def _update_reference(self) -> None:
        """Recompute the accel/mag orientation from the latest vectors."""
        if self._acceleration is None or self._magnetic_field is None:
            return

        try:
            estimate = self._estimator.estimate(self._acceleration, self._magnetic_field)
        except InvalidReferenceOrientation as e:
            self._stats.reference_failures += 1
            logger.debug("No reference orientation: %s", e)
            return

        self._fusion.static_matrix = estimate.matrix

        if self._state is SessionState.AWAITING_REFERENCE:
            self._fusion.gyro_matrix = estimate.matrix
            self._transition(SessionState.TRACKING)
            logger.info(
                "Reference acquired: azimuth=%.1f pitch=%.1f roll=%.1f deg",
                estimate.orientation.azimuth_deg,
                estimate.orientation.pitch_deg,
                estimate.orientation.roll_deg,
            )

    def _step(self, omega: Vector3, dt: float) -> bool:
        """Integrate one gyroscope sample and publish the fused result.

        Returns:
            False if the fused matrix was discarded.
        """
        gyro_matrix = integrate(self._fusion.gyro_matrix, omega, dt)
        fused = self._strategy.fuse(gyro_matrix, self._fusion.static_matrix, dt)

        matrix_check = validate_matrix(fused, self._config)
        if not matrix_check.is_valid:
            self._stats.rejected_samples += 1
            for error in matrix_check.errors:
                logger.warning("Fusion step discarded: %s", error)
            return False
        for warning in matrix_check.warnings:
            logger.debug("Fused matrix: %s", warning)

        self._fusion.gyro_matrix = fused
        self._fusion.orientation = RotationOps.orientation_from_matrix(fused)
        self._stats.integration_steps += 1
        return True

    def _transition(self, new_state: SessionState) -> None:
        logger.info("Session state %s -> %s", self._state.value, new_state.value)
        self._state = new_state
