"""Adaptive mean filter for raw sensor streams.

The filter window is defined as a time constant rather than a
sample count. The window length in samples follows the measured
delivery rate of the stream, so streams running at different rates
are smoothed over the same period of time.
"""

import logging
from collections import deque
from typing import Deque, List, Optional

import numpy as np

from ..core.config import check_time_constant
from ..core.types import Vector3

logger = logging.getLogger(__name__)

NS_PER_S = 1e9


class MeanFilterSmoothing:
    """Per-axis running mean over an adaptive window.

    The delivery rate is estimated as the number of samples seen
    since the first one after ``reset()`` divided by the elapsed
    time, and the window is ``round(rate * time_constant)``.
    """

    def __init__(self, time_constant_s: float = 0.5):
        """Initialize the filter.

        Args:
            time_constant_s: Averaging period in seconds.

        Raises:
            InvalidConfiguration: If the time constant is not positive.
        """
        self._time_constant = check_time_constant(time_constant_s)
        self._axes: List[Deque[float]] = [deque(), deque(), deque()]
        self._count = 0
        self._start_ns: Optional[int] = None
        self._rate_hz = 0.0
        self._window = 0

    @property
    def time_constant(self) -> float:
        """Averaging period in seconds."""
        return self._time_constant

    @time_constant.setter
    def time_constant(self, value: float) -> None:
        self._time_constant = check_time_constant(value)

    @property
    def window(self) -> int:
        """Window length used for the most recent sample."""
        return self._window

    @property
    def rate_hz(self) -> float:
        """Current delivery rate estimate, 0 until measurable."""
        return self._rate_hz

    def add_sample(self, values: Vector3, timestamp_ns: int) -> Vector3:
        """Add a sample and return the smoothed vector.

        Args:
            values: Raw sensor vector.
            timestamp_ns: Sample timestamp in nanoseconds.

        Returns:
            Mean of each axis over the current window, or ``values``
            unchanged while the window is still empty.
        """
        if self._start_ns is None:
            self._start_ns = timestamp_ns

        self._rate_hz = self._rate_hz_at(timestamp_ns)
        self._count += 1

        self._window = int(round(self._rate_hz * self._time_constant))
        if self._window <= 0:
            return values

        for queue, value in zip(self._axes, (values.x, values.y, values.z)):
            queue.append(value)
            while len(queue) > self._window:
                queue.popleft()

        return Vector3(
            x=float(np.mean(self._axes[0])),
            y=float(np.mean(self._axes[1])),
            z=float(np.mean(self._axes[2])),
        )

    def reset(self) -> None:
        """Clear history and rate estimate."""
        for queue in self._axes:
            queue.clear()
        self._count = 0
        self._start_ns = None
        self._rate_hz = 0.0
        self._window = 0

    def _rate_hz_at(self, timestamp_ns: int) -> float:
        """Samples delivered before ``timestamp_ns`` per elapsed second."""
        elapsed_s = (timestamp_ns - self._start_ns) / NS_PER_S
        if elapsed_s <= 0:
            return 0.0
        return self._count / elapsed_s
