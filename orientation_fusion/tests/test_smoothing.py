"""Tests for MeanFilterSmoothing."""

import numpy as np
import pytest

from orientation_fusion.core.errors import InvalidConfiguration
from orientation_fusion.core.types import Vector3
from orientation_fusion.fusion.smoothing import MeanFilterSmoothing

DT_NS = 10_000_000  # 100 Hz


def feed(mean_filter, values, count, start_index=0):
    """Feed ``count`` identical samples at 100 Hz, return the last output."""
    out = None
    for i in range(start_index, start_index + count):
        out = mean_filter.add_sample(values, i * DT_NS)
    return out


class TestMeanFilterWindow:
    """Window sizing from the measured rate."""

    def test_first_sample_passes_through(self):
        """Test no rate is known on the first sample."""
        f = MeanFilterSmoothing(0.5)
        v = Vector3(1.0, 2.0, 3.0)

        out = f.add_sample(v, 0)

        assert out == v
        assert f.window == 0
        assert f.rate_hz == 0.0

    def test_window_follows_rate(self):
        """Test 100 Hz and 0.5 s give a 50 sample window."""
        f = MeanFilterSmoothing(0.5)
        feed(f, Vector3.zero(), 20)

        assert f.rate_hz == pytest.approx(100.0)
        assert f.window == 50

    def test_short_time_constant_passes_through(self):
        """Test a window that rounds to zero returns raw input."""
        f = MeanFilterSmoothing(0.001)
        feed(f, Vector3.zero(), 5)
        v = Vector3(4.0, 5.0, 6.0)

        out = f.add_sample(v, 5 * DT_NS)

        assert f.window == 0
        assert out == v

    def test_time_constant_setter_validates(self):
        """Test invalid time constants are rejected."""
        f = MeanFilterSmoothing(0.5)
        f.time_constant = 0.2
        assert f.time_constant == 0.2

        with pytest.raises(InvalidConfiguration):
            f.time_constant = 0.0
        with pytest.raises(InvalidConfiguration):
            f.time_constant = -1.0
        assert f.time_constant == 0.2

    def test_constructor_rejects_non_positive(self):
        """Test constructor validates the time constant."""
        with pytest.raises(InvalidConfiguration):
            MeanFilterSmoothing(0.0)
        with pytest.raises(InvalidConfiguration):
            MeanFilterSmoothing(float("nan"))


class TestMeanFilterOutput:
    """Smoothed values."""

    def test_constant_input_unchanged(self):
        """Test constant input is reproduced."""
        f = MeanFilterSmoothing(0.5)
        v = Vector3(0.1, -9.81, 42.0)

        out = feed(f, v, 100)

        assert out.x == pytest.approx(0.1)
        assert out.y == pytest.approx(-9.81)
        assert out.z == pytest.approx(42.0)

    def test_step_response(self):
        """Test a step is reached only after a full window."""
        f = MeanFilterSmoothing(0.5)
        feed(f, Vector3.zero(), 100)

        halfway = feed(f, Vector3(1.0, 1.0, 1.0), 25, start_index=100)
        assert halfway.x == pytest.approx(0.5, abs=0.05)

        settled = feed(f, Vector3(1.0, 1.0, 1.0), 50, start_index=125)
        assert settled.x == pytest.approx(1.0)

    def test_reduces_noise(self):
        """Test output variance is lower than input variance."""
        rng = np.random.default_rng(7)
        f = MeanFilterSmoothing(0.2)

        raw, smoothed = [], []
        for i in range(500):
            v = Vector3(float(rng.normal(0, 1)), 0.0, 0.0)
            out = f.add_sample(v, i * DT_NS)
            if i >= 100:
                raw.append(v.x)
                smoothed.append(out.x)

        assert np.std(smoothed) < 0.5 * np.std(raw)


class TestMeanFilterReset:
    """Reset behavior."""

    def test_reset_clears_history(self):
        """Test reset forgets rate and samples."""
        f = MeanFilterSmoothing(0.5)
        feed(f, Vector3(5.0, 5.0, 5.0), 100)

        f.reset()

        assert f.window == 0
        assert f.rate_hz == 0.0
        v = Vector3(-1.0, 0.0, 1.0)
        assert f.add_sample(v, 10 * DT_NS) == v

    def test_reset_keeps_time_constant(self):
        """Test reset does not touch the configured period."""
        f = MeanFilterSmoothing(0.3)
        f.reset()
        assert f.time_constant == 0.3

    def test_after_reset_matches_fresh_filter(self):
        """Test a reset filter behaves like a new one."""
        used = MeanFilterSmoothing(0.5)
        feed(used, Vector3(9.0, 9.0, 9.0), 80)
        used.reset()
        fresh = MeanFilterSmoothing(0.5)

        for i in range(60):
            v = Vector3(float(i), 0.0, -float(i))
            assert used.add_sample(v, i * DT_NS) == fresh.add_sample(v, i * DT_NS)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
