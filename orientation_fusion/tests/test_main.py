"""Tests for the replay command line."""

import json
import logging

import pytest

from orientation_fusion.main import main, run_replay
from orientation_fusion.fusion.session import OrientationSession
from orientation_fusion.sources import SyntheticSensorSource


def output_records(capsys):
    return [json.loads(line) for line in capsys.readouterr().out.splitlines() if line]


@pytest.fixture(autouse=True)
def no_env_config(monkeypatch):
    """Keep a developer's config override out of the tests."""
    monkeypatch.delenv("ORIENTATION_FUSION_CONFIG", raising=False)


class TestRunReplay:
    """Driving a session from a sample list."""

    def test_emits_each_update(self, config, capsys):
        """Test one record per fused update with emit_every=1."""
        source = SyntheticSensorSource(rate_rad_s=0.2)
        session = OrientationSession(config)

        emitted = run_replay(session, source.samples(0.5), truth=source)

        records = output_records(capsys)
        assert emitted == 50
        assert len(records) == 50
        assert records[0]["state"] == "tracking"
        assert {"t", "azimuth", "pitch", "roll", "error_deg"} <= set(records[0])
        assert records[-1]["t"] == pytest.approx(0.5)

    def test_emit_every(self, config, capsys):
        """Test only every N-th update is printed."""
        source = SyntheticSensorSource()
        session = OrientationSession(config)

        emitted = run_replay(session, source.samples(1.0), emit_every=25)

        assert emitted == 4
        assert all("error_deg" not in r for r in output_records(capsys))


class TestMain:
    """Command line entry point."""

    def test_simulation(self, capsys):
        """Test the default simulation tracks the turn."""
        code = main(["-d", "1", "--every", "10"])

        assert code == 0
        records = output_records(capsys)
        assert len(records) == 10
        assert all(r["error_deg"] < 1.0 for r in records)

    def test_kalman_with_noise(self, capsys):
        """Test the Kalman strategy on noisy simulated input."""
        code = main(["-d", "2", "--strategy", "kalman", "--noise", "--every", "50"])

        assert code == 0
        records = output_records(capsys)
        assert len(records) == 4
        assert all(r["error_deg"] < 5.0 for r in records)

    def test_save_and_replay(self, tmp_path, capsys):
        """Test a saved simulation replays to the same orientations."""
        path = str(tmp_path / "rec.json")

        assert main(["-d", "0.5", "--save", path, "--every", "5"]) == 0
        simulated = output_records(capsys)

        assert main(["-r", path, "--every", "5"]) == 0
        replayed = output_records(capsys)

        assert [r["azimuth"] for r in replayed] == [r["azimuth"] for r in simulated]
        assert all("error_deg" not in r for r in replayed)

    def test_smoothing_options(self, capsys):
        """Test smoothing flags are accepted."""
        code = main(["-d", "0.5", "--smoothing", "--time-constant", "0.1", "--coefficient", "0.9"])
        assert code == 0
        assert output_records(capsys)

    def test_invalid_coefficient(self, capsys):
        """Test an out-of-range override exits with an error code."""
        assert main(["--coefficient", "1.5"]) == 1
        assert capsys.readouterr().out == ""

    def test_non_numeric_config(self, tmp_path, capsys):
        """Test a null coefficient in the config file exits with an error code."""
        path = tmp_path / "bad.yaml"
        path.write_text("fusion:\n  coefficient: null\n", encoding="utf-8")

        assert main(["-c", str(path)]) == 1
        assert capsys.readouterr().out == ""

    def test_final_statistics_logged(self, caplog, capsys):
        """Test the closing summary reports the reference failure rate."""
        with caplog.at_level(logging.INFO, logger="orientation_fusion.main"):
            assert main(["-d", "0.2", "--every", "100"]) == 0

        assert "Reference failures: 0 (0.0% of accelerometer samples)" in caplog.text

    def test_missing_config(self, tmp_path):
        """Test a missing configuration file exits with an error code."""
        assert main(["-c", str(tmp_path / "nope.yaml")]) == 1

    def test_missing_recording(self, tmp_path):
        """Test a missing recording exits with an error code."""
        assert main(["-r", str(tmp_path / "nope.json")]) == 1


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
