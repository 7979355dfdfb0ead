from __future__ import annotations

from pathlib import Path

import pytest

from fakes import FakeContext
from fmsynth import diagnostics
from fmsynth.config import SynthConfig
from fmsynth.engine import OfflineAudioContext
from fmsynth.topology import FmSynth


@pytest.fixture
def log_path(tmp_path: Path, monkeypatch) -> Path:
    path = tmp_path / "logs" / "events.log"
    monkeypatch.setattr(diagnostics, "_LOG_PATH", path)
    monkeypatch.setattr(diagnostics, "_LOG_SYNTH_EVENTS", False)
    return path


def test_logging_disabled_writes_nothing(log_path: Path) -> None:
    with FmSynth(lambda: OfflineAudioContext()) as synth:
        synth.set_note(60)

    assert not log_path.exists()


def test_logging_records_wiring_writes_and_teardown(log_path: Path) -> None:
    diagnostics.enable_synth_logging(True)
    assert diagnostics.synth_logging_enabled()

    with FmSynth(lambda: OfflineAudioContext()) as synth:
        synth.set_output_gain(0.5)
        synth.set_wave_type("nope")

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert "create oscillator oscillator0" in lines
    assert "connect gain0 -> oscillator0.frequency" in lines
    assert "set gain1.gain = 0.5" in lines
    assert "ignored unknown wave type 'nope'" in lines
    assert lines[-2:] == ["close context", "teardown: context released"]


def test_teardown_failures_are_logged(log_path: Path) -> None:
    diagnostics.enable_synth_logging(True)
    context = FakeContext(close_error=RuntimeError("device lost"))

    FmSynth(lambda: context).close()

    text = log_path.read_text(encoding="utf-8")
    assert "teardown: host close failed (RuntimeError: device lost)" in text


def test_set_log_path_returns_previous(log_path: Path, tmp_path: Path) -> None:
    previous = diagnostics.set_log_path(tmp_path / "other.log")

    assert previous == log_path
    diagnostics.set_log_path(previous)


def test_config_flag_does_not_leak_between_instances(log_path: Path) -> None:
    FmSynth(lambda: OfflineAudioContext(), SynthConfig(log_events=True)).close()
    assert not diagnostics.synth_logging_enabled()

    with FmSynth(lambda: OfflineAudioContext(), SynthConfig(log_events=False)) as synth:
        synth.set_note(60)

    assert not diagnostics.synth_logging_enabled()
    assert not log_path.exists()
