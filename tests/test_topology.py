from __future__ import annotations

import gc

import numpy as np
import pytest

from fakes import FakeAnalyser, FakeContext, FakeGain, FakeOscillator
from fmsynth.config import AnalyserConfig, SynthConfig
from fmsynth.errors import HostUnavailableError
from fmsynth.spectrum import transform
from fmsynth.topology import NODE_NAMES, NODE_TOPOLOGY, FmSynth
from fmsynth.waveforms import CustomWave, WaveShape


@pytest.fixture
def context() -> FakeContext:
    return FakeContext()


@pytest.fixture
def synth(context: FakeContext) -> FmSynth:
    instance = FmSynth(lambda: context)
    yield instance
    instance.close()


def test_construction_creates_six_nodes(synth: FmSynth, context: FakeContext) -> None:
    kinds = sorted(type(node).__name__ for node in context.nodes)

    assert len(context.nodes) == 6
    assert kinds == sorted(
        ["FakeOscillator", "FakeOscillator", "FakeGain", "FakeGain", "FakeGain", "FakeAnalyser"]
    )
    assert tuple(synth.nodes) == NODE_NAMES
    assert set(NODE_NAMES) == {"primary", "modulator", "depth_gain", "output_gain", "analyser", "master_gain"}


def test_wiring_matches_fixed_topology(synth: FmSynth, context: FakeContext) -> None:
    labels = {name: node.label for name, node in synth.nodes.items()}
    labels["destination"] = "destination"
    expected = []
    for source, target in NODE_TOPOLOGY:
        node_name, _, param = target.partition(".")
        label = labels[node_name] + (f".{param}" if param else "")
        expected.append((labels[source], label))

    assert context.edges == expected
    primary = synth.nodes["primary"]
    depth_gain = synth.nodes["depth_gain"]
    assert depth_gain.connections == [primary.frequency]


def test_initial_state_is_silent(synth: FmSynth) -> None:
    nodes = synth.nodes

    assert nodes["output_gain"].gain.value == 0.0
    assert nodes["master_gain"].gain.value == 0.0
    assert nodes["depth_gain"].gain.value == 0.0
    assert nodes["modulator"].frequency.value == 0.0
    assert nodes["primary"].frequency.value == 440.0
    assert nodes["primary"].shape is WaveShape.SINE
    assert nodes["analyser"].fft_size == 2048
    assert nodes["primary"].started and nodes["modulator"].started
    assert synth.wave_type is WaveShape.SINE


def test_analyser_window_comes_from_config(context: FakeContext) -> None:
    config = SynthConfig(analyser=AnalyserConfig(fft_size=512))
    with FmSynth(lambda: context, config) as synth:
        assert synth.nodes["analyser"].fft_size == 512
        assert synth.buffer_length() == 256


def test_set_wave_type_applies_known_shape(synth: FmSynth) -> None:
    assert synth.set_wave_type("saw") is True

    assert synth.nodes["primary"].shape is WaveShape.SAWTOOTH
    assert synth.wave_type is WaveShape.SAWTOOTH


def test_unknown_wave_type_keeps_previous(synth: FmSynth) -> None:
    synth.set_wave_type("tri")

    assert synth.set_wave_type("xyz") is False

    assert synth.wave_type is WaveShape.TRIANGLE
    assert synth.nodes["primary"].shape is WaveShape.TRIANGLE


def test_primary_frequency_drives_modulator(synth: FmSynth) -> None:
    synth.set_fm_frequency_ratio(0.5)
    synth.set_fm_amount(0.25)

    params = synth.set_primary_frequency(200.0)

    assert synth.nodes["primary"].frequency.value == 200.0
    assert synth.nodes["modulator"].frequency.value == pytest.approx(100.0)
    assert synth.nodes["depth_gain"].gain.value == pytest.approx(50.0)
    assert params.frequency == pytest.approx(100.0)


@pytest.mark.parametrize("f, fr, dr", [(330.0, 0.5, 0.1), (27.5, 3.0, 1.5), (0.0, 0.7, 0.7)])
def test_ratios_follow_current_fundamental(synth: FmSynth, f: float, fr: float, dr: float) -> None:
    synth.set_fm_amount(0.9)
    synth.set_fm_frequency_ratio(0.9)

    synth.set_primary_frequency(f)
    synth.set_fm_amount(dr)
    synth.set_fm_frequency_ratio(fr)

    assert synth.modulator.frequency == pytest.approx(fr * f)
    assert synth.modulator.depth == pytest.approx(dr * f)
    assert synth.nodes["modulator"].frequency.value == pytest.approx(fr * f)
    assert synth.nodes["depth_gain"].gain.value == pytest.approx(dr * f)


def test_fm_amount_before_any_note_uses_initial_frequency(synth: FmSynth) -> None:
    synth.set_fm_amount(0.5)

    assert synth.nodes["depth_gain"].gain.value == pytest.approx(220.0)


def test_set_note_converts_to_frequency(synth: FmSynth) -> None:
    synth.set_fm_frequency_ratio(1.0)

    freq = synth.set_note(33)

    assert freq == pytest.approx(55.0)
    assert synth.primary_frequency == pytest.approx(55.0)
    assert synth.nodes["modulator"].frequency.value == pytest.approx(55.0)


def test_set_note_rejects_fractional_notes(synth: FmSynth) -> None:
    with pytest.raises(TypeError):
        synth.set_note(60.7)

    assert synth.primary_frequency == 440.0
    assert synth.nodes["primary"].frequency.value == 440.0


def test_gains_are_clamped(synth: FmSynth) -> None:
    synth.set_output_gain(1.5)
    assert synth.output_gain == 1.0
    synth.set_output_gain(-0.2)
    assert synth.output_gain == 0.0

    assert synth.set_master_gain(0.3) == pytest.approx(0.3)
    assert synth.master_gain == pytest.approx(0.3)
    synth.set_master_gain(7.0)
    assert synth.master_gain == 1.0


def test_gain_changes_do_not_touch_modulator(synth: FmSynth) -> None:
    synth.set_fm_amount(0.5)
    writes_before = list(synth.nodes["depth_gain"].gain.writes)

    synth.set_output_gain(0.5)
    synth.set_master_gain(0.5)

    assert synth.nodes["depth_gain"].gain.writes == writes_before


def test_custom_wave_is_an_opt_in_extension(synth: FmSynth) -> None:
    assert synth.set_wave_type("cst") is False

    period = np.sin(2.0 * np.pi * np.arange(64) / 64) + 0.3 * np.sin(6.0 * np.pi * np.arange(64) / 64)
    wave = synth.set_custom_wave(period)

    assert isinstance(wave, CustomWave)
    assert synth.nodes["primary"].periodic_wave is wave
    assert synth.wave_type is wave

    synth.set_wave_type("sqr")
    assert synth.nodes["primary"].periodic_wave is None
    assert synth.set_wave_type("cst") is True
    assert synth.nodes["primary"].periodic_wave is wave


def test_custom_wave_accepts_spectrum(synth: FmSynth) -> None:
    spectrum = transform(np.cos(2.0 * np.pi * np.arange(16) / 16))

    wave = synth.set_custom_wave(spectrum)

    assert wave.spectrum is spectrum


def test_close_is_idempotent(context: FakeContext) -> None:
    synth = FmSynth(lambda: context)

    synth.close()
    synth.close()

    assert context.closed
    assert context.close_calls == 1
    assert synth.closed


def test_context_manager_releases(context: FakeContext) -> None:
    with FmSynth(lambda: context) as synth:
        synth.set_output_gain(0.5)

    assert context.closed
    assert context.close_calls == 1


def test_teardown_swallows_host_failure() -> None:
    context = FakeContext(close_error=HostUnavailableError("engine gone"))
    synth = FmSynth(lambda: context)

    synth.close()
    synth.close()

    assert context.close_calls == 1
    assert synth.closed


@pytest.mark.parametrize("kind", ["oscillator", "gain", "analyser"])
def test_construction_failure_releases_context(kind: str) -> None:
    context = FakeContext(fail_on=kind)

    with pytest.raises(HostUnavailableError):
        FmSynth(lambda: context)

    assert context.closed
    assert context.close_calls == 1


def test_abandoned_synth_is_released_on_collection() -> None:
    context = FakeContext()
    synth = FmSynth(lambda: context)

    del synth
    gc.collect()

    assert context.close_calls == 1


def test_setters_after_close_raise(synth: FmSynth) -> None:
    synth.close()

    with pytest.raises(HostUnavailableError):
        synth.set_primary_frequency(100.0)
    with pytest.raises(HostUnavailableError):
        synth.set_wave_type("sin")
    with pytest.raises(HostUnavailableError):
        synth.set_output_gain(0.5)
    with pytest.raises(HostUnavailableError):
        synth.analysis.read()
