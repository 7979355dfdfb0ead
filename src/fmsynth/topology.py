"""Fixed six-node FM oscillator topology.

::

    modulator -> depth_gain -> primary.frequency
    primary -> output_gain -> master_gain -> destination
                           \\-> analyser

Only parameter values change over the life of an instance; the wiring is
established once in the constructor.
"""

from __future__ import annotations

from functools import partial
from typing import Dict, Sequence, Tuple

import numpy as np

from .analysis import AnalysisReadback
from .config import SynthConfig
from .diagnostics import log_synth_event
from .engine import OfflineAudioContext
from .errors import UnknownWaveTypeError
from .fm import FmParameterModel, ModulatorParams, clamp_gain, midi_to_freq
from .host import AnalyserHandle, ContextFactory, GainHandle, HostContext, OscillatorHandle
from .lifecycle import ContextGuard
from .spectrum import SpectrumPair
from .waveforms import CustomWave, WaveformCatalog, WaveShape, WaveType, custom_wave_from_samples

NODE_NAMES: Tuple[str, ...] = (
    "primary",
    "modulator",
    "depth_gain",
    "output_gain",
    "analyser",
    "master_gain",
)

# (source, target) pairs; ``node.param`` targets a parameter.
NODE_TOPOLOGY: Tuple[Tuple[str, str], ...] = (
    ("primary", "output_gain"),
    ("modulator", "depth_gain"),
    ("depth_gain", "primary.frequency"),
    ("output_gain", "master_gain"),
    ("output_gain", "analyser"),
    ("master_gain", "destination"),
)


def _create_nodes(context: HostContext, config: SynthConfig) -> Dict[str, object]:
    nodes: Dict[str, object] = {
        "primary": context.create_oscillator(),
        "modulator": context.create_oscillator(),
        "depth_gain": context.create_gain(),
        "output_gain": context.create_gain(),
        "analyser": context.create_analyser(),
        "master_gain": context.create_gain(),
    }

    # Everything starts silent with no modulation.
    nodes["primary"].set_type(WaveShape.SINE)
    nodes["primary"].frequency.set_value(config.initial_frequency)
    nodes["output_gain"].gain.set_value(0.0)
    nodes["depth_gain"].gain.set_value(0.0)
    nodes["modulator"].set_type(WaveShape.SINE)
    nodes["modulator"].frequency.set_value(0.0)
    nodes["analyser"].fft_size = config.analyser.fft_size
    nodes["master_gain"].gain.set_value(0.0)
    return nodes


def _wire(context: HostContext, nodes: Dict[str, object]) -> None:
    for source, target in NODE_TOPOLOGY:
        if target == "destination":
            endpoint = context.destination
        elif "." in target:
            node_name, param = target.split(".", 1)
            endpoint = getattr(nodes[node_name], param)
        else:
            endpoint = nodes[target]
        nodes[source].connect(endpoint)


class FmSynth:
    """A single FM voice bound to one host audio context.

    Parameters
    ----------
    context_factory:
        Callable returning a fresh :class:`~fmsynth.host.HostContext`.
        Defaults to an :class:`~fmsynth.engine.OfflineAudioContext` built
        from ``config``.
    config:
        Synth settings; the analyser window size is fixed from here.

    The instance owns its context; call :meth:`close` (or use it as a
    context manager) to release it.  A failure while building the graph
    releases the context before the error propagates.
    """

    def __init__(
        self,
        context_factory: ContextFactory | None = None,
        config: SynthConfig | None = None,
    ) -> None:
        self.config = config or SynthConfig()
        factory = context_factory or partial(OfflineAudioContext.from_config, self.config)
        guard = ContextGuard(factory())
        try:
            nodes = _create_nodes(guard.context, self.config)
            _wire(guard.context, nodes)
            nodes["primary"].start()
            nodes["modulator"].start()
        except BaseException:
            guard.release()
            raise
        self._guard = guard
        self._primary: OscillatorHandle = nodes["primary"]
        self._modulator: OscillatorHandle = nodes["modulator"]
        self._depth_gain: GainHandle = nodes["depth_gain"]
        self._output_gain: GainHandle = nodes["output_gain"]
        self._analyser: AnalyserHandle = nodes["analyser"]
        self._master_gain: GainHandle = nodes["master_gain"]
        self._fm = FmParameterModel(self.config.initial_frequency)
        self._catalog = WaveformCatalog()
        self._wave: WaveType = WaveShape.SINE
        self._analysis = AnalysisReadback(self._analyser, guard)
        log_synth_event("synth ready")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def context(self) -> HostContext:
        return self._guard.context

    @property
    def closed(self) -> bool:
        return self._guard.released

    @property
    def nodes(self) -> Dict[str, object]:
        return {name: getattr(self, f"_{name}") for name in NODE_NAMES}

    @property
    def fm(self) -> FmParameterModel:
        return self._fm

    @property
    def catalog(self) -> WaveformCatalog:
        return self._catalog

    @property
    def wave_type(self) -> WaveType:
        return self._wave

    @property
    def primary_frequency(self) -> float:
        return self._fm.fundamental

    @property
    def modulator(self) -> ModulatorParams:
        return self._fm.derive()

    @property
    def output_gain(self) -> float:
        return float(self._output_gain.gain.value)

    @property
    def master_gain(self) -> float:
        return float(self._master_gain.gain.value)

    @property
    def analysis(self) -> AnalysisReadback:
        return self._analysis

    # ------------------------------------------------------------------
    # Parameter control
    # ------------------------------------------------------------------
    def _apply_modulator(self, params: ModulatorParams) -> ModulatorParams:
        self._modulator.frequency.set_value(params.frequency)
        self._depth_gain.gain.set_value(params.depth)
        return params

    def set_wave_type(self, name: str) -> bool:
        """Switch the primary oscillator shape by short name.

        Returns ``False`` and keeps the current shape when ``name`` is not
        recognised.
        """

        self._guard.ensure_open()
        try:
            wave = self._catalog.resolve(name)
        except UnknownWaveTypeError as exc:
            log_synth_event(f"ignored {exc}")
            return False
        self._apply_wave(wave)
        return True

    def _apply_wave(self, wave: WaveType) -> None:
        if isinstance(wave, CustomWave):
            self._primary.set_periodic_wave(wave)
        else:
            self._primary.set_type(wave)
        self._wave = wave

    def set_custom_wave(self, source: CustomWave | SpectrumPair | Sequence[float] | np.ndarray) -> CustomWave:
        """Register ``source`` as the ``"cst"`` wave and make it active.

        ``source`` may be a ready :class:`CustomWave`, a spectrum, or one
        period of time-domain samples to analyse.
        """

        self._guard.ensure_open()
        if not isinstance(source, (CustomWave, SpectrumPair)):
            source = custom_wave_from_samples(source)
        wave = self._catalog.register_custom(source)
        self._apply_wave(wave)
        return wave

    def set_primary_frequency(self, freq: float) -> ModulatorParams:
        # Modulator rate and depth track the fundamental.
        self._guard.ensure_open()
        self._primary.frequency.set_value(float(freq))
        return self._apply_modulator(self._fm.set_fundamental(freq))

    def set_note(self, note: int) -> float:
        """Tune to MIDI ``note``; non-integral notes raise ``TypeError``."""

        freq = midi_to_freq(note)
        self.set_primary_frequency(freq)
        return freq

    def set_fm_amount(self, ratio: float) -> ModulatorParams:
        """Set modulation depth as a ratio of the fundamental (0..1 recommended)."""

        self._guard.ensure_open()
        return self._apply_modulator(self._fm.set_depth_ratio(ratio))

    def set_fm_frequency_ratio(self, ratio: float) -> ModulatorParams:
        """Set modulator rate as a ratio of the fundamental (0..1 recommended)."""

        self._guard.ensure_open()
        return self._apply_modulator(self._fm.set_frequency_ratio(ratio))

    def set_output_gain(self, gain: float) -> float:
        self._guard.ensure_open()
        value = clamp_gain(gain)
        self._output_gain.gain.set_value(value)
        return value

    def set_master_gain(self, gain: float) -> float:
        self._guard.ensure_open()
        value = clamp_gain(gain)
        self._master_gain.gain.set_value(value)
        return value

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------
    def buffer_length(self) -> int:
        return self._analysis.buffer_length()

    def analyser_data(self) -> bytes:
        return self._analysis.read()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        """Release the host context.  Safe to call more than once."""

        self._guard.release()

    def __enter__(self) -> "FmSynth":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"FmSynth({state}, wave={self._wave!r}, fm={self._fm!r})"


__all__ = ["FmSynth", "NODE_NAMES", "NODE_TOPOLOGY"]
