"""Offline numpy host engine implementing :mod:`fmsynth.host`.

Rendering is pull-based and proceeds in fixed quanta.  Parameter values are
sampled at the start of each quantum; audio-rate signals connected to a
parameter are summed onto that value sample by sample.  Analysers are
pulled every quantum even when nothing downstream consumes them.
"""

from __future__ import annotations

from typing import List

import numpy as np

from .config import DEFAULT_FFT_SIZE, DEFAULT_RENDER_QUANTUM, DEFAULT_SAMPLE_RATE, SynthConfig, validate_fft_size
from .diagnostics import log_synth_event
from .errors import HostUnavailableError
from .waveforms import CustomWave, WaveShape, WaveType, render_phase

RAW_DTYPE = np.float64
OUTPUT_DTYPE = np.float32


class EngineParam:
    """Automatable parameter owned by an engine node."""

    __slots__ = ("_owner", "name", "_value", "_inputs")

    def __init__(self, owner: "EngineNode", name: str, value: float) -> None:
        self._owner = owner
        self.name = name
        self._value = float(value)
        self._inputs: List[EngineNode] = []

    @property
    def value(self) -> float:
        return self._value

    def set_value(self, value: float) -> None:
        self._owner.context._check_open()
        self._value = float(value)
        log_synth_event(f"set {self._owner.name}.{self.name} = {self._value!r}")

    def _add_input(self, node: "EngineNode") -> None:
        self._inputs.append(node)

    def _values(self, frames: int) -> np.ndarray:
        out = np.full(frames, self._value, dtype=RAW_DTYPE)
        for node in self._inputs:
            out += node._pull(frames)
        return out

    def __repr__(self) -> str:
        return f"EngineParam({self._owner.name}.{self.name}={self._value!r})"


class EngineNode:
    """Base node: sums its audio inputs and memoises output per quantum."""

    kind = "node"

    def __init__(self, context: "OfflineAudioContext", name: str) -> None:
        self.context = context
        self.name = name
        self._inputs: List[EngineNode] = []
        self._outputs: list[object] = []
        self._cache_token = -1
        self._cache: np.ndarray | None = None
        self._pulling = False

    @property
    def connections(self) -> tuple[object, ...]:
        return tuple(self._outputs)

    def connect(self, target: object) -> None:
        self.context._check_open()
        if isinstance(target, EngineParam):
            if target._owner.context is not self.context:
                raise ValueError("cannot connect nodes from different contexts")
            target._add_input(self)
            label = f"{target._owner.name}.{target.name}"
        elif isinstance(target, EngineNode):
            if target.context is not self.context:
                raise ValueError("cannot connect nodes from different contexts")
            target._inputs.append(self)
            label = target.name
        else:
            raise TypeError(f"cannot connect {self.name} to {target!r}")
        self._outputs.append(target)
        log_synth_event(f"connect {self.name} -> {label}")

    def _mix_inputs(self, frames: int) -> np.ndarray:
        out = np.zeros(frames, dtype=RAW_DTYPE)
        for node in self._inputs:
            out += node._pull(frames)
        return out

    def _pull(self, frames: int) -> np.ndarray:
        token = self.context._quantum_index
        if self._cache_token == token and self._cache is not None:
            return self._cache
        if self._pulling:
            raise RuntimeError(f"cycle detected while rendering {self.name}")
        self._pulling = True
        try:
            self._cache = self._render(frames)
        finally:
            self._pulling = False
        self._cache_token = token
        return self._cache

    def _render(self, frames: int) -> np.ndarray:
        return self._mix_inputs(frames)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class EngineOscillator(EngineNode):
    kind = "oscillator"

    def __init__(self, context: "OfflineAudioContext", name: str) -> None:
        super().__init__(context, name)
        self.frequency = EngineParam(self, "frequency", 440.0)
        self._wave: WaveType = WaveShape.SINE
        self._phase = 0.0
        self._started = False

    @property
    def wave(self) -> WaveType:
        return self._wave

    @property
    def started(self) -> bool:
        return self._started

    def set_type(self, shape: WaveShape) -> None:
        self.context._check_open()
        self._wave = WaveShape(shape)
        log_synth_event(f"type {self.name} = {self._wave.value}")

    def set_periodic_wave(self, wave: CustomWave) -> None:
        self.context._check_open()
        if not isinstance(wave, CustomWave):
            raise TypeError("set_periodic_wave expects a CustomWave")
        self._wave = wave
        log_synth_event(f"type {self.name} = custom[{len(wave.spectrum)}]")

    def start(self) -> None:
        self.context._check_open()
        if self._started:
            raise RuntimeError(f"{self.name} already started")
        self._started = True
        log_synth_event(f"start {self.name}")

    def _render(self, frames: int) -> np.ndarray:
        if not self._started:
            return np.zeros(frames, dtype=RAW_DTYPE)
        freq = self.frequency._values(frames)
        dphi = freq / float(self.context.sample_rate)
        steps = np.cumsum(dphi)
        phase = self._phase + np.concatenate(([0.0], steps[:-1]))
        self._phase = float((self._phase + steps[-1]) % 1.0)
        return render_phase(self._wave, phase % 1.0, dphi)


class EngineGain(EngineNode):
    kind = "gain"

    def __init__(self, context: "OfflineAudioContext", name: str) -> None:
        super().__init__(context, name)
        self.gain = EngineParam(self, "gain", 1.0)

    def _render(self, frames: int) -> np.ndarray:
        return self._mix_inputs(frames) * self.gain._values(frames)


class EngineAnalyser(EngineNode):
    """Pass-through node remembering the last ``fft_size`` samples."""

    kind = "analyser"

    def __init__(self, context: "OfflineAudioContext", name: str) -> None:
        super().__init__(context, name)
        self._fft_size = DEFAULT_FFT_SIZE
        self._window = np.zeros(self._fft_size, dtype=RAW_DTYPE)

    @property
    def fft_size(self) -> int:
        return self._fft_size

    @fft_size.setter
    def fft_size(self, value: int) -> None:
        self.context._check_open()
        self._fft_size = validate_fft_size(value)
        self._window = np.zeros(self._fft_size, dtype=RAW_DTYPE)
        log_synth_event(f"set {self.name}.fft_size = {self._fft_size}")

    @property
    def frequency_bin_count(self) -> int:
        return self._fft_size // 2

    def _render(self, frames: int) -> np.ndarray:
        data = self._mix_inputs(frames)
        if frames >= self._fft_size:
            self._window[:] = data[-self._fft_size:]
        else:
            self._window[:-frames] = self._window[frames:]
            self._window[-frames:] = data
        return data

    def get_float_time_domain_data(self, array: np.ndarray) -> None:
        self.context._check_open()
        count = min(int(array.shape[0]), self._fft_size)
        array[:count] = self._window[:count]

    def get_byte_time_domain_data(self, array: np.ndarray) -> None:
        self.context._check_open()
        count = min(int(array.shape[0]), self._fft_size)
        encoded = np.floor(128.0 * (1.0 + self._window[:count]))
        array[:count] = np.clip(encoded, 0, 255).astype(np.uint8)


class EngineDestination(EngineNode):
    kind = "destination"


class OfflineAudioContext:
    """Deterministic in-process host context rendering to a numpy buffer."""

    def __init__(
        self,
        sample_rate: float = DEFAULT_SAMPLE_RATE,
        *,
        render_quantum: int = DEFAULT_RENDER_QUANTUM,
    ) -> None:
        if sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        if render_quantum <= 0:
            raise ValueError("render_quantum must be positive")
        self._sample_rate = float(sample_rate)
        self.render_quantum = int(render_quantum)
        self._closed = False
        self._quantum_index = 0
        self._spill = np.zeros(0, dtype=RAW_DTYPE)
        self._nodes: List[EngineNode] = []
        self._destination = EngineDestination(self, "destination")

    @classmethod
    def from_config(cls, config: SynthConfig) -> "OfflineAudioContext":
        return cls(config.sample_rate, render_quantum=config.render_quantum)

    @property
    def sample_rate(self) -> float:
        return self._sample_rate

    @property
    def destination(self) -> EngineDestination:
        return self._destination

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def nodes(self) -> tuple[EngineNode, ...]:
        return tuple(self._nodes)

    def _check_open(self) -> None:
        if self._closed:
            raise HostUnavailableError("audio context is closed")

    def _register(self, node: EngineNode) -> EngineNode:
        self._check_open()
        self._nodes.append(node)
        log_synth_event(f"create {node.kind} {node.name}")
        return node

    def _next_name(self, kind: str) -> str:
        return f"{kind}{sum(1 for node in self._nodes if node.kind == kind)}"

    def create_oscillator(self) -> EngineOscillator:
        self._check_open()
        return self._register(EngineOscillator(self, self._next_name("oscillator")))

    def create_gain(self) -> EngineGain:
        self._check_open()
        return self._register(EngineGain(self, self._next_name("gain")))

    def create_analyser(self) -> EngineAnalyser:
        self._check_open()
        return self._register(EngineAnalyser(self, self._next_name("analyser")))

    def _render_quantum(self) -> np.ndarray:
        frames = self.render_quantum
        self._quantum_index += 1
        out = self._destination._pull(frames)
        for node in self._nodes:
            if isinstance(node, EngineAnalyser):
                node._pull(frames)
        return out

    def render(self, frames: int) -> np.ndarray:
        """Advance the clock and return ``frames`` samples from the destination."""

        self._check_open()
        frames = int(frames)
        if frames < 0:
            raise ValueError("frames must be non-negative")
        chunks = [self._spill]
        available = self._spill.shape[0]
        while available < frames:
            block = self._render_quantum()
            chunks.append(block)
            available += block.shape[0]
        joined = np.concatenate(chunks) if len(chunks) > 1 else self._spill
        self._spill = joined[frames:].copy()
        return joined[:frames].astype(OUTPUT_DTYPE)

    def close(self) -> None:
        self._check_open()
        self._closed = True
        self._nodes.clear()
        self._spill = np.zeros(0, dtype=RAW_DTYPE)
        log_synth_event("close context")


__all__ = [
    "EngineAnalyser",
    "EngineDestination",
    "EngineGain",
    "EngineNode",
    "EngineOscillator",
    "EngineParam",
    "OfflineAudioContext",
]
