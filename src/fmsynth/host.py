"""Capability interfaces a host audio engine must provide.

The synthesis topology only talks to these protocols, so any engine that
can create oscillators, gains and an analyser, wire them together and
close its context can render the instrument.  :mod:`fmsynth.engine` ships
an offline numpy implementation.
"""

from __future__ import annotations

from typing import Callable, Protocol, Union, runtime_checkable

import numpy as np

from .waveforms import CustomWave, WaveShape


@runtime_checkable
class AudioParam(Protocol):
    """A single automatable node parameter."""

    @property
    def value(self) -> float: ...

    def set_value(self, value: float) -> None: ...


@runtime_checkable
class AudioNodeHandle(Protocol):
    """Any node that can feed another node or a parameter."""

    def connect(self, target: "ConnectTarget") -> None: ...


ConnectTarget = Union[AudioNodeHandle, AudioParam]


@runtime_checkable
class OscillatorHandle(AudioNodeHandle, Protocol):
    @property
    def frequency(self) -> AudioParam: ...

    def set_type(self, shape: WaveShape) -> None: ...

    def set_periodic_wave(self, wave: CustomWave) -> None: ...

    def start(self) -> None: ...


@runtime_checkable
class GainHandle(AudioNodeHandle, Protocol):
    @property
    def gain(self) -> AudioParam: ...


@runtime_checkable
class AnalyserHandle(AudioNodeHandle, Protocol):
    fft_size: int

    @property
    def frequency_bin_count(self) -> int: ...

    def get_byte_time_domain_data(self, array: np.ndarray) -> None:
        """Fill the ``uint8`` ``array`` with the latest time-domain window."""
        ...


@runtime_checkable
class HostContext(Protocol):
    """An audio context owning every node created through it."""

    @property
    def sample_rate(self) -> float: ...

    @property
    def destination(self) -> AudioNodeHandle: ...

    def create_oscillator(self) -> OscillatorHandle: ...

    def create_gain(self) -> GainHandle: ...

    def create_analyser(self) -> AnalyserHandle: ...

    def close(self) -> None: ...


ContextFactory = Callable[[], HostContext]


__all__ = [
    "AnalyserHandle",
    "AudioNodeHandle",
    "AudioParam",
    "ConnectTarget",
    "ContextFactory",
    "GainHandle",
    "HostContext",
    "OscillatorHandle",
]
