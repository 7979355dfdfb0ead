"""FM oscillator kernel: DFT, FM parameter derivation and node topology."""

from __future__ import annotations

from .analysis import AnalysisReadback
from .config import SynthConfig, load_configuration
from .errors import FmSynthError, HostUnavailableError, InvalidInputError, UnknownWaveTypeError
from .fm import FmParameterModel, clamp_gain, midi_to_freq
from .spectrum import SpectrumPair, transform
from .topology import FmSynth
from .waveforms import CustomWave, WaveformCatalog, WaveShape, resolve

__all__ = [
    "AnalysisReadback",
    "CustomWave",
    "FmParameterModel",
    "FmSynth",
    "FmSynthError",
    "HostUnavailableError",
    "InvalidInputError",
    "SpectrumPair",
    "SynthConfig",
    "UnknownWaveTypeError",
    "WaveShape",
    "WaveformCatalog",
    "clamp_gain",
    "load_configuration",
    "midi_to_freq",
    "resolve",
    "transform",
]
