"""Configuration loading for the FM synthesiser."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

_REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = _REPO_ROOT / "configs" / "default.json"

DEFAULT_SAMPLE_RATE = 44100
DEFAULT_RENDER_QUANTUM = 128  # frames rendered per host clock tick
DEFAULT_FFT_SIZE = 2048
DEFAULT_INITIAL_FREQUENCY = 440.0  # A4

MIN_FFT_SIZE = 32
MAX_FFT_SIZE = 32768


@dataclass(slots=True)
class AnalyserConfig:
    """Analysis window settings, fixed once the analyser node exists."""

    fft_size: int = DEFAULT_FFT_SIZE

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2


@dataclass(slots=True)
class SynthConfig:
    sample_rate: int = DEFAULT_SAMPLE_RATE
    render_quantum: int = DEFAULT_RENDER_QUANTUM
    initial_frequency: float = DEFAULT_INITIAL_FREQUENCY
    log_events: bool = False
    analyser: AnalyserConfig = field(default_factory=AnalyserConfig)


def validate_fft_size(value: int) -> int:
    """Return ``value`` when it is a power of two inside the analyser range."""

    size = int(value)
    if size < MIN_FFT_SIZE or size > MAX_FFT_SIZE or size & (size - 1):
        raise ValueError(
            f"analyser.fft_size must be a power of two in [{MIN_FFT_SIZE}, {MAX_FFT_SIZE}], got {value}"
        )
    return size


def _normalise_analyser(data: Mapping[str, Any]) -> AnalyserConfig:
    return AnalyserConfig(fft_size=validate_fft_size(data.get("fft_size", DEFAULT_FFT_SIZE)))


def config_from_mapping(raw: Mapping[str, Any]) -> SynthConfig:
    """Build a :class:`SynthConfig` from a decoded JSON mapping."""

    analyser_data = raw.get("analyser", {}) or {}
    if not isinstance(analyser_data, Mapping):
        raise TypeError("analyser must be a JSON object")
    sample_rate = int(raw.get("sample_rate", DEFAULT_SAMPLE_RATE))
    if sample_rate <= 0:
        raise ValueError("sample_rate must be positive")
    render_quantum = int(raw.get("render_quantum", DEFAULT_RENDER_QUANTUM))
    if render_quantum <= 0:
        raise ValueError("render_quantum must be positive")
    initial_frequency = float(raw.get("initial_frequency", DEFAULT_INITIAL_FREQUENCY))
    if initial_frequency < 0.0:
        raise ValueError("initial_frequency must be non-negative")
    return SynthConfig(
        sample_rate=sample_rate,
        render_quantum=render_quantum,
        initial_frequency=initial_frequency,
        log_events=bool(raw.get("log_events", False)),
        analyser=_normalise_analyser(analyser_data),
    )


def load_configuration(path: str | Path) -> SynthConfig:
    """Load a :class:`SynthConfig` from ``path``."""

    with open(path, "r", encoding="utf8") as fh:
        raw = json.load(fh)
    if not isinstance(raw, Mapping):
        raise TypeError("configuration root must be a JSON object")
    return config_from_mapping(raw)


__all__ = [
    "AnalyserConfig",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_FFT_SIZE",
    "DEFAULT_INITIAL_FREQUENCY",
    "DEFAULT_RENDER_QUANTUM",
    "DEFAULT_SAMPLE_RATE",
    "SynthConfig",
    "config_from_mapping",
    "load_configuration",
    "validate_fft_size",
]
