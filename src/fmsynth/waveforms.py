"""Wave-type catalog and single-period waveform rendering."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Sequence, Union

import numpy as np

from .errors import UnknownWaveTypeError
from .spectrum import SpectrumPair, transform

RAW_DTYPE = np.float64
CUSTOM_TABLE_SIZE = 4096


class WaveShape(str, enum.Enum):
    """Built-in oscillator shapes understood by every host engine."""

    SINE = "sine"
    TRIANGLE = "triangle"
    SQUARE = "square"
    SAWTOOTH = "sawtooth"


@dataclass(frozen=True, eq=False)
class CustomWave:
    """Periodic wave described by a :class:`SpectrumPair`.

    Bin 0 (DC) is ignored; bins ``1..N//2`` are harmonics contributing
    ``real[k] * cos(2*pi*k*phi) + imag[k] * sin(2*pi*k*phi)``.  The rendered
    period is normalised to a peak of 1 unless ``normalize`` is false.
    """

    spectrum: SpectrumPair
    normalize: bool = True
    _table: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_table", self._build_table(self.table_size))

    @property
    def harmonic_count(self) -> int:
        return len(self.spectrum) // 2

    @property
    def table_size(self) -> int:
        # Strictly more than two samples per highest harmonic, so nothing folds.
        return max(CUSTOM_TABLE_SIZE, 1 << (2 * self.harmonic_count).bit_length())

    def _build_table(self, size: int) -> np.ndarray:
        count = self.harmonic_count
        bins = np.zeros(size // 2 + 1, dtype=np.complex128)
        # irfft(C)[n] = (2/size) * sum(Re(C[k]) cos - Im(C[k]) sin) over k >= 1.
        bins[1 : count + 1] = (size / 2.0) * (
            self.spectrum.real[1 : count + 1].astype(RAW_DTYPE)
            - 1j * self.spectrum.imag[1 : count + 1].astype(RAW_DTYPE)
        )
        table = np.fft.irfft(bins, n=size)
        if self.normalize:
            peak = float(np.max(np.abs(table)))
            if peak > 0.0:
                table /= peak
        return table

    def sample(self, phase: np.ndarray) -> np.ndarray:
        """Linearly interpolate the cached period at ``phase`` (cycles)."""

        size = self._table.shape[0]
        pos = (np.asarray(phase, dtype=RAW_DTYPE) % 1.0) * size
        idx = np.floor(pos).astype(np.int64)
        frac = pos - idx
        idx %= size
        nxt = (idx + 1) % size
        return self._table[idx] * (1.0 - frac) + self._table[nxt] * frac


WaveType = Union[WaveShape, CustomWave]

BUILTIN_NAMES: dict[str, WaveShape] = {
    "sin": WaveShape.SINE,
    "tri": WaveShape.TRIANGLE,
    "sqr": WaveShape.SQUARE,
    "saw": WaveShape.SAWTOOTH,
}
CUSTOM_NAME = "cst"


def resolve(name: str) -> WaveShape:
    """Map a short wave name (``sin``/``tri``/``sqr``/``saw``) to its shape."""

    try:
        return BUILTIN_NAMES[name]
    except (KeyError, TypeError):
        raise UnknownWaveTypeError(str(name)) from None


class WaveformCatalog:
    """Per-instance catalog: the built-in shapes plus one optional custom wave."""

    def __init__(self) -> None:
        self._custom: CustomWave | None = None

    @property
    def custom(self) -> CustomWave | None:
        return self._custom

    def register_custom(self, wave: CustomWave | SpectrumPair) -> CustomWave:
        if isinstance(wave, SpectrumPair):
            wave = CustomWave(wave)
        self._custom = wave
        return wave

    def resolve(self, name: str) -> WaveType:
        if name == CUSTOM_NAME and self._custom is not None:
            return self._custom
        return resolve(name)

    def names(self) -> tuple[str, ...]:
        names = tuple(BUILTIN_NAMES)
        if self._custom is not None:
            names += (CUSTOM_NAME,)
        return names


def custom_wave_from_samples(samples: Sequence[float] | np.ndarray, *, normalize: bool = True) -> CustomWave:
    """Analyse one period of ``samples`` and wrap the spectrum as a custom wave."""

    return CustomWave(transform(samples), normalize=normalize)


# =========================
# Period rendering
# =========================


def _edge_residual(t: np.ndarray, dt: np.ndarray) -> np.ndarray:
    """Two-sample polynomial correction around a unit jump at phase 0."""

    span = np.maximum(dt, 1e-20)
    out = np.zeros_like(t)
    head = t < dt
    out[head] = -((1.0 - t[head] / span[head]) ** 2)
    tail = t > (1.0 - dt)
    out[tail] = ((t[tail] - 1.0) / span[tail] + 1.0) ** 2
    return out


def _saw(phase: np.ndarray, dphi: np.ndarray) -> np.ndarray:
    return 2.0 * phase - 1.0 - _edge_residual(phase, dphi)


def _square(phase: np.ndarray, dphi: np.ndarray) -> np.ndarray:
    y = np.where(phase < 0.5, 1.0, -1.0)
    y += _edge_residual(phase, dphi)
    y -= _edge_residual((phase + 0.5) % 1.0, dphi)
    return y


def _triangle(phase: np.ndarray) -> np.ndarray:
    # Starts at zero and rises, matching the sine's phase origin.
    return 1.0 - 4.0 * np.abs(((phase + 0.25) % 1.0) - 0.5)


def render_phase(wave: WaveType, phase: np.ndarray, dphi: np.ndarray | float = 0.0) -> np.ndarray:
    """Evaluate ``wave`` at ``phase`` (in cycles, ``[0, 1)``).

    ``dphi`` is the per-sample phase increment; saw and square use it to
    band-limit their discontinuities.
    """

    phase = np.asarray(phase, dtype=RAW_DTYPE)
    if isinstance(wave, CustomWave):
        return wave.sample(phase)
    step = np.abs(np.broadcast_to(np.asarray(dphi, dtype=RAW_DTYPE), phase.shape))
    if wave is WaveShape.SINE:
        return np.sin(2.0 * np.pi * phase)
    if wave is WaveShape.TRIANGLE:
        return _triangle(phase)
    if wave is WaveShape.SQUARE:
        return _square(phase, step)
    if wave is WaveShape.SAWTOOTH:
        return _saw(phase, step)
    raise TypeError(f"unsupported wave type: {wave!r}")


__all__ = [
    "BUILTIN_NAMES",
    "CUSTOM_NAME",
    "CustomWave",
    "WaveShape",
    "WaveType",
    "WaveformCatalog",
    "custom_wave_from_samples",
    "render_phase",
    "resolve",
]
