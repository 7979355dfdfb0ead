"""Frequency-modulation parameter model and pitch helpers."""

from __future__ import annotations

import math
import operator
from dataclasses import dataclass

import numpy as np

from .config import DEFAULT_INITIAL_FREQUENCY

REFERENCE_NOTE = 21  # A0, lowest key of an 88-key piano
REFERENCE_FREQUENCY = 27.5


def midi_to_freq(note: int) -> float:
    """Convert a MIDI-style note number to an equal-tempered frequency in Hz.

    A note is generally in the range 21 to 108; values outside it are not
    rejected and still map to a (possibly inaudible) frequency, saturating to
    ``inf`` or ``0.0`` at the extremes.  Non-integral notes raise ``TypeError``.
    """

    semitones = operator.index(note) - REFERENCE_NOTE
    # Past this range the result is already inf or 0.0 in float64.
    semitones = max(-20000, min(20000, semitones))
    with np.errstate(over="ignore", under="ignore"):
        return float(REFERENCE_FREQUENCY * np.exp2(semitones / 12.0))


def clamp_gain(gain: float) -> float:
    """Saturate ``gain`` into ``[0.0, 1.0]``; NaN becomes silence."""

    value = float(gain)
    if math.isnan(value):
        return 0.0
    if value > 1.0:
        return 1.0
    if value < 0.0:
        return 0.0
    return value


@dataclass(frozen=True, slots=True)
class ModulatorParams:
    """Concrete modulator settings derived from the current FM state."""

    frequency: float
    depth: float


class FmParameterModel:
    """Owns the FM ratios and the fundamental they scale against.

    Ratios should be between 0 and 1, though higher values are accepted.
    Every setter returns freshly derived :class:`ModulatorParams`; nothing
    is adjusted incrementally.
    """

    __slots__ = ("_fundamental", "_frequency_ratio", "_depth_ratio")

    def __init__(
        self,
        fundamental: float = DEFAULT_INITIAL_FREQUENCY,
        *,
        frequency_ratio: float = 0.0,
        depth_ratio: float = 0.0,
    ) -> None:
        self._fundamental = float(fundamental)
        self._frequency_ratio = float(frequency_ratio)
        self._depth_ratio = float(depth_ratio)

    @property
    def fundamental(self) -> float:
        return self._fundamental

    @property
    def frequency_ratio(self) -> float:
        return self._frequency_ratio

    @property
    def depth_ratio(self) -> float:
        return self._depth_ratio

    def derive(self) -> ModulatorParams:
        return ModulatorParams(
            frequency=self._frequency_ratio * self._fundamental,
            depth=self._depth_ratio * self._fundamental,
        )

    def set_fundamental(self, freq: float) -> ModulatorParams:
        self._fundamental = float(freq)
        return self.derive()

    def set_frequency_ratio(self, ratio: float) -> ModulatorParams:
        self._frequency_ratio = float(ratio)
        return self.derive()

    def set_depth_ratio(self, ratio: float) -> ModulatorParams:
        self._depth_ratio = float(ratio)
        return self.derive()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(fundamental={self._fundamental!r}, "
            f"frequency_ratio={self._frequency_ratio!r}, depth_ratio={self._depth_ratio!r})"
        )


__all__ = [
    "FmParameterModel",
    "ModulatorParams",
    "REFERENCE_FREQUENCY",
    "REFERENCE_NOTE",
    "clamp_gain",
    "midi_to_freq",
]
