"""Time-domain readback from the analyser node."""

from __future__ import annotations

import numpy as np

from .host import AnalyserHandle
from .lifecycle import ContextGuard
from .spectrum import SAMPLE_DTYPE, SpectrumPair, transform

BYTE_CENTER = 128


class AnalysisReadback:
    """Pulls oscilloscope-style byte snapshots from an analyser.

    Each byte encodes one sample as ``floor(128 * (1 + x))`` clipped to
    ``0..255``, so silence reads as 128.  Reads never block: when the host
    has nothing newer, the last rendered window is returned again.
    """

    __slots__ = ("_analyser", "_guard", "_buffer_length")

    def __init__(self, analyser: AnalyserHandle, guard: ContextGuard | None = None) -> None:
        self._analyser = analyser
        self._guard = guard
        self._buffer_length = int(analyser.frequency_bin_count)

    def buffer_length(self) -> int:
        """Number of samples per snapshot (the analyser's frequency-bin count)."""

        return self._buffer_length

    def read_array(self) -> np.ndarray:
        if self._guard is not None:
            self._guard.ensure_open()
        data = np.zeros(self._buffer_length, dtype=np.uint8)
        self._analyser.get_byte_time_domain_data(data)
        return data

    def read(self) -> bytes:
        """Return one snapshot of exactly :meth:`buffer_length` bytes.

        Raises :class:`~fmsynth.errors.HostUnavailableError` once the host
        context is gone.
        """

        return self.read_array().tobytes()

    def read_samples(self) -> np.ndarray:
        """Decode a snapshot back to floats in ``[-1, 1)``."""

        data = self.read_array().astype(SAMPLE_DTYPE)
        return (data - BYTE_CENTER) / float(BYTE_CENTER)

    def spectrum(self) -> SpectrumPair:
        return transform(self.read_samples())


__all__ = ["AnalysisReadback", "BYTE_CENTER"]
