"""Forward discrete Fourier transform used to build custom periodic waves."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .errors import InvalidInputError

SAMPLE_DTYPE = np.float32


@dataclass(frozen=True, slots=True)
class SpectrumPair:
    """Real and imaginary DFT coefficients, index-aligned with bins ``0..N-1``."""

    real: np.ndarray
    imag: np.ndarray

    def __post_init__(self) -> None:
        real = np.ascontiguousarray(self.real, dtype=SAMPLE_DTYPE)
        imag = np.ascontiguousarray(self.imag, dtype=SAMPLE_DTYPE)
        if real.ndim != 1 or imag.ndim != 1:
            raise InvalidInputError("spectrum coefficients must be one-dimensional")
        if real.shape != imag.shape:
            raise InvalidInputError(
                f"real/imag length mismatch: {real.shape[0]} != {imag.shape[0]}"
            )
        if real.shape[0] == 0:
            raise InvalidInputError("spectrum must contain at least one bin")
        object.__setattr__(self, "real", real)
        object.__setattr__(self, "imag", imag)

    def __len__(self) -> int:
        return int(self.real.shape[0])

    def magnitudes(self) -> np.ndarray:
        return np.hypot(self.real, self.imag)

    def to_lists(self) -> list[list[float]]:
        """Return ``[real, imag]`` as plain lists, ready for JSON encoding."""

        return [self.real.tolist(), self.imag.tolist()]


def _as_samples(samples: Sequence[float] | np.ndarray) -> np.ndarray:
    try:
        array = np.asarray(samples, dtype=SAMPLE_DTYPE)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"samples must be numeric: {exc}") from exc
    if array.ndim != 1:
        raise InvalidInputError(f"samples must be one-dimensional, got rank {array.ndim}")
    if array.shape[0] == 0:
        raise InvalidInputError("cannot transform an empty sample sequence")
    if not np.all(np.isfinite(array)):
        raise InvalidInputError("samples must be finite")
    return array


def transform(samples: Sequence[float] | np.ndarray) -> SpectrumPair:
    """Return the unnormalised forward DFT of ``samples``.

    ``X[k] = sum_n x[n] * exp(-2j*pi*k*n/N)`` for every bin ``k`` in ``0..N-1``.
    No ``1/N`` scaling is applied; inverse transforms must scale themselves.

    Raises
    ------
    InvalidInputError
        If ``samples`` is empty, not one-dimensional or contains non-finite
        values.
    """

    array = _as_samples(samples)
    spectrum = np.fft.fft(array.astype(np.float64))
    return SpectrumPair(real=spectrum.real, imag=spectrum.imag)


def direct_dft(samples: Sequence[float] | np.ndarray) -> SpectrumPair:
    """O(N^2) evaluation of the same transform, kept as a reference."""

    array = _as_samples(samples).astype(np.float64)
    n = array.shape[0]
    k = np.arange(n, dtype=np.float64)
    # Reduce k*n modulo N before scaling so large windows keep their precision.
    kn = np.mod(np.outer(k, k), n)
    kernel = np.exp(-2j * np.pi * kn / n)
    spectrum = kernel @ array
    return SpectrumPair(real=spectrum.real, imag=spectrum.imag)


__all__ = ["SAMPLE_DTYPE", "SpectrumPair", "direct_dft", "transform"]
