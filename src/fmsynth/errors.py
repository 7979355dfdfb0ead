"""Exception taxonomy shared by the synthesis kernel."""

from __future__ import annotations


class FmSynthError(Exception):
    """Base class for every error raised by :mod:`fmsynth`."""


class InvalidInputError(FmSynthError, ValueError):
    """Raised when a transform receives an empty or malformed sample sequence."""


class UnknownWaveTypeError(FmSynthError, KeyError):
    """Raised when a wave-type name does not resolve to a known waveform."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"unknown wave type {self.name!r}"


class HostUnavailableError(FmSynthError, RuntimeError):
    """Raised when the host audio engine is missing or already torn down."""


__all__ = [
    "FmSynthError",
    "HostUnavailableError",
    "InvalidInputError",
    "UnknownWaveTypeError",
]
