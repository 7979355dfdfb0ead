"""Opt-in event log for host wiring, parameter writes and teardown."""
from __future__ import annotations

import os
import threading
from pathlib import Path

__all__ = [
    "enable_synth_logging",
    "synth_logging_enabled",
    "log_synth_event",
    "set_log_path",
]


_LOGGING_ENV = "FMSYNTH_LOG"
_LOG_SYNTH_EVENTS = os.environ.get(_LOGGING_ENV, "").strip().lower() in {"1", "true", "yes", "on"}
_LOG_PATH = Path("logs/synth_events.log")
_LOG_LOCK = threading.Lock()


def enable_synth_logging(enabled: bool) -> None:
    """Enable or disable the synthesis event log."""

    global _LOG_SYNTH_EVENTS
    _LOG_SYNTH_EVENTS = bool(enabled)


def synth_logging_enabled() -> bool:
    """Return ``True`` when synthesis event logging is enabled."""

    return _LOG_SYNTH_EVENTS


def set_log_path(path: str | Path) -> Path:
    """Redirect the event log to ``path`` and return the previous location."""

    global _LOG_PATH
    previous = _LOG_PATH
    _LOG_PATH = Path(path)
    return previous


def log_synth_event(message: str) -> None:
    """Append ``message`` to the event log when logging is enabled."""

    if not _LOG_SYNTH_EVENTS:
        return
    try:
        _LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        return
    try:
        with _LOG_LOCK:
            with _LOG_PATH.open("a", encoding="utf-8") as handle:
                handle.write(f"{message}\n")
    except OSError:
        return
