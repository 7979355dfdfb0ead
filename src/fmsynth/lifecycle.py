"""Scoped ownership of a host audio context."""

from __future__ import annotations

import weakref

from .diagnostics import log_synth_event
from .errors import HostUnavailableError
from .host import HostContext


def _close_context(context: HostContext) -> None:
    try:
        context.close()
    except Exception as exc:  # teardown is best-effort
        log_synth_event(f"teardown: host close failed ({type(exc).__name__}: {exc})")
    else:
        log_synth_event("teardown: context released")


class ContextGuard:
    """Releases a host context exactly once.

    ``release()`` may be called any number of times; only the first call
    reaches the host.  If the guard is garbage collected without an explicit
    release the context is closed by a :func:`weakref.finalize` hook.
    """

    __slots__ = ("_context", "_finalizer", "__weakref__")

    def __init__(self, context: HostContext) -> None:
        self._context = context
        self._finalizer = weakref.finalize(self, _close_context, context)

    @property
    def released(self) -> bool:
        return not self._finalizer.alive

    @property
    def context(self) -> HostContext:
        if self.released:
            raise HostUnavailableError("audio context has been released")
        return self._context

    def ensure_open(self) -> None:
        if self.released:
            raise HostUnavailableError("audio context has been released")

    def release(self) -> bool:
        """Close the context; return ``False`` when it was already released."""

        if self.released:
            return False
        self._finalizer()
        return True

    def __enter__(self) -> "ContextGuard":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


__all__ = ["ContextGuard"]
