"""Interactive editing: fast previews now, full regeneration when input settles.

Every edit regenerates immediately without holes, which skips the boolean
work, and (re)arms a single timer. Only when no edit has arrived for the
quiescence delay does the full generation with holes run. All scheduling
happens on the running asyncio loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from .params import Parameters

logger = logging.getLogger(__name__)


class PendingTask:
    """Single-slot register for a delayed callback.

    Scheduling a new callback cancels the one already waiting.
    """

    def __init__(self):
        self._handle: Optional[asyncio.TimerHandle] = None
        self._callback: Optional[Callable[[], Any]] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._callback = callback
        self._handle = loop.call_later(delay, self._fire)
        return self._handle

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._callback = None

    def _fire(self) -> None:
        callback = self._callback
        self._handle = None
        self._callback = None
        if callback is not None:
            callback()

    def run_now(self) -> bool:
        """Run the waiting callback immediately; False if nothing was waiting."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True


class Debouncer:
    """Runs a callback once input has been quiet for ``delay`` seconds."""

    def __init__(self, delay: float):
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.delay = delay
        self._task = PendingTask()

    @property
    def pending(self) -> bool:
        return self._task.pending

    def trigger(self, callback: Callable[[], Any]) -> None:
        self._task.schedule(self.delay, callback)

    def flush(self) -> bool:
        return self._task.run_now()

    def cancel(self) -> None:
        self._task.cancel()


class InteractiveSession:
    """Drives a :class:`~railcad.system.RailSystem` from parameter edits.

    Args:
        system: Generation owner
        params: Starting parameters
        delay: Quiescence delay in seconds; defaults to the system's
            ``debounce_delay`` setting
    """

    def __init__(self, system, params: Optional[Parameters] = None,
                 delay: Optional[float] = None):
        self.system = system
        self.params = params if params is not None else Parameters()
        if delay is None:
            delay = system.settings.debounce_delay
        self._debouncer = Debouncer(delay)

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def edit(self, **changes):
        """Apply ``changes``, show a preview and schedule the full generation.

        Invalid values raise :class:`ValueError` and leave the session
        untouched.
        """
        self.params = self.params.replace(**changes)
        preview = self.system.generate(self.params, skip_holes=True)
        self._debouncer.trigger(self._regenerate)
        return preview

    def _regenerate(self) -> None:
        logger.debug("input settled, running full generation")
        self.system.generate(self.params, skip_holes=False)

    def flush(self) -> bool:
        """Run a scheduled full generation now."""
        return self._debouncer.flush()

    def close(self) -> None:
        self._debouncer.cancel()


__all__ = ['PendingTask', 'Debouncer', 'InteractiveSession']
