"""
Playback Clocks

Automatic playback is a single repeating tick that calls the controller's
``step_forward()``. The controller never owns a timer itself; it drives one
of these clocks, which only schedule and cancel the tick.

Usage:
    async def main():
        controller = TraversalController(tree, layout, clock=AsyncioClock())
        controller.play(speed=8)
        while controller.is_playing:
            await asyncio.sleep(0.1)
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Tick = Callable[[], None]


class PlaybackClock:
    """A single repeating tick with synchronous cancellation."""

    def schedule(self, interval_s: float, callback: Tick):
        """Start ticking every ``interval_s`` seconds, replacing any current tick."""
        raise NotImplementedError

    def cancel(self):
        """Stop ticking. No tick fires after this returns."""
        raise NotImplementedError

    @property
    def active(self) -> bool:
        raise NotImplementedError


class AsyncioClock(PlaybackClock):
    """
    Ticks on an asyncio event loop through chained ``call_later`` handles.

    Each tick runs to completion before the next one is scheduled, so ticks
    never overlap. Cancelling drops the pending handle and bumps a
    generation counter, so a tick that cancels its own clock is not
    rescheduled.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._generation = 0
        self._interval = 0.0
        self._callback: Optional[Tick] = None
        self._running = False

    @property
    def active(self) -> bool:
        return self._running

    def schedule(self, interval_s: float, callback: Tick):
        self.cancel()
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._interval = interval_s
        self._callback = callback
        self._running = True
        generation = self._generation
        logger.debug("Clock scheduled every %.3fs (generation %d)", interval_s, generation)
        self._handle = self._loop.call_later(interval_s, self._fire, generation)

    def cancel(self):
        self._running = False
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, generation: int):
        if generation != self._generation:
            return
        self._handle = None
        try:
            self._callback()
        except Exception:
            # A failed tick stops the chain; nothing is rescheduled.
            self._running = False
            self._generation += 1
            raise
        if generation == self._generation:
            self._handle = self._loop.call_later(self._interval, self._fire, generation)


class ManualClock(PlaybackClock):
    """Clock whose ticks fire only when ``tick()`` is called."""

    def __init__(self):
        self.interval_s: Optional[float] = None
        self._callback: Optional[Tick] = None
        self.ticks = 0

    @property
    def active(self) -> bool:
        return self._callback is not None

    def schedule(self, interval_s: float, callback: Tick):
        self.interval_s = interval_s
        self._callback = callback

    def cancel(self):
        self._callback = None

    def tick(self) -> bool:
        """Fire one tick. Returns False when the clock is not running."""
        if self._callback is None:
            return False
        self.ticks += 1
        self._callback()
        return True

    def run(self, max_ticks: int = 10000) -> int:
        """Tick until the clock is cancelled; returns the number of ticks fired."""
        fired = 0
        while fired < max_ticks and self.tick():
            fired += 1
        return fired
