"""Debouncing of raw change notifications keyed by event identity."""

import asyncio
import logging
from typing import Callable, Dict, Optional

from .models import RawFSEvent, identity_key


logger = logging.getLogger(__name__)


class Debouncer:
    """
    Coalesces raw events that share an identity key.

    Each submission for a key cancels the pending timer of that key and
    starts a new one, so only the latest event of a burst is delivered,
    once the key has been quiet for a full window.

    The entry table is owned by the event loop: submit() and the timer
    callbacks all run on the loop thread, which serializes every mutation.
    Code on other threads must go through loop.call_soon_threadsafe().
    """

    def __init__(
        self,
        window: Optional[float],
        on_ready: Callable[[RawFSEvent], None],
        key_func: Callable[[RawFSEvent], str] = identity_key,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """
        Initialize the debouncer.

        Args:
            window: Quiet window in seconds; None or 0 disables debouncing
            on_ready: Called with the surviving event of each burst
            key_func: Maps a raw event to its identity key
            loop: Event loop for timers (defaults to the running loop)
        """
        self.window = window
        self.on_ready = on_ready
        self.key_func = key_func
        self._loop = loop
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._idle: Optional[asyncio.Event] = None

    @property
    def enabled(self) -> bool:
        return bool(self.window)

    @property
    def pending(self) -> int:
        """Number of keys waiting for their window to elapse."""
        return len(self._timers)

    def __contains__(self, key: str) -> bool:
        return key in self._timers

    def submit(self, event: RawFSEvent) -> None:
        """
        Submit a filtered raw event.

        Args:
            event: The raw event
        """
        if not self.enabled:
            self.on_ready(event)
            return

        loop = self._get_loop()
        key = self.key_func(event)

        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
            logger.debug(f"Debounce restarted for {event.kind.value} {event.path}")

        self._timers[key] = loop.call_later(self.window, self._fire, key, event)
        self._get_idle().clear()

    def _fire(self, key: str, event: RawFSEvent) -> None:
        """Timer callback: remove the entry, then deliver its event."""
        del self._timers[key]
        if not self._timers:
            self._get_idle().set()

        logger.debug(f"Debounce elapsed for {event.kind.value} {event.path}")
        self.on_ready(event)

    def cancel_all(self) -> int:
        """
        Drop every pending entry without delivering it.

        Returns:
            Number of entries dropped
        """
        count = len(self._timers)
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._get_idle().set()
        return count

    async def wait_idle(self) -> None:
        """Wait until no key is pending."""
        if not self._timers:
            return
        await self._get_idle().wait()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _get_idle(self) -> asyncio.Event:
        # Created lazily so the Event binds to the loop that runs the timers
        if self._idle is None:
            self._idle = asyncio.Event()
            if not self._timers:
                self._idle.set()
        return self._idle
