"""Debounced mutation watcher.

Turns an unbounded stream of "something changed" notifications into a
single trailing-edge re-scan trigger: the trigger fires once no new
notification has arrived for ``delay`` seconds. Every notification
cancels the pending timer and starts a new one, so a burst of N
notifications yields exactly one trigger, ``delay`` after the last one.

The watcher is an explicit two-state machine (IDLE / PENDING) holding a
single cancellable timer handle. Timers come from an injected scheduler
exposing ``call_later(delay, callback)``; an asyncio event loop works as
is, and tests pass a fake clock.

Usage::

    loop = asyncio.get_running_loop()
    watcher = MutationWatcher(orchestrator.scan, loop, delay=0.5)
    watcher.attach(document)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from intelbridge.constants import DEFAULT_DEBOUNCE_SECONDS

log = logging.getLogger("intelbridge.mutation_watcher")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any],
                   *args: Any) -> TimerHandle: ...


class WatcherState(Enum):
    IDLE = "IDLE"
    PENDING = "PENDING"


class MutationWatcher:
    """Trailing-edge debounce in front of a re-scan callback."""

    def __init__(self, on_trigger: Callable[[], Any], scheduler: Scheduler,
                 delay: float = DEFAULT_DEBOUNCE_SECONDS) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.on_trigger = on_trigger
        self.scheduler = scheduler
        self.delay = delay
        self._state = WatcherState.IDLE
        self._handle: Optional[TimerHandle] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.notifications = 0
        self.triggers = 0

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._state is WatcherState.PENDING

    def attach(self, document) -> None:
        """Subscribe to *document*'s mutation stream."""
        self.detach()
        self._unsubscribe = document.subscribe(lambda record: self.notify())

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def notify(self) -> None:
        """Record one change notification and (re)start the quiet timer."""
        self.notifications += 1
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self.scheduler.call_later(self.delay, self._fire)
        self._state = WatcherState.PENDING

    def _fire(self) -> None:
        self._handle = None
        self._state = WatcherState.IDLE
        self.triggers += 1
        log.debug("Debounce window elapsed after %d notification(s), triggering scan",
                  self.notifications)
        try:
            self.on_trigger()
        except Exception as e:
            log.error("Scan trigger failed: %s", e, exc_info=True)

    def flush(self) -> bool:
        """Fire a pending trigger now. Returns False if nothing was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def cancel(self) -> None:
        """Drop any pending trigger and detach from the document."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._state = WatcherState.IDLE
        self.detach()
