"""Network-idle detection for browser render sessions.

A watcher tracks in-flight requests reported by the browser and signals
"idle" once nothing has been outstanding for a quiet period. It is a
debounce: every transition to "no pending requests" restarts a single-shot
timer, and any new request stops it.

Concurrency model:
- One ``threading.Lock`` guards the pending set and the timer. Nothing
  blocks or awaits while it is held.
- The timer is a ``threading.Timer``; when it fires it hands the idle signal
  to the event loop with ``call_soon_threadsafe``.
- The idle signal is an ``asyncio.Event``: setting it repeatedly before the
  waiter consumes it is a no-op.

Events may be delivered from the event loop or from other threads, out of
order, or after the waiter has already timed out.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Hashable
from dataclasses import dataclass
from typing import Literal

from loguru import logger

from agent_fetch.constants import DEFAULT_NETWORK_IDLE

# Long-lived connections never "finish" and must not block idle detection
IGNORED_RESOURCE_TYPES = frozenset({"websocket", "eventsource"})


@dataclass(frozen=True)
class NetworkEvent:
    """A network lifecycle event from a render session."""

    kind: Literal["started", "finished", "failed"]
    request_id: Hashable
    resource_type: str = ""


class NetworkIdleWatcher:
    """Signals when no request has been pending for ``idle_after`` seconds.

    Create one watcher per render session, inside the event loop that will
    call ``wait()``.
    """

    def __init__(
        self,
        idle_after: float = DEFAULT_NETWORK_IDLE,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if idle_after <= 0:
            idle_after = DEFAULT_NETWORK_IDLE
        self.idle_after = idle_after
        self._loop = loop or asyncio.get_running_loop()
        self._lock = threading.Lock()
        self._pending: set[Hashable] = set()
        self._timer: threading.Timer | None = None
        self._generation = 0
        self._idle = asyncio.Event()
        self._closed = False

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def listen(self, event: NetworkEvent) -> None:
        """Apply one network event to the pending set."""
        with self._lock:
            if self._closed:
                return
            if event.kind == "started":
                if event.resource_type.lower() in IGNORED_RESOURCE_TYPES:
                    return
                self._pending.add(event.request_id)
            elif event.kind in ("finished", "failed"):
                self._pending.discard(event.request_id)
            else:
                return
            self._reset_timer_locked()

    # Convenience wrappers used as browser event callbacks

    def request_started(self, request_id: Hashable, resource_type: str = "") -> None:
        self.listen(NetworkEvent("started", request_id, resource_type))

    def request_finished(self, request_id: Hashable) -> None:
        self.listen(NetworkEvent("finished", request_id))

    def request_failed(self, request_id: Hashable) -> None:
        self.listen(NetworkEvent("failed", request_id))

    async def wait(self, timeout: float | None = None) -> None:
        """Block until the network has been idle for ``idle_after`` seconds.

        The timer is re-armed first, which covers sessions where the pending
        set was already empty before waiting started.

        Raises:
            asyncio.TimeoutError: If ``timeout`` elapses first
        """
        with self._lock:
            self._reset_timer_locked()

        await asyncio.wait_for(self._idle.wait(), timeout)
        self._idle.clear()
        logger.debug("[Idle] Network idle reached")

    def close(self) -> None:
        """Stop the timer and ignore any later events."""
        with self._lock:
            self._closed = True
            self._stop_timer_locked()

    def _stop_timer_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _reset_timer_locked(self) -> None:
        self._stop_timer_locked()
        if self._pending or self._closed:
            return
        self._generation += 1
        timer = threading.Timer(self.idle_after, self._fire, args=(self._generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A superseded timer may still fire if cancel() raced with expiry
            if generation != self._generation or self._pending or self._closed:
                return
            self._timer = None
        try:
            self._loop.call_soon_threadsafe(self._idle.set)
        except RuntimeError:
            # Event loop already closed; nobody is waiting anymore
            logger.debug("[Idle] Event loop closed before idle signal")
