"""Online/offline state machine with edge-triggered events.

This module provides:
- ConnectivityMonitor: Tracks connectivity and notifies listeners on transitions
- ConnectivityEvent: RECONNECTED and DISCONNECTED

The monitor is fed either by the host (update()) or by its own probe loop
(run()), which polls an async health check such as StoryClient.health_check.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from storysync.core.types import ConnectivityState

logger = logging.getLogger(__name__)

# Probe configuration
DEFAULT_PROBE_INTERVAL = 5.0  # seconds between health checks

Listener = Callable[[], Awaitable[None] | None]
HealthCheck = Callable[[], Awaitable[bool]]


class ConnectivityEvent(str, Enum):
    """Transition published by the monitor."""

    RECONNECTED = "reconnected"
    DISCONNECTED = "disconnected"


class ConnectivityMonitor:
    """Two-state connectivity tracker.

    Events fire only on transitions: RECONNECTED once per offline -> online
    edge, DISCONNECTED once per online -> offline edge. Listeners may be
    plain functions or coroutine functions; coroutines are awaited in
    registration order before update() returns.
    """

    def __init__(self, initial_online: bool = True) -> None:
        """Initialize the monitor.

        Args:
            initial_online: Whether the network is considered up at start.
        """
        self._state = ConnectivityState.ONLINE if initial_online else ConnectivityState.OFFLINE
        self._listeners: dict[ConnectivityEvent, list[Listener]] = {
            event: [] for event in ConnectivityEvent
        }
        self._stop = asyncio.Event()

    @property
    def state(self) -> ConnectivityState:
        """Current connectivity state."""
        return self._state

    @property
    def is_online(self) -> bool:
        """Check if the network is considered up."""
        return self._state == ConnectivityState.ONLINE

    def on_event(self, event: ConnectivityEvent, listener: Listener) -> Callable[[], None]:
        """Register a listener for a transition.

        Returns:
            Callable that removes the listener.
        """
        self._listeners[event].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[event]:
                self._listeners[event].remove(listener)

        return unsubscribe

    async def update(self, is_online: bool) -> bool:
        """Record the current connectivity.

        Args:
            is_online: Whether the network is reachable now.

        Returns:
            True if the state changed (and listeners were notified).
        """
        new_state = ConnectivityState.ONLINE if is_online else ConnectivityState.OFFLINE
        if new_state == self._state:
            return False

        self._state = new_state
        event = ConnectivityEvent.RECONNECTED if is_online else ConnectivityEvent.DISCONNECTED
        logger.info("Connectivity changed: %s", event.value)
        await self._emit(event)
        return True

    async def _emit(self, event: ConnectivityEvent) -> None:
        for listener in list(self._listeners[event]):
            try:
                result = listener()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Connectivity listener failed on %s", event.value)

    # === Probe loop ===

    async def probe(self, check: HealthCheck) -> bool:
        """Run one health check and record its outcome.

        A health check that raises counts as offline.

        Returns:
            The connectivity observed.
        """
        try:
            online = bool(await check())
        except Exception as e:
            logger.debug("Health check failed: %s", e)
            online = False
        await self.update(online)
        return online

    async def run(
        self,
        check: HealthCheck,
        interval: float = DEFAULT_PROBE_INTERVAL,
    ) -> None:
        """Probe connectivity until stop() is called.

        Args:
            check: Async health check returning True when reachable.
            interval: Seconds between checks.
        """
        self._stop.clear()
        logger.info("Monitoring connectivity (checking every %.0fs)", interval)
        while not self._stop.is_set():
            await self.probe(check)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Connectivity monitoring stopped")

    def stop(self) -> None:
        """Stop a running probe loop."""
        self._stop.set()
