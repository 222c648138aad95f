"""
Live feed session over Socket.IO.

Connection lifecycle:
- DISCONNECTED -> CONNECTING on connect()
- CONNECTING -> CONNECTED when the handshake completes
- CONNECTED -> RECONNECTING when the transport drops; the client's own
  bounded backoff takes over
- CONNECTED -> DISCONNECTED on disconnect() or when the server closes the
  socket, in which case the session reconnects by itself (the transport
  does not retry server-initiated disconnects)

Listeners attach through on_alert()/on_live_occupancy(), each returning a
Subscription whose release() detaches only that one listener.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

import socketio
from socketio import exceptions as socketio_exceptions

from ..models import CanonicalAlert, LiveOccupancyEvent
from ..normalizer import EventNormalizer

logger = logging.getLogger(__name__)

ALERT_EVENT = "alert"
OCCUPANCY_EVENT = "liveOccupancy"

# Disconnect reasons reported when the server closed the socket
SERVER_DISCONNECT_REASONS = frozenset({"io server disconnect", "server disconnect"})
CLIENT_DISCONNECT_REASONS = frozenset({"io client disconnect", "client disconnect"})

AlertCallback = Callable[[CanonicalAlert], Union[None, Awaitable[None]]]
OccupancyCallback = Callable[[LiveOccupancyEvent], Union[None, Awaitable[None]]]


class SessionState(Enum):
    """Connection state of the live feed."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class Subscription:
    """Handle for one registered listener."""

    def __init__(self, listeners: list, callback: Callable):
        self._listeners = listeners
        self.callback = callback
        self.active = True
        listeners.append(self)

    def release(self) -> None:
        """Detach this listener. Safe to call more than once."""
        if not self.active:
            return
        self.active = False
        if self in self._listeners:
            self._listeners.remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.release()


class LiveFeedSession:
    """
    Authenticated push-channel session delivering canonical alerts and
    occupancy readings.
    """

    def __init__(
        self,
        url: str,
        token_provider: Callable[[], Optional[str]],
        normalizer: EventNormalizer,
        transports: Optional[list[str]] = None,
        reconnection_attempts: int = 5,
        reconnection_delay: float = 1.0,
        client_factory: Optional[Callable[..., Any]] = None,
    ):
        """
        Args:
            url: Socket.IO endpoint
            token_provider: Returns the current auth token, or None
            normalizer: Converts raw alert payloads into CanonicalAlerts
            transports: Transport preference, websocket first by default
            reconnection_attempts: Bounded retries for transport drops
            reconnection_delay: Initial backoff in seconds
            client_factory: Builds the Socket.IO client (for tests)
        """
        self.url = url
        self.token_provider = token_provider
        self.normalizer = normalizer
        self.transports = transports or ["websocket", "polling"]
        self.reconnection_attempts = reconnection_attempts
        self.reconnection_delay = reconnection_delay
        self.client_factory = client_factory or socketio.AsyncClient

        self.state = SessionState.DISCONNECTED
        self._client = None
        self._closing = False
        self._reconnect_task: Optional[asyncio.Task] = None

        self._alert_listeners: list[Subscription] = []
        self._occupancy_listeners: list[Subscription] = []

        # Statistics
        self.alerts_received = 0
        self.occupancy_received = 0
        self.events_dropped = 0
        self.listener_errors = 0
        self.connects = 0
        self.disconnects = 0

    @property
    def connected(self) -> bool:
        return self.state == SessionState.CONNECTED

    def _build_client(self):
        client = self.client_factory(
            reconnection=True,
            reconnection_attempts=self.reconnection_attempts,
            reconnection_delay=self.reconnection_delay,
        )
        client.on("connect", self._on_connect)
        client.on("disconnect", self._on_disconnect)
        client.on("connect_error", self._on_connect_error)
        client.on(ALERT_EVENT, self._handle_alert)
        client.on(OCCUPANCY_EVENT, self._handle_occupancy)
        return client

    async def connect(self) -> bool:
        """Open the push channel.

        Returns:
            True if connected (or a connection is already in progress)
        """
        if self.state in (SessionState.CONNECTED, SessionState.CONNECTING):
            logger.debug("Live feed already connected")
            return True

        token = self.token_provider()
        if not token:
            logger.error("Cannot connect live feed: no authentication token")
            return False

        # Drop any stale client before building a new one
        if self._client is not None:
            await self._release_client()

        self._closing = False
        self.state = SessionState.CONNECTING
        self._client = self._build_client()

        try:
            await self._client.connect(
                self.url,
                auth={"token": token},
                transports=self.transports,
            )
        except socketio_exceptions.ConnectionError as e:
            logger.error(f"Live feed connection error: {e}")
            self.state = SessionState.DISCONNECTED
            await self._release_client()
            return False

        if self.state == SessionState.CONNECTING:
            self.state = SessionState.CONNECTED
        return True

    async def disconnect(self) -> None:
        """Close the push channel and release the client. Idempotent."""
        self._closing = True

        if self._reconnect_task and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None

        if self._client is not None:
            await self._release_client()
            logger.info("Live feed disconnected")

        self.state = SessionState.DISCONNECTED

    async def _release_client(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.disconnect()
        except Exception as e:
            logger.error(f"Error closing live feed client: {e}")

    async def _reconnect(self) -> None:
        """Reconnect after the server closed the socket."""
        await asyncio.sleep(self.reconnection_delay)
        if self._closing:
            return
        logger.info("Reconnecting live feed after server disconnect")
        await self.connect()

    # Transport callbacks

    async def _on_connect(self) -> None:
        self.state = SessionState.CONNECTED
        self.connects += 1
        logger.info(f"Live feed connected to {self.url}")

    async def _on_disconnect(self, reason: Optional[str] = None) -> None:
        self.disconnects += 1
        logger.info(f"Live feed disconnected: {reason}")

        if self._closing or reason in CLIENT_DISCONNECT_REASONS:
            self.state = SessionState.DISCONNECTED
            return

        if reason in SERVER_DISCONNECT_REASONS:
            # The transport does not retry these; reconnect ourselves
            self.state = SessionState.DISCONNECTED
            if self._reconnect_task is None or self._reconnect_task.done():
                self._reconnect_task = asyncio.create_task(self._reconnect())
            return

        self.state = SessionState.RECONNECTING

    async def _on_connect_error(self, data: Any = None) -> None:
        logger.error(f"Live feed connection error: {data}")

    # Inbound events

    async def _dispatch(self, listeners: list[Subscription], event: Any, kind: str) -> None:
        for subscription in list(listeners):
            try:
                result = subscription.callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.listener_errors += 1
                logger.error(f"Error in {kind} callback: {e}")

    async def _handle_alert(self, data: Any = None) -> None:
        self.alerts_received += 1
        alert = self.normalizer.normalize(data)
        logger.debug(f"Alert received: {alert.action_type.value} {alert.zone!r} ({alert.id})")
        await self._dispatch(self._alert_listeners, alert, "alert")

    async def _handle_occupancy(self, data: Any = None) -> None:
        event = self.normalizer.normalize_occupancy(data)
        if event is None:
            self.events_dropped += 1
            return
        self.occupancy_received += 1
        await self._dispatch(self._occupancy_listeners, event, "occupancy")

    # Subscriptions

    async def on_alert(self, callback: AlertCallback) -> Subscription:
        """Register an alert listener, connecting first if needed."""
        if self._client is None:
            await self.connect()
        return Subscription(self._alert_listeners, callback)

    async def on_live_occupancy(self, callback: OccupancyCallback) -> Subscription:
        """Register an occupancy listener, connecting first if needed."""
        if self._client is None:
            await self.connect()
        return Subscription(self._occupancy_listeners, callback)

    def get_stats(self) -> dict:
        """Get session statistics."""
        return {
            "state": self.state.value,
            "alerts_received": self.alerts_received,
            "occupancy_received": self.occupancy_received,
            "events_dropped": self.events_dropped,
            "listener_errors": self.listener_errors,
            "connects": self.connects,
            "disconnects": self.disconnects,
            "alert_listeners": len(self._alert_listeners),
            "occupancy_listeners": len(self._occupancy_listeners),
        }
