"""FastAPI relay exposing orchestrator events to remote viewers."""

import asyncio
import logging
import uuid
from time import time
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect

from minerva.events import SystemEvent
from minerva.network import LocalServer, Subscription
from minerva.ops import TelemetryStore


logger = logging.getLogger(__name__)


class EventRelay:
    """Forwards bus events to every connected WebSocket client.

    Delivery is best effort: a client whose send fails is dropped and the
    remaining clients still receive the event.
    """

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self._lock = asyncio.Lock()
        self.forwarded = 0

    async def connect(self, websocket: WebSocket, client_id: str) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self.active_connections[client_id] = websocket

    async def disconnect(self, client_id: str) -> None:
        async with self._lock:
            self.active_connections.pop(client_id, None)

    async def send_personal(self, client_id: str, message: Dict) -> bool:
        """Send a message to a specific client."""
        websocket = self.active_connections.get(client_id)
        if websocket:
            try:
                await websocket.send_json(message)
                return True
            except Exception as e:
                logger.info("Dropping event client %s: %s", client_id, e)
                await self.disconnect(client_id)
        return False

    async def broadcast(self, event: SystemEvent) -> int:
        """Send an event to all clients. Returns how many received it."""
        message = {"type": "event", "event": event.to_dict()}
        delivered = 0
        for client_id in list(self.active_connections):
            if await self.send_personal(client_id, message):
                delivered += 1
        self.forwarded += 1
        return delivered

    async def pump(self, subscription: Subscription) -> None:
        """Forward events from the bus until cancelled."""
        try:
            async for event in subscription:
                await self.broadcast(event)
        finally:
            subscription.close()


def create_app(network: LocalServer, telemetry: TelemetryStore) -> FastAPI:
    """Build the relay app bound to a running event bus and telemetry store."""
    relay = EventRelay()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        pump_task = asyncio.create_task(relay.pump(network.subscribe()))
        yield
        pump_task.cancel()
        try:
            await pump_task
        except asyncio.CancelledError:
            pass

    app = FastAPI(title="Minerva Event Relay", lifespan=lifespan)
    app.state.relay = relay

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "subscribers": network.subscriber_count,
            "clients": len(relay.active_connections),
        }

    @app.get("/events")
    async def recent_events(limit: int = Query(default=50, ge=1, le=1000)):
        events = await telemetry.snapshot_events(limit)
        return {"events": [event.to_dict() for event in events]}

    @app.websocket("/ws/events")
    async def events_websocket(websocket: WebSocket, client_id: Optional[str] = None):
        client_id = client_id or str(uuid.uuid4())
        await relay.connect(websocket, client_id)
        try:
            while True:
                data = await websocket.receive_json()
                # Keep-alive only; the stream is one-way
                if isinstance(data, dict) and data.get("type") == "ping":
                    await relay.send_personal(client_id, {"type": "pong", "timestamp": time()})
        except WebSocketDisconnect:
            pass
        finally:
            await relay.disconnect(client_id)

    return app
