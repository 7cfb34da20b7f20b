"""Websocket endpoint for world-node channels.

Each world process holds one long-lived websocket. Every text frame is one
event; frames are handled concurrently, each in its own task, and a failure in
one frame is logged without touching the channel or its other frames.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket
from starlette.concurrency import run_in_threadpool

from login_server.core.coordinator import SessionCoordinator
from login_server.protocol.messages import ProtocolError, Reply, decode_event

logger = logging.getLogger(__name__)


class WorldChannel:
    """One connected world node.

    Replies are serialized through a per-channel lock because several frame
    tasks may finish at once and a websocket accepts one send at a time.
    """

    def __init__(self, websocket: WebSocket, coordinator: SessionCoordinator) -> None:
        self.websocket = websocket
        self.coordinator = coordinator
        self._send_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def peer(self) -> str:
        client = self.websocket.client
        return f"{client.host}:{client.port}" if client else "unknown"

    async def serve(self) -> None:
        """Read frames until the node disconnects, then drain in-flight work."""
        while True:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            frame = message.get("text")
            if frame is None:
                frame = message.get("bytes")
            if frame is None:
                continue
            task = asyncio.create_task(self.handle_frame(frame))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def handle_frame(self, frame: str | bytes) -> None:
        try:
            event = decode_event(frame)
        except ProtocolError as exc:
            logger.error("Dropped frame from %s: %s", self.peer, exc)
            return

        try:
            reply = await run_in_threadpool(self.coordinator.handle, event)
        except Exception:
            logger.exception("Failed to handle %s from %s", event.type, self.peer)
            return

        if reply is not None:
            await self.send(reply)

    async def send(self, reply: Reply) -> None:
        try:
            async with self._send_lock:
                await self.websocket.send_json(reply.to_wire())
        except Exception:
            logger.warning(
                "Could not deliver %s reply to %s", reply.type, self.peer, exc_info=True
            )


def router(coordinator: SessionCoordinator, channels: set[WorldChannel]) -> APIRouter:
    """Build the world-node router bound to ``coordinator``."""
    api = APIRouter(tags=["world"])

    async def world_channel(websocket: WebSocket) -> None:
        await websocket.accept()
        channel = WorldChannel(websocket, coordinator)
        channels.add(channel)
        logger.info("World node connected from %s", channel.peer)
        try:
            await channel.serve()
        finally:
            channels.discard(channel)
            logger.info("World node %s disconnected", channel.peer)

    api.add_api_websocket_route("/", world_channel)
    api.add_api_websocket_route("/ws", world_channel)
    return api
