"""
Flux temps reel des changements / Real-time change feed.

Livraison au mieux : une erreur de diffusion ne remonte jamais vers
l'enregistrement du changement.
Best-effort delivery: a broadcast failure never reaches the change recording.
"""

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

logger = logging.getLogger("rewind.feed")

# Evenements en attente du commit / Events waiting for commit
PENDING_EVENTS_KEY = "rewind.pending_feed_events"


class ChangeFeedPublisher:
    """Gestionnaire de connexions WebSocket / WebSocket connection manager."""

    def __init__(self):
        self.active_connections: list[WebSocket] = []
        self._tasks: set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, message: dict[str, Any]):
        """Envoyer a tous les clients connectes / Broadcast to all connected clients."""
        data = json.dumps(message, ensure_ascii=False)
        disconnected = []
        for connection in self.active_connections:
            try:
                await connection.send_text(data)
            except Exception:
                disconnected.append(connection)
        for conn in disconnected:
            self.disconnect(conn)

    async def publish(self, message: dict[str, Any]):
        await self.broadcast(message)

    def publish_nowait(self, message: dict[str, Any]) -> None:
        """Planifier la diffusion sans attendre / Schedule the broadcast without waiting."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running loop, dropped feed event %s", message.get("type"))
            return
        task = loop.create_task(self.publish(message))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Change feed delivery failed: %s", exc)

    def queue(self, session: AsyncSession, message: dict[str, Any]) -> None:
        """Diffuser apres le commit de la session / Deliver once the session commits."""
        session.info.setdefault(PENDING_EVENTS_KEY, []).append((self, message))

    async def drain(self) -> None:
        """Attendre les diffusions en cours / Wait for in-flight deliveries (tests, shutdown)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


@event.listens_for(Session, "after_commit")
def _deliver_after_commit(session: Session) -> None:
    for publisher, message in session.info.pop(PENDING_EVENTS_KEY, []):
        publisher.publish_nowait(message)


@event.listens_for(Session, "after_rollback")
def _discard_after_rollback(session: Session) -> None:
    session.info.pop(PENDING_EVENTS_KEY, None)
