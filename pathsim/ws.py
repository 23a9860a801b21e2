from __future__ import annotations

"""
File: pathsim/ws.py
Purpose: WebSocket connection manager for streaming simulation snapshots.
Key responsibilities:
- Track renderer/dashboard clients.
- Replay the latest snapshot to new clients, then broadcast one per tick.
"""

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger("path-sim.ws")


class WSManager:
    """Manage WebSocket clients and broadcast snapshots."""
    def __init__(self) -> None:
        self.clients: set[WebSocket] = set()
        self.latest: dict[str, Any] | None = None
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a client and send it the current snapshot, if any."""
        await websocket.accept()
        async with self._lock:
            self.clients.add(websocket)
        if self.latest is not None:
            await websocket.send_text(self._encode(self.latest))

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self.clients.discard(websocket)

    async def broadcast(self, snapshot: dict[str, Any]) -> None:
        """Remember the snapshot and push it to every connected client."""
        self.latest = snapshot
        async with self._lock:
            clients = list(self.clients)
        if not clients:
            return
        data = self._encode(snapshot)
        stale: list[WebSocket] = []
        for client in clients:
            try:
                await client.send_text(data)
            except Exception:  # noqa: BLE001
                stale.append(client)
        if stale:
            logger.info("dropping %d stale websocket client(s)", len(stale))
            async with self._lock:
                for client in stale:
                    self.clients.discard(client)

    @staticmethod
    def _encode(snapshot: dict[str, Any]) -> str:
        return json.dumps({"event_type": "snapshot.tick", "snapshot": snapshot}, separators=(",", ":"))
