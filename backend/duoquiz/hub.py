from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Optional

from .models import Role

logger = logging.getLogger(__name__)


class Connection:
    """One live WebSocket attached to a session, with its outbound buffer."""

    def __init__(self, session_id: str, queue_size: int):
        self.session_id = session_id
        self.role: Optional[Role] = None
        self.participant_id: Optional[str] = None
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=queue_size)

    def push(self, message: dict[str, Any]) -> None:
        if self.queue.full():
            try:
                dropped = self.queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            else:
                logger.warning(
                    "Outbound queue full for session=%s role=%s, dropped %s",
                    self.session_id,
                    self.role.value if self.role else None,
                    dropped.get("type"),
                )
        self.queue.put_nowait(message)


class ConnectionHub:
    """
    In-memory fan-out to WebSocket connections grouped by session id.

    Nothing here awaits: pushing only enqueues, and each connection's sender
    task drains its own queue, so a slow client never holds up the caller.
    """

    def __init__(self, queue_size: int = 64) -> None:
        self._queue_size = queue_size
        self._connections: dict[str, set[Connection]] = defaultdict(set)

    def register(self, session_id: str) -> Connection:
        conn = Connection(session_id, self._queue_size)
        self._connections[session_id].add(conn)
        return conn

    def unregister(self, conn: Connection) -> None:
        conns = self._connections.get(conn.session_id)
        if not conns:
            return
        conns.discard(conn)
        if not conns:
            self._connections.pop(conn.session_id, None)

    def bind(self, conn: Connection, role: Role, participant_id: Optional[str] = None) -> None:
        conn.role = role
        conn.participant_id = participant_id

    def has_role(self, session_id: str, role: Role) -> bool:
        return any(c.role == role for c in self._connections.get(session_id, ()))

    def send(self, conn: Connection, message: dict[str, Any]) -> None:
        conn.push(message)

    def broadcast(self, session_id: str, message: dict[str, Any], exclude_role: Optional[Role] = None) -> int:
        delivered = 0
        for conn in list(self._connections.get(session_id, ())):
            if exclude_role is not None and conn.role == exclude_role:
                continue
            conn.push(message)
            delivered += 1
        return delivered
