from __future__ import annotations

from typing import Iterable, Optional

from .broadcast import Outbound, Scope
from .events import EventStore
from .hub import Connection, ConnectionHub
from .models import Role


class Fanout:
    """Deliver planned notifications to pollers (event log) and sockets (hub)."""

    def __init__(self, event_store: EventStore, hub: ConnectionHub):
        self.event_store = event_store
        self.hub = hub

    async def publish(
        self,
        session_id: str,
        events: Iterable[Outbound],
        role: Role,
        origin: Optional[Connection] = None,
    ) -> None:
        for event in events:
            message = event.message()
            if event.scope == Scope.SENDER:
                # HTTP callers get the private reply as their response body
                if origin is not None:
                    self.hub.send(origin, message)
                continue

            exclude = role if event.scope == Scope.OTHERS else None
            await self.event_store.append(session_id, message, exclude_role=exclude.value if exclude else None)
            self.hub.broadcast(session_id, message, exclude_role=exclude)
