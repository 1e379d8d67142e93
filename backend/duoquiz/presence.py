from __future__ import annotations

from typing import Dict

from .models import ROLE_ORDER, Role, Session


class PresenceTracker:
    """Connection-scoped online flags per session, kept out of storage.

    Methods never await, so each call is atomic on the event loop.
    """

    def __init__(self):
        self._online: Dict[str, Dict[Role, bool]] = {}

    def set_online(self, session_id: str, role: Role, online: bool) -> None:
        flags = self._online.setdefault(session_id, {r: False for r in ROLE_ORDER})
        flags[Role(role)] = bool(online)

    def read(self, session_id: str) -> Dict[Role, bool]:
        flags = self._online.get(session_id)
        if flags is None:
            return {r: False for r in ROLE_ORDER}
        return dict(flags)

    def merge(self, session: Session) -> Session:
        merged = session
        for role, online in self.read(session.id).items():
            merged = merged.with_player(role, online=online)
        return merged
