from __future__ import annotations

from typing import Any, Dict, List, Optional

from . import engine
from .models import Session
from .utils import new_session_id


class SessionRepository:
    """Get / put / create over a ``sessions`` document collection.

    ``put`` always writes the whole session. Online flags are never stored:
    presence lives in :class:`~duoquiz.presence.PresenceTracker`.
    """

    def __init__(self, database: Any):
        self.collection = database.sessions

    @staticmethod
    def _to_document(session: Session) -> Dict[str, Any]:
        doc = session.model_dump(mode="json")
        for slot in doc["players"].values():
            slot["online"] = False
        return doc

    async def get(self, session_id: str) -> Optional[Session]:
        doc = await self.collection.find_one({"id": session_id})
        return Session(**doc) if doc else None

    async def put(self, session: Session) -> None:
        await self.collection.replace_one({"id": session.id}, self._to_document(session), upsert=True)

    async def create(self, questions: List[str]) -> Session:
        session = engine.create_session(new_session_id(), questions)
        await self.collection.insert_one(self._to_document(session))
        return session
