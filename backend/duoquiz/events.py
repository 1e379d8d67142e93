from __future__ import annotations

from typing import Any, List, Optional

from pymongo import ReturnDocument

from .utils import now_ts


class EventStore:
    """Persist session events so clients can poll via HTTP."""

    def __init__(self, database: Any):
        self.counters_collection = database.session_event_counters
        self.events_collection = database.session_events

    async def append(self, session_id: str, payload: dict[str, Any], exclude_role: Optional[str] = None) -> int:
        """Store a new event for a session and return its sequence number.

        ``exclude_role`` hides the event from that role when it polls, for
        notifications its originator does not need to see.
        """

        counter_doc = await self.counters_collection.find_one_and_update(
            {"_id": session_id},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

        if not counter_doc:
            # Some Mongo-compatible providers complete the upsert but return
            # ``None`` instead of the updated document.
            counter_doc = await self.counters_collection.find_one({"_id": session_id})

        seq = int((counter_doc or {}).get("seq", 1))

        await self.events_collection.insert_one(
            {
                "session_id": session_id,
                "seq": seq,
                "timestamp": now_ts(),
                "exclude_role": exclude_role,
                "payload": payload,
            }
        )
        return seq

    async def list(
        self,
        session_id: str,
        after: int | None = None,
        limit: int = 200,
        role: str | None = None,
    ) -> List[dict[str, Any]]:
        """Return events for a session that occur after the given sequence."""

        query: dict[str, Any] = {"session_id": session_id}
        if after is not None:
            query["seq"] = {"$gt": after}
        if role is not None:
            query["exclude_role"] = {"$ne": role}

        cursor = self.events_collection.find(query).sort("seq", 1).limit(limit)

        events: List[dict[str, Any]] = []
        async for doc in cursor:
            events.append(
                {
                    "seq": doc["seq"],
                    "timestamp": doc.get("timestamp"),
                    "payload": doc.get("payload", {}),
                }
            )
        return events
