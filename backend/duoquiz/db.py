from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Dict, Iterator, List, Optional

from pymongo import AsyncMongoClient, ReturnDocument

from .config import Settings, settings

logger = logging.getLogger(__name__)


class InMemoryCursor:
    def __init__(self, collection: "InMemoryCollection", query: Dict[str, Any]):
        self._collection = collection
        self._query = query or {}
        self._sort_key: Optional[str] = None
        self._sort_direction: int = 1
        self._limit: Optional[int] = None
        self._materialised: Optional[Iterator[Dict[str, Any]]] = None

    def sort(self, key: str, direction: int):
        self._sort_key = key
        self._sort_direction = direction
        return self

    def limit(self, limit: int):
        self._limit = limit
        return self

    async def _ensure_materialised(self):
        if self._materialised is not None:
            return

        docs = await self._collection._find_all(self._query)
        if self._sort_key is not None:
            docs.sort(key=lambda d: d.get(self._sort_key), reverse=self._sort_direction < 0)
        if self._limit:
            docs = docs[: self._limit]
        self._materialised = iter(docs)

    def __aiter__(self):
        return self

    async def __anext__(self):
        await self._ensure_materialised()
        assert self._materialised is not None
        try:
            return next(self._materialised)
        except StopIteration as exc:
            raise StopAsyncIteration from exc


class InMemoryCollection:
    """The slice of the async Mongo collection API this service relies on."""

    def __init__(self):
        self._docs: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()

    async def _find_all(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        async with self._lock:
            return [copy.deepcopy(doc) for doc in self._docs if self._matches(doc, query)]

    async def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        async with self._lock:
            for doc in self._docs:
                if self._matches(doc, query):
                    return copy.deepcopy(doc)
        return None

    def find(self, query: Dict[str, Any]):
        return InMemoryCursor(self, query)

    async def insert_one(self, document: Dict[str, Any]):
        async with self._lock:
            self._docs.append(copy.deepcopy(document))

    async def replace_one(self, query: Dict[str, Any], replacement: Dict[str, Any], upsert: bool = False):
        async with self._lock:
            for idx, doc in enumerate(self._docs):
                if self._matches(doc, query):
                    self._docs[idx] = copy.deepcopy(replacement)
                    return
            if upsert:
                self._docs.append(copy.deepcopy(replacement))

    async def find_one_and_update(
        self,
        query: Dict[str, Any],
        update: Dict[str, Any],
        *,
        upsert: bool = False,
        return_document: bool = ReturnDocument.BEFORE,
    ) -> Optional[Dict[str, Any]]:
        async with self._lock:
            for idx, doc in enumerate(self._docs):
                if self._matches(doc, query):
                    original = copy.deepcopy(doc)
                    updated = self._apply_update(copy.deepcopy(doc), update)
                    self._docs[idx] = updated
                    return copy.deepcopy(updated if return_document == ReturnDocument.AFTER else original)

            if upsert:
                new_doc = self._apply_update(copy.deepcopy(query), update)
                self._docs.append(new_doc)
                if return_document == ReturnDocument.AFTER:
                    return copy.deepcopy(new_doc)
        return None

    def _apply_update(self, doc: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        for op, payload in update.items():
            if op == "$inc":
                for key, value in payload.items():
                    doc[key] = doc.get(key, 0) + value
            elif op == "$set":
                for key, value in payload.items():
                    doc[key] = copy.deepcopy(value)
            else:  # pragma: no cover - only the above operators are used today
                raise ValueError(f"Unsupported update operator: {op}")
        return doc

    def _matches(self, doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
        for key, expected in (query or {}).items():
            actual = doc.get(key)
            if isinstance(expected, dict):
                for op, operand in expected.items():
                    if op == "$gt":
                        if actual is None or actual <= operand:
                            return False
                    elif op == "$ne":
                        if actual == operand:
                            return False
                    else:  # pragma: no cover - extend as new operators are required
                        raise ValueError(f"Unsupported query operator: {op}")
            elif actual != expected:
                return False
        return True


class InMemoryDatabase:
    def __init__(self):
        self.sessions = InMemoryCollection()
        self.session_event_counters = InMemoryCollection()
        self.session_events = InMemoryCollection()


def get_database(config: Settings = settings) -> Any:
    if config.MONGODB_URI:
        logger.info("Using MongoDB database %r", config.MONGODB_DB)
        return AsyncMongoClient(config.MONGODB_URI)[config.MONGODB_DB]
    logger.info("MONGODB_URI not set; sessions are kept in memory")
    return InMemoryDatabase()


db: Any = get_database()
