from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, Optional

from . import broadcast, engine
from .broadcast import Outbound
from .errors import GameError, InvalidArgument, NotFound
from .fanout import Fanout
from .hub import Connection
from .models import AnswerColor, Role, Session, SessionStatus
from .presence import PresenceTracker
from .repository import SessionRepository

logger = logging.getLogger(__name__)

Transition = Callable[[Session], Session]
Plan = Callable[[Session, Session], List[Outbound]]


def _role(value) -> Role:
    try:
        return Role(value)
    except ValueError as exc:
        raise InvalidArgument(f"Unknown role {value!r}") from exc


class SessionCoordinator:
    """Apply commands to sessions one at a time per session id.

    Each session id gets its own ``asyncio.Lock``; waiters are woken in arrival
    order, so every command sees the result of all commands accepted before it.
    Different sessions never share a lock, and a lock is dropped once no
    command holds or awaits it. Reads (:meth:`snapshot`) take no
    lock and always see a whole stored session.
    """

    def __init__(self, repository: SessionRepository, presence: PresenceTracker, fanout: Fanout):
        self.repository = repository
        self.presence = presence
        self.fanout = fanout
        self.locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def _serialised(self, session_id: str) -> AsyncIterator[None]:
        lock = self.locks.setdefault(session_id, asyncio.Lock())
        self._users[session_id] = self._users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[session_id] -= 1
            if not self._users[session_id]:
                del self._users[session_id]
                self.locks.pop(session_id, None)

    async def _load(self, session_id: str) -> Session:
        s = await self.repository.get(session_id)
        if not s:
            raise NotFound("Game not found")
        return s

    async def snapshot(self, session_id: str) -> Session:
        return self.presence.merge(await self._load(session_id))

    async def create(self, questions: List[str]) -> Session:
        s = await self.repository.create(questions)
        logger.info("Created session %s with %d questions", s.id, len(s.questions))
        return s

    async def _run(
        self,
        session_id: str,
        role: Role,
        command: str,
        transition: Transition,
        plan: Plan,
        origin: Optional[Connection] = None,
    ) -> Session:
        async with self._serialised(session_id):
            before = await self._load(session_id)
            try:
                after = transition(before)
            except GameError as exc:
                logger.warning("Rejected %s on %s by %s: %s", command, session_id, role.value, exc.code)
                raise

            await self.repository.put(after)
            await self.fanout.publish(session_id, plan(before, after), role, origin)
            return after

    async def join(self, session_id: str, participant_id: str, origin: Optional[Connection] = None) -> Role:
        async with self._serialised(session_id):
            before = await self._load(session_id)
            try:
                after, role = engine.join(before, participant_id)
            except GameError as exc:
                logger.warning("Rejected join on %s: %s", session_id, exc.code)
                raise

            await self.repository.put(after)
            self.presence.set_online(session_id, role, True)
            if origin is not None:
                self.fanout.hub.bind(origin, role, participant_id)
            await self.fanout.publish(session_id, broadcast.on_join(role), role, origin)

        logger.info("Participant %s joined %s as %s", participant_id, session_id, role.value)
        return role

    async def start(self, session_id: str, role, origin: Optional[Connection] = None) -> Session:
        role = _role(role)
        s = await self._run(
            session_id,
            role,
            "start",
            lambda before: engine.start(before, role),
            broadcast.on_start,
            origin,
        )
        logger.info("Session %s started by %s", session_id, role.value)
        return s

    async def choose_answer(
        self,
        session_id: str,
        role,
        question_index: int,
        answer: AnswerColor,
        origin: Optional[Connection] = None,
    ) -> Session:
        role = _role(role)
        logger.debug("choose_answer %s %s q=%s", session_id, role.value, question_index)
        return await self._run(
            session_id,
            role,
            "choose_answer",
            lambda before: engine.choose_answer(before, role, question_index, answer),
            lambda before, after: broadcast.on_answer(role, question_index),
            origin,
        )

    async def submit_comment(
        self,
        session_id: str,
        role,
        question_index: int,
        comment: str,
        origin: Optional[Connection] = None,
    ) -> Session:
        role = _role(role)
        logger.debug("submit_comment %s %s q=%s", session_id, role.value, question_index)
        return await self._run(
            session_id,
            role,
            "submit_comment",
            lambda before: engine.submit_comment(before, role, question_index, comment),
            lambda before, after: broadcast.on_comment(role, question_index),
            origin,
        )

    async def set_ready(
        self,
        session_id: str,
        role,
        question_index: int,
        ready: bool,
        origin: Optional[Connection] = None,
    ) -> Session:
        role = _role(role)
        logger.debug("set_ready %s %s q=%s ready=%s", session_id, role.value, question_index, ready)
        s = await self._run(
            session_id,
            role,
            "set_ready",
            lambda before: engine.set_ready(before, role, question_index, ready),
            lambda before, after: broadcast.on_ready(role, question_index, ready, before, after),
            origin,
        )
        if s.status == SessionStatus.COMPLETED:
            logger.info("Session %s completed", session_id)
        elif s.current_question_index > question_index:
            logger.info("Session %s advanced to question %d", session_id, s.current_question_index)
        return s

    async def disconnect(self, session_id: str, role) -> None:
        """Mark a role offline. Does not wait for the session's command queue."""
        role = _role(role)
        self.presence.set_online(session_id, role, False)
        await self.fanout.publish(session_id, broadcast.on_disconnect(role), role)
        logger.info("Role %s disconnected from %s", role.value, session_id)
