import asyncio
import json
import logging
from contextlib import suppress
from typing import Any

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .coordinator import SessionCoordinator
from .db import db
from .errors import Forbidden, GameError, InvalidArgument, InvalidIndex, InvalidState, NotFound, NotReady, RoomFull
from .events import EventStore
from .fanout import Fanout
from .hub import Connection, ConnectionHub
from .models import Role, Session
from .presence import PresenceTracker
from .questions import library
from .repository import SessionRepository
from .schemas import (
    AnswerIn,
    CommentIn,
    CreateSessionIn,
    CreateSessionOut,
    DisconnectIn,
    JoinIn,
    JoinOut,
    PublicSessionOut,
    QuestionFileOut,
    QuestionFilesOut,
    ReadyIn,
    StartGameIn,
)
from .utils import configure_logging

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

event_store = EventStore(db)
hub = ConnectionHub(queue_size=settings.CONNECTION_QUEUE_SIZE)
presence = PresenceTracker()
coordinator = SessionCoordinator(SessionRepository(db), presence, Fanout(event_store, hub))

app = FastAPI(title="DuoQuiz API")

origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_origin_regex=settings.CORS_ORIGIN_REGEX or None,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

STATUS_CODES = {
    NotFound: 404,
    Forbidden: 403,
    RoomFull: 409,
    NotReady: 409,
    InvalidState: 409,
    InvalidArgument: 400,
    InvalidIndex: 400,
}


def _http_error(exc: GameError) -> HTTPException:
    return HTTPException(status_code=STATUS_CODES.get(type(exc), 400), detail=exc.as_dict())


def _ack(s: Session) -> dict:
    return {"ok": True, "status": s.status.value, "current_question_index": s.current_question_index}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/session", response_model=CreateSessionOut)
async def create_session(payload: CreateSessionIn):
    try:
        s = await coordinator.create(payload.questions)
    except GameError as exc:
        raise _http_error(exc) from exc
    return CreateSessionOut(session_id=s.id)


@app.get("/api/session/{session_id}", response_model=PublicSessionOut)
async def get_session(session_id: str):
    try:
        s = await coordinator.snapshot(session_id)
    except GameError as exc:
        raise _http_error(exc) from exc
    return PublicSessionOut.from_session(s)


@app.get("/api/session/{session_id}/events")
async def list_events(session_id: str, after: int | None = None, limit: int | None = None, role: Role | None = None):
    limit = min(limit or settings.EVENT_PAGE_LIMIT, settings.EVENT_PAGE_LIMIT)
    events = await event_store.list(session_id, after=after, limit=limit, role=role.value if role else None)
    latest_seq = events[-1]["seq"] if events else after
    return {"events": events, "latest_seq": latest_seq}


@app.post("/api/session/{session_id}/join", response_model=JoinOut)
async def join(session_id: str, payload: JoinIn):
    try:
        role = await coordinator.join(session_id, payload.participant_id)
    except GameError as exc:
        raise _http_error(exc) from exc
    return JoinOut(role=role)


@app.post("/api/session/{session_id}/start")
async def start(session_id: str, payload: StartGameIn):
    try:
        s = await coordinator.start(session_id, payload.role)
    except GameError as exc:
        raise _http_error(exc) from exc
    return _ack(s)


@app.post("/api/session/{session_id}/answer")
async def choose_answer(session_id: str, payload: AnswerIn):
    try:
        s = await coordinator.choose_answer(session_id, payload.role, payload.question_index, payload.answer)
    except GameError as exc:
        raise _http_error(exc) from exc
    return _ack(s)


@app.post("/api/session/{session_id}/comment")
async def submit_comment(session_id: str, payload: CommentIn):
    try:
        s = await coordinator.submit_comment(session_id, payload.role, payload.question_index, payload.comment)
    except GameError as exc:
        raise _http_error(exc) from exc
    return _ack(s)


@app.post("/api/session/{session_id}/ready")
async def set_ready(session_id: str, payload: ReadyIn):
    try:
        s = await coordinator.set_ready(session_id, payload.role, payload.question_index, payload.ready)
    except GameError as exc:
        raise _http_error(exc) from exc
    return _ack(s)


@app.post("/api/session/{session_id}/disconnect")
async def disconnect(session_id: str, payload: DisconnectIn):
    try:
        await coordinator.snapshot(session_id)
    except GameError as exc:
        raise _http_error(exc) from exc
    await coordinator.disconnect(session_id, payload.role)
    return {"ok": True}


@app.get("/api/questions", response_model=QuestionFilesOut)
async def list_question_files():
    return QuestionFilesOut(files=library.list_files())


@app.get("/api/questions/{name}", response_model=QuestionFileOut)
async def get_question_file(name: str):
    try:
        return QuestionFileOut(**library.load(name))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail="file not found") from exc


def _question_index(message: dict[str, Any]) -> int:
    value = message.get("questionIndex")
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidArgument("questionIndex must be an integer")
    return value


async def _dispatch(session_id: str, conn: Connection, message: dict[str, Any]) -> None:
    kind = message.get("type")
    if kind == "join_game":
        player_id = message.get("playerId")
        if not isinstance(player_id, str):
            raise InvalidArgument("playerId must be a string")
        if conn.role is not None and player_id != conn.participant_id:
            raise InvalidState(f"This connection already joined as {conn.role.value}")
        await coordinator.join(session_id, player_id, origin=conn)
        return

    if conn.role is None:
        hub.send(conn, {"type": "error", "code": "not_joined", "message": "Join the game first"})
        return

    if kind == "start_game":
        await coordinator.start(session_id, conn.role, origin=conn)
    elif kind == "choose_answer":
        await coordinator.choose_answer(
            session_id, conn.role, _question_index(message), message.get("answer"), origin=conn
        )
    elif kind == "submit_comment":
        comment = message.get("comment")
        if not isinstance(comment, str):
            raise InvalidArgument("comment must be a string")
        await coordinator.submit_comment(session_id, conn.role, _question_index(message), comment, origin=conn)
    elif kind == "ready_next":
        ready = message.get("ready")
        if not isinstance(ready, bool):
            raise InvalidArgument("ready must be a boolean")
        await coordinator.set_ready(session_id, conn.role, _question_index(message), ready, origin=conn)
    else:
        hub.send(conn, {"type": "error", "code": "unknown_command", "message": f"Unknown message type {kind!r}"})


async def _pump(websocket: WebSocket, conn: Connection) -> None:
    try:
        while True:
            message = await conn.queue.get()
            await websocket.send_json(message)
    except (WebSocketDisconnect, RuntimeError, OSError):
        logger.debug("Sender for session %s stopped", conn.session_id)


@app.websocket("/api/ws/session/{session_id}")
async def ws_session(websocket: WebSocket, session_id: str):
    await websocket.accept()
    conn = hub.register(session_id)
    sender = asyncio.create_task(_pump(websocket, conn))
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
                if not isinstance(message, dict):
                    raise ValueError("message must be an object")
            except ValueError:
                hub.send(conn, {"type": "error", "code": "bad_message", "message": "Expected a JSON object"})
                continue
            try:
                await _dispatch(session_id, conn, message)
            except GameError as exc:
                hub.send(conn, {"type": "error", **exc.as_dict()})
    except WebSocketDisconnect:
        pass
    finally:
        hub.unregister(conn)
        sender.cancel()
        try:
            # another tab may still hold the same role
            if conn.role is not None and not hub.has_role(session_id, conn.role):
                await coordinator.disconnect(session_id, conn.role)
        finally:
            with suppress(asyncio.CancelledError):
                await sender
