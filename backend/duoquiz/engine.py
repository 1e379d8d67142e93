"""Pure session transitions.

Every function here takes the current :class:`Session` plus command arguments
and either returns a new session or raises a :class:`GameError`. All checks run
before any new value is built, so a rejected command never leaves a partially
updated session behind. Nothing here does I/O or locking; the coordinator is
responsible for serialising calls per session id.
"""

from __future__ import annotations

from typing import Callable, Sequence, Tuple

from .errors import Forbidden, InvalidArgument, InvalidIndex, InvalidState, NotReady, RoomFull
from .models import (
    ROLE_ORDER,
    AnswerColor,
    QuestionRecord,
    Role,
    Session,
    SessionStatus,
)
from .utils import now_ts

Clock = Callable[[], float]


def create_session(session_id: str, questions: Sequence[str]) -> Session:
    if isinstance(questions, str) or not isinstance(questions, (list, tuple)):
        raise InvalidArgument("questions must be a list of strings")
    if len(questions) < 1:
        raise InvalidArgument("At least 1 question is required")
    if not all(isinstance(q, str) for q in questions):
        raise InvalidArgument("questions must be a list of strings")

    return Session(
        id=session_id,
        questions=list(questions),
        answers=[QuestionRecord(question_index=i, question_text=q) for i, q in enumerate(questions)],
    )


def join(session: Session, participant_id: str) -> Tuple[Session, Role]:
    if not participant_id:
        raise InvalidArgument("participant id is required")

    role = session.role_of(participant_id)
    if role is not None:
        # rejoin keeps the existing binding
        return session.with_player(role, online=True), role

    for role in ROLE_ORDER:
        if session.players[role].id is None:
            return session.with_player(role, id=participant_id, online=True), role

    raise RoomFull("Both slots are taken")


def start(session: Session, by: Role) -> Session:
    if session.status != SessionStatus.WAITING:
        raise InvalidState("Game already started or completed")
    if by != session.admin:
        raise Forbidden("Only the admin can start the game")
    if any(session.players[r].id is None for r in ROLE_ORDER):
        raise NotReady("Both players must join before the game starts")

    return session.model_copy(update={"status": SessionStatus.IN_PROGRESS, "current_question_index": 0})


def _live_record(session: Session, question_index: int) -> QuestionRecord:
    if session.status != SessionStatus.IN_PROGRESS:
        raise InvalidState("Game not in progress")
    if question_index != session.current_question_index:
        raise InvalidIndex(
            f"Question {question_index} is not the live question ({session.current_question_index})"
        )
    if not 0 <= question_index < len(session.answers):
        raise InvalidIndex("Question index out of bounds")
    return session.answers[question_index]


def choose_answer(
    session: Session,
    by: Role,
    question_index: int,
    answer: AnswerColor,
    clock: Clock = now_ts,
) -> Session:
    record = _live_record(session, question_index)
    try:
        answer = AnswerColor(answer)
    except ValueError as exc:
        raise InvalidArgument(f"Unknown answer {answer!r}") from exc

    ts = clock()
    # a new answer always withdraws readiness
    record = record.with_entry(by, answer=answer, answered_at=ts, ready=False)
    if record.revealed_at is None:
        record = record.model_copy(update={"revealed_at": ts})
    return session.with_record(record)


def submit_comment(session: Session, by: Role, question_index: int, comment: str) -> Session:
    record = _live_record(session, question_index)
    if not isinstance(comment, str):
        raise InvalidArgument("comment must be text")

    # editing a comment withdraws readiness too
    return session.with_record(record.with_entry(by, comment=comment, ready=False))


def set_ready(session: Session, by: Role, question_index: int, ready: bool) -> Session:
    """Record readiness and advance when both roles are ready with an answer.

    The advancement check runs against the updated record on every call, so
    whichever of two racing ready commands is applied second is the one that
    advances.
    """
    record = _live_record(session, question_index)
    if ready and record.entry(by).answer is None:
        raise InvalidState("Cannot be ready without an answer")

    record = record.with_entry(by, ready=bool(ready))
    updated = session.with_record(record)

    if not record.both_ready:
        return updated
    if session.is_last_question:
        return updated.model_copy(update={"status": SessionStatus.COMPLETED})
    return updated.model_copy(update={"current_question_index": session.current_question_index + 1})
