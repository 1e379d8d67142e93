from pydantic import BaseModel
from typing import Dict, List, Optional
from .models import AnswerColor, AnswerEntry, Role, Session, SessionStatus


class CreateSessionIn(BaseModel):
    questions: List[str]


class CreateSessionOut(BaseModel):
    session_id: str


class JoinIn(BaseModel):
    participant_id: str


class JoinOut(BaseModel):
    role: Role


class StartGameIn(BaseModel):
    role: Role


class DisconnectIn(BaseModel):
    role: Role


class AnswerIn(BaseModel):
    role: Role
    question_index: int
    answer: AnswerColor


class CommentIn(BaseModel):
    role: Role
    question_index: int
    comment: str


class ReadyIn(BaseModel):
    role: Role
    question_index: int
    ready: bool


class PresenceOut(BaseModel):
    online: bool


class EntryOut(BaseModel):
    answer: Optional[AnswerColor] = None
    comment: Optional[str] = None
    ready: bool = False

    @classmethod
    def from_entry(cls, entry: AnswerEntry) -> "EntryOut":
        return cls(answer=entry.answer, comment=entry.comment, ready=entry.ready)


class QuestionOut(BaseModel):
    question_index: int
    question_text: str
    p1: EntryOut
    p2: EntryOut


class PublicSessionOut(BaseModel):
    id: str
    status: SessionStatus
    current_question_index: int
    total_questions: int
    players: Dict[Role, PresenceOut]
    answers: List[QuestionOut]

    @classmethod
    def from_session(cls, s: Session) -> "PublicSessionOut":
        return cls(
            id=s.id,
            status=s.status,
            current_question_index=s.current_question_index,
            total_questions=len(s.questions),
            players={role: PresenceOut(online=slot.online) for role, slot in s.players.items()},
            answers=[
                QuestionOut(
                    question_index=q.question_index,
                    question_text=q.question_text,
                    p1=EntryOut.from_entry(q.p1),
                    p2=EntryOut.from_entry(q.p2),
                )
                for q in s.answers
            ],
        )


class QuestionFilesOut(BaseModel):
    files: List[str]


class QuestionFileOut(BaseModel):
    content: str
    questions: List[str]
