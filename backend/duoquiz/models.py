from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    P1 = "p1"
    P2 = "p2"


ROLE_ORDER = (Role.P1, Role.P2)


class AnswerColor(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


# States: waiting -> in_progress -> completed
class SessionStatus(str, Enum):
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class PlayerSlot(_Frozen):
    id: Optional[str] = None
    online: bool = False  # transient, never trusted from storage


class AnswerEntry(_Frozen):
    answer: Optional[AnswerColor] = None
    comment: Optional[str] = None
    ready: bool = False
    answered_at: Optional[float] = None  # epoch seconds


class QuestionRecord(_Frozen):
    question_index: int
    question_text: str
    p1: AnswerEntry = Field(default_factory=AnswerEntry)
    p2: AnswerEntry = Field(default_factory=AnswerEntry)
    revealed_at: Optional[float] = None  # first answer for this question

    def entry(self, role: Role) -> AnswerEntry:
        return getattr(self, role.value)

    def with_entry(self, role: Role, **changes) -> "QuestionRecord":
        updated = self.entry(role).model_copy(update=changes)
        return self.model_copy(update={role.value: updated})

    @property
    def both_ready(self) -> bool:
        """Both roles answered and both flagged ready."""
        return all(
            self.entry(r).ready and self.entry(r).answer is not None for r in ROLE_ORDER
        )


class Session(_Frozen):
    id: str
    status: SessionStatus = SessionStatus.WAITING
    questions: List[str]
    current_question_index: int = 0
    players: Dict[Role, PlayerSlot] = Field(
        default_factory=lambda: {role: PlayerSlot() for role in ROLE_ORDER}
    )
    admin: Role = Role.P1
    answers: List[QuestionRecord]
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_last_question(self) -> bool:
        return self.current_question_index >= len(self.questions) - 1

    def role_of(self, participant_id: str) -> Optional[Role]:
        for role in ROLE_ORDER:
            if self.players[role].id == participant_id:
                return role
        return None

    def with_player(self, role: Role, **changes) -> "Session":
        players = dict(self.players)
        players[role] = players[role].model_copy(update=changes)
        return self.model_copy(update={"players": players})

    def with_record(self, record: QuestionRecord) -> "Session":
        answers = list(self.answers)
        answers[record.question_index] = record
        return self.model_copy(update={"answers": answers})
