"""Which notifications an accepted command produces, and for whom.

Decisions are made by comparing the session before and after the transition,
never from the raw command alone, so clients are only told about question
changes that actually happened.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from .models import Role, Session, SessionStatus


class Scope(str, Enum):
    ROOM = "room"        # everyone connected to the session
    OTHERS = "others"    # everyone except the originator
    SENDER = "sender"    # private reply to the originator


@dataclass(frozen=True)
class Outbound:
    scope: Scope
    event: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def message(self) -> Dict[str, Any]:
        return {"type": self.event, **self.payload}


def on_join(role: Role) -> List[Outbound]:
    return [
        Outbound(Scope.SENDER, "joined", {"role": role.value}),
        Outbound(Scope.ROOM, "player_status", {"player": role.value, "online": True}),
        Outbound(Scope.ROOM, "player_joined", {"player": role.value}),
    ]


def on_disconnect(role: Role) -> List[Outbound]:
    return [Outbound(Scope.ROOM, "player_status", {"player": role.value, "online": False})]


def on_start(before: Session, after: Session) -> List[Outbound]:
    if before.status == after.status:
        return []
    return [
        Outbound(Scope.ROOM, "game_started", {}),
        Outbound(Scope.ROOM, "question_show", {"questionIndex": after.current_question_index}),
    ]


def on_answer(role: Role, question_index: int) -> List[Outbound]:
    # the originator already shows its own choice
    return [Outbound(Scope.OTHERS, "answer_updated", {"questionIndex": question_index})]


def on_comment(role: Role, question_index: int) -> List[Outbound]:
    return [Outbound(Scope.ROOM, "comment_received", {"questionIndex": question_index, "player": role.value})]


def on_ready(role: Role, question_index: int, ready: bool, before: Session, after: Session) -> List[Outbound]:
    events = [
        Outbound(
            Scope.ROOM,
            "ready_updated",
            {"questionIndex": question_index, "player": role.value, "ready": bool(ready)},
        )
    ]
    if after.status == SessionStatus.COMPLETED and before.status != SessionStatus.COMPLETED:
        events.append(Outbound(Scope.ROOM, "game_completed", {}))
    elif after.current_question_index > question_index:
        events.append(Outbound(Scope.ROOM, "next_question", {"questionIndex": after.current_question_index}))
    return events
