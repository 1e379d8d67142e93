"""Rejected-command outcomes shared by the engine, the coordinator and transports."""


class GameError(ValueError):
    code = "game_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class InvalidArgument(GameError):
    code = "invalid_argument"


class RoomFull(GameError):
    code = "room_full"


class InvalidState(GameError):
    code = "invalid_state"


class Forbidden(GameError):
    code = "forbidden"


class NotReady(GameError):
    code = "not_ready"


class InvalidIndex(GameError):
    code = "invalid_index"


class NotFound(GameError):
    code = "not_found"
