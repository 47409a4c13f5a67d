"""
Pydantic models for the session layer.
"""

from enum import StrEnum

from pydantic import BaseModel


class LobbyPlayerInfo(BaseModel):
    name: str
    is_ai: bool


class LobbyInfo(BaseModel):
    """Room information for the open-lobby list."""

    code: str
    host_name: str
    player_count: int
    max_players: int
    players: list[LobbyPlayerInfo]
    created_at: float


class JoinFailure(StrEnum):
    ROOM_NOT_FOUND = "room_not_found"
    ROOM_FULL = "room_full"
    GAME_IN_PROGRESS = "game_in_progress"


JOIN_FAILURE_MESSAGES = {
    JoinFailure.ROOM_NOT_FOUND: "Room not found",
    JoinFailure.ROOM_FULL: "Room is full",
    JoinFailure.GAME_IN_PROGRESS: "Game already in progress",
}


class JoinResult(BaseModel):
    success: bool
    failure: JoinFailure | None = None

    @property
    def error(self) -> str | None:
        return JOIN_FAILURE_MESSAGES[self.failure] if self.failure else None


class DisconnectResult(BaseModel):
    room_code: str
    was_host: bool
    removed: bool  # dropped from the roster (lobby) rather than marked disconnected (game)
    room_deleted: bool
