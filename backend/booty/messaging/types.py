from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, StrictInt, TypeAdapter, field_validator

from booty.logic.enums import ComboType, GameAction, WinReason
from booty.logic.settings import NUM_DICE
from booty.logic.types import DieView, GameView, PlayerView
from booty.session.room_code import ROOM_CODE_LENGTH, normalize_room_code
from booty.session.types import LobbyInfo

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

MAX_PLAYER_NAME_LENGTH = 20
_RAW_NAME_LIMIT = 200
_ROOM_CODE_PATTERN = rf"^[A-HJ-NP-Z2-9]{{{ROOM_CODE_LENGTH}}}$"
_PLAYER_ID_FIELD = Field(min_length=1, max_length=64)


class ClientMessageType(StrEnum):
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    SET_READY = "set_ready"
    ADD_AI = "add_ai"
    REMOVE_AI = "remove_ai"
    START_GAME = "start_game"
    RESET_GAME = "reset_game"
    GAME_ACTION = "game_action"
    RECONNECT = "reconnect"
    BROWSE_SUBSCRIBE = "browse_subscribe"
    BROWSE_UNSUBSCRIBE = "browse_unsubscribe"
    PING = "ping"


class SessionMessageType(StrEnum):
    ROOM_CREATED = "room_created"
    JOIN_RESULT = "join_result"
    LOBBY_STATE = "lobby_state"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    GAME_STARTING = "game_starting"
    GAME_STATE = "game_state"
    DICE_ROLLED = "dice_rolled"
    TURN_CHANGED = "turn_changed"
    PLAYER_ELIMINATED = "player_eliminated"
    GAME_ENDED = "game_ended"
    LOBBIES = "lobbies"
    ERROR = "session_error"
    PONG = "pong"


class SessionErrorCode(StrEnum):
    ALREADY_IN_ROOM = "already_in_room"
    NOT_IN_ROOM = "not_in_room"
    NOT_IN_GAME = "not_in_game"
    NOT_HOST = "not_host"
    ROOM_FULL = "room_full"
    SERVER_FULL = "server_full"
    GAME_IN_PROGRESS = "game_in_progress"
    CANNOT_START = "cannot_start"
    PLAYER_NOT_FOUND = "player_not_found"
    RECONNECT_FAILED = "reconnect_failed"
    INVALID_MESSAGE = "invalid_message"
    ACTION_FAILED = "action_failed"
    RATE_LIMITED = "rate_limited"
    INTERNAL_ERROR = "internal_error"


def sanitize_player_name(value: str) -> str:
    """Strip control characters and surrounding whitespace, then enforce 1-20 characters."""
    cleaned = "".join(c for c in value if ord(c) >= _SPACE_ORD and ord(c) != _DEL_ORD).strip()
    if not cleaned:
        raise ValueError("Player name cannot be empty")
    if len(cleaned) > MAX_PLAYER_NAME_LENGTH:
        raise ValueError(f"Player name must be {MAX_PLAYER_NAME_LENGTH} characters or less")
    return cleaned


DieIndex = Annotated[StrictInt, Field(ge=0, lt=NUM_DICE)]


class _NamedMessage(BaseModel):
    player_name: str = Field(max_length=_RAW_NAME_LIMIT)

    @field_validator("player_name")
    @classmethod
    def _validate_player_name(cls, v: str) -> str:
        return sanitize_player_name(v)


class _RoomCodeMessage(BaseModel):
    room_code: str = Field(pattern=_ROOM_CODE_PATTERN)

    @field_validator("room_code", mode="before")
    @classmethod
    def _normalize_room_code(cls, v: Any) -> Any:  # noqa: ANN401
        return normalize_room_code(v) if isinstance(v, str) else v


class CreateRoomMessage(_NamedMessage):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM


class JoinRoomMessage(_NamedMessage, _RoomCodeMessage):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM


class SetReadyMessage(BaseModel):
    type: Literal[ClientMessageType.SET_READY] = ClientMessageType.SET_READY
    ready: bool


class AddAIMessage(BaseModel):
    type: Literal[ClientMessageType.ADD_AI] = ClientMessageType.ADD_AI


class RemoveAIMessage(BaseModel):
    type: Literal[ClientMessageType.REMOVE_AI] = ClientMessageType.REMOVE_AI
    ai_id: str = _PLAYER_ID_FIELD


class StartGameMessage(BaseModel):
    type: Literal[ClientMessageType.START_GAME] = ClientMessageType.START_GAME


class ResetGameMessage(BaseModel):
    type: Literal[ClientMessageType.RESET_GAME] = ClientMessageType.RESET_GAME


class LockDiceMessage(BaseModel):
    type: Literal[ClientMessageType.GAME_ACTION] = ClientMessageType.GAME_ACTION
    action: Literal[GameAction.LOCK_DICE] = GameAction.LOCK_DICE
    indices: list[DieIndex] = Field(max_length=NUM_DICE)


class SelectTargetMessage(BaseModel):
    type: Literal[ClientMessageType.GAME_ACTION] = ClientMessageType.GAME_ACTION
    action: Literal[GameAction.SELECT_TARGET] = GameAction.SELECT_TARGET
    die_index: DieIndex
    target_id: str = _PLAYER_ID_FIELD


class NoDataActionMessage(BaseModel):
    type: Literal[ClientMessageType.GAME_ACTION] = ClientMessageType.GAME_ACTION
    action: Literal[
        GameAction.ROLL,
        GameAction.FINISH_ROLLING,
        GameAction.END_TURN,
    ]


GameActionMessage = Annotated[
    LockDiceMessage | SelectTargetMessage | NoDataActionMessage,
    Field(discriminator="action"),
]


class ReconnectMessage(_RoomCodeMessage):
    type: Literal[ClientMessageType.RECONNECT] = ClientMessageType.RECONNECT
    player_id: str = _PLAYER_ID_FIELD


class BrowseSubscribeMessage(BaseModel):
    type: Literal[ClientMessageType.BROWSE_SUBSCRIBE] = ClientMessageType.BROWSE_SUBSCRIBE


class BrowseUnsubscribeMessage(BaseModel):
    type: Literal[ClientMessageType.BROWSE_UNSUBSCRIBE] = ClientMessageType.BROWSE_UNSUBSCRIBE


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = (
    CreateRoomMessage
    | JoinRoomMessage
    | SetReadyMessage
    | AddAIMessage
    | RemoveAIMessage
    | StartGameMessage
    | ResetGameMessage
    | LockDiceMessage
    | SelectTargetMessage
    | NoDataActionMessage
    | ReconnectMessage
    | BrowseSubscribeMessage
    | BrowseUnsubscribeMessage
    | PingMessage
)


class RoomCreatedMessage(BaseModel):
    type: Literal[SessionMessageType.ROOM_CREATED] = SessionMessageType.ROOM_CREATED
    room_code: str
    player_id: str


class JoinResultMessage(BaseModel):
    """Reply to join_room. Failures are ordinary results, not errors."""

    type: Literal[SessionMessageType.JOIN_RESULT] = SessionMessageType.JOIN_RESULT
    success: bool
    room_code: str
    player_id: str | None = None
    error: str | None = None


class LobbyStateMessage(BaseModel):
    type: Literal[SessionMessageType.LOBBY_STATE] = SessionMessageType.LOBBY_STATE
    room_code: str
    host_id: str
    players: list[PlayerView]
    can_start: bool


class PlayerJoinedMessage(BaseModel):
    type: Literal[SessionMessageType.PLAYER_JOINED] = SessionMessageType.PLAYER_JOINED
    player: PlayerView


class PlayerLeftMessage(BaseModel):
    type: Literal[SessionMessageType.PLAYER_LEFT] = SessionMessageType.PLAYER_LEFT
    player_id: str


class GameStartingMessage(BaseModel):
    type: Literal[SessionMessageType.GAME_STARTING] = SessionMessageType.GAME_STARTING


class GameStateMessage(BaseModel):
    type: Literal[SessionMessageType.GAME_STATE] = SessionMessageType.GAME_STATE
    state: GameView


class DiceRolledMessage(BaseModel):
    type: Literal[SessionMessageType.DICE_ROLLED] = SessionMessageType.DICE_ROLLED
    dice: list[DieView]
    combo: ComboType | None = None


class TurnChangedMessage(BaseModel):
    type: Literal[SessionMessageType.TURN_CHANGED] = SessionMessageType.TURN_CHANGED
    current_player_index: int
    player_id: str


class PlayerEliminatedMessage(BaseModel):
    type: Literal[SessionMessageType.PLAYER_ELIMINATED] = SessionMessageType.PLAYER_ELIMINATED
    player_id: str
    eliminator_id: str


class GameEndedMessage(BaseModel):
    type: Literal[SessionMessageType.GAME_ENDED] = SessionMessageType.GAME_ENDED
    winner_id: str
    reason: WinReason


class LobbiesMessage(BaseModel):
    type: Literal[SessionMessageType.LOBBIES] = SessionMessageType.LOBBIES
    lobbies: list[LobbyInfo]


class ErrorMessage(BaseModel):
    type: Literal[SessionMessageType.ERROR] = SessionMessageType.ERROR
    code: SessionErrorCode
    message: str


class PongMessage(BaseModel):
    type: Literal[SessionMessageType.PONG] = SessionMessageType.PONG


_NonGameMessage = Annotated[
    CreateRoomMessage
    | JoinRoomMessage
    | SetReadyMessage
    | AddAIMessage
    | RemoveAIMessage
    | StartGameMessage
    | ResetGameMessage
    | ReconnectMessage
    | BrowseSubscribeMessage
    | BrowseUnsubscribeMessage
    | PingMessage,
    Field(discriminator="type"),
]

_non_game_adapter = TypeAdapter(_NonGameMessage)
_game_action_adapter = TypeAdapter(GameActionMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage.

    Game action messages use a two-level discriminator (type then action),
    so they are routed to a separate adapter.
    """
    if data.get("type") == ClientMessageType.GAME_ACTION:
        return _game_action_adapter.validate_python(data)
    return _non_game_adapter.validate_python(data)
