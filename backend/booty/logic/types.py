"""
Pydantic models for data that crosses the engine boundary.

Views are frozen snapshots built from the mutable state in booty.logic.state
and are safe to serialize and hand to every room participant.
"""

from pydantic import BaseModel, ConfigDict

from booty.logic.enums import (
    ComboType,
    DiceFace,
    EffectOrigin,
    EffectType,
    GamePhase,
    LogEntryType,
    TurnPhase,
    WinReason,
)


class _View(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)


class DieView(_View):
    id: int
    face: DiceFace
    locked: bool


class PlayerView(_View):
    id: str
    name: str
    doubloons: int
    lives: int
    shields: int
    is_ai: bool
    is_ready: bool
    is_connected: bool
    is_eliminated: bool


class PendingActionView(_View):
    die_index: int
    face: DiceFace
    resolved: bool
    target_player_id: str | None = None


class LogEntryView(_View):
    player_id: str
    message: str
    type: LogEntryType
    timestamp: float


class GameView(_View):
    """Complete snapshot of a game, broadcast after every mutating operation."""

    room_code: str
    phase: GamePhase
    players: list[PlayerView]
    current_player_index: int
    turn_number: int
    rolls_remaining: int
    dice: list[DieView]
    turn_phase: TurnPhase
    pending_actions: list[PendingActionView]
    game_log: list[LogEntryView]
    winner_id: str | None = None

    @property
    def current_player(self) -> PlayerView:
        return self.players[self.current_player_index]


class ResolvedEffect(BaseModel):
    """A single change to one player's stats, produced by the effect resolver."""

    model_config = ConfigDict(frozen=True)

    type: EffectType
    target_id: str
    amount: int
    origin: EffectOrigin
    source_id: str | None = None
    description: str = ""


class RollResult(BaseModel):
    """Outcome of one roll as seen by the caller."""

    dice: list[DieView]
    combo: ComboType | None = None
    bonus_count: int = 0
    can_roll_again: bool


class TurnResolution(BaseModel):
    """Outcome of resolving a turn."""

    effects: list[ResolvedEffect]
    forfeited: list[ResolvedEffect] = []
    eliminations: list[str] = []
    winner: str | None = None
    win_reason: WinReason | None = None
