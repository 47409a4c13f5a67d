"""
Mutable game state for Booty Dice.

Everything here is owned by a single TurnEngine (or, for players, shared
between a room and the engine it started) and mutated in place. Snapshots
for broadcasting are built with the frozen views in booty.logic.types.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from booty.logic.enums import DiceFace, GamePhase, LogEntryType, TurnPhase
from booty.logic.settings import GameSettings


@dataclass
class Die:
    id: int  # stable slot index
    face: DiceFace = DiceFace.DOUBLOON
    locked: bool = False


@dataclass
class Player:
    """
    A seat holder in a room and, once the game starts, in the turn order.

    The id is the owning connection id for humans and a generated id for AI.
    """

    id: str
    name: str
    doubloons: int = 5
    lives: int = 10
    shields: int = 0
    is_ai: bool = False
    is_ready: bool = False
    is_connected: bool = True
    is_eliminated: bool = False

    @classmethod
    def create(cls, player_id: str, name: str, settings: GameSettings, *, is_ai: bool = False) -> Player:
        return cls(
            id=player_id,
            name=name,
            doubloons=settings.starting_doubloons,
            lives=settings.starting_lives,
            shields=settings.starting_shields,
            is_ai=is_ai,
            is_ready=is_ai,
        )

    def reset_stats(self, settings: GameSettings) -> None:
        """Restore starting stats; AI stay ready, humans must ready up again."""
        self.doubloons = settings.starting_doubloons
        self.lives = settings.starting_lives
        self.shields = settings.starting_shields
        self.is_eliminated = False
        self.is_ready = self.is_ai


@dataclass
class PendingAction:
    """An offensive die waiting for its owner to pick a target."""

    die_index: int
    face: DiceFace  # cutlass or jolly_roger
    resolved: bool = False
    target_player_id: str | None = None


@dataclass
class LogEntry:
    player_id: str
    message: str
    type: LogEntryType
    timestamp: float = field(default_factory=time.time)


@dataclass
class GameState:
    """Root aggregate of one started room."""

    room_code: str
    players: list[Player]
    dice: list[Die]
    rolls_remaining: int
    phase: GamePhase = GamePhase.PLAYING
    current_player_index: int = 0
    turn_number: int = 1
    turn_phase: TurnPhase = TurnPhase.ROLLING
    pending_actions: list[PendingAction] = field(default_factory=list)
    game_log: list[LogEntry] = field(default_factory=list)
    winner_id: str | None = None
