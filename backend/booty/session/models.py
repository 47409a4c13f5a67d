"""Room model shared by the lobby and the game that runs inside it."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from booty.logic.engine import TurnEngine
    from booty.logic.state import Player


@dataclass
class Room:
    """
    A lobby that owns at most one running game.

    Players are keyed by id (connection id for humans). The engine, once
    started, shares the same Player objects.
    """

    code: str
    host_id: str
    players: dict[str, Player] = field(default_factory=dict)
    engine: TurnEngine | None = None
    created_at: float = field(default_factory=time.time)

    @property
    def in_game(self) -> bool:
        return self.engine is not None

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def human_players(self) -> list[Player]:
        return [p for p in self.players.values() if not p.is_ai]

    @property
    def is_abandoned(self) -> bool:
        """True when no human is left to play."""
        return not self.human_players

    @property
    def host(self) -> Player | None:
        return self.players.get(self.host_id)
