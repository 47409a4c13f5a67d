"""Builders shared by the booty test suites."""

from __future__ import annotations

import random
from collections import deque
from typing import TYPE_CHECKING

from booty.logic.engine import TurnEngine
from booty.logic.enums import ALL_FACES, DiceFace
from booty.logic.settings import GameSettings
from booty.logic.state import Player
from booty.tests.mocks import MockConnection

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from booty.session.manager import SessionManager


class ScriptedRng(random.Random):
    """
    Deterministic generator for dice tests.

    Die rolls pop queued faces first and fall back to a seeded generator.
    randint returns its upper bound, so shuffles keep the seat order; with
    reverse_seats it returns the lower bound, which reverses a two-seat table.
    """

    def __init__(self, faces: Iterable[DiceFace] = (), *, reverse_seats: bool = False) -> None:
        super().__init__(1234)
        self._faces: deque[DiceFace] = deque(faces)
        self._reverse_seats = reverse_seats

    def queue(self, *faces: DiceFace) -> None:
        self._faces.extend(faces)

    def choice(self, seq):  # noqa: ANN001, ANN201
        if self._faces and tuple(seq) == ALL_FACES:
            return self._faces.popleft()
        return super().choice(seq)

    def randint(self, a: int, b: int) -> int:
        return a if self._reverse_seats else b


def make_player(player_id: str, name: str | None = None, *, is_ai: bool = False, **stats: int) -> Player:
    player = Player.create(player_id, name or player_id.title(), GameSettings(), is_ai=is_ai)
    for key, value in stats.items():
        setattr(player, key, value)
    return player


def make_engine(
    player_ids: Sequence[str] = ("alice", "bob"),
    *,
    rng: random.Random | None = None,
    settings: GameSettings | None = None,
) -> TurnEngine:
    """Engine whose seat order equals `player_ids`."""
    players = [make_player(pid) for pid in player_ids]
    return TurnEngine(players, "ABCDE", settings=settings, rng=rng or ScriptedRng())


async def create_lobby(
    manager: SessionManager,
    names: Sequence[str] = ("Anne", "Bonny"),
) -> tuple[str, list[MockConnection]]:
    """Register one connection per name; the first creates the room, the rest join it."""
    connections = [MockConnection(f"conn-{name.lower()}") for name in names]
    for connection in connections:
        manager.register_connection(connection)

    await manager.create_room(connections[0], names[0])
    room_code = connections[0].last_message("room_created")["room_code"]
    for connection, name in zip(connections[1:], names[1:], strict=True):
        await manager.join_room(connection, room_code, name)
    return room_code, connections


async def start_game(
    manager: SessionManager,
    names: Sequence[str] = ("Anne", "Bonny"),
    num_ai: int = 0,
) -> tuple[str, list[MockConnection]]:
    """Create a lobby, ready every human, add AI seats and start the game."""
    room_code, connections = await create_lobby(manager, names)
    for connection in connections:
        await manager.set_ready(connection, ready=True)
    for _ in range(num_ai):
        await manager.add_ai_player(connections[0])
    await manager.start_game(connections[0])
    return room_code, connections
