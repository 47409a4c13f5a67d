"""Room registry: concurrent rooms, membership, readiness, AI seats and reconnects."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import uuid4

from booty.logic.engine import TurnEngine
from booty.logic.rng import create_rng
from booty.logic.settings import GameSettings
from booty.logic.state import Player
from booty.session.models import Room
from booty.session.room_code import generate_room_code, normalize_room_code
from booty.session.types import DisconnectResult, JoinFailure, JoinResult, LobbyInfo, LobbyPlayerInfo

if TYPE_CHECKING:
    import random

    from booty.logic.types import GameView

logger = logging.getLogger(__name__)

AI_NAMES = (
    "Captain Blackbyte",
    "Rusty Hook",
    "One-Eyed Otto",
    "Sea Dog Sally",
    "Barnacle Bill",
    "Pegleg Pete",
)


class RoomRegistry:
    """
    Own every room and the player -> room index.

    The two maps are always updated together: a player id is indexed exactly
    while that player sits in the indexed room. Operations never suspend, so
    each one is atomic from the caller's point of view.
    """

    def __init__(self, settings: GameSettings | None = None, rng: random.Random | None = None) -> None:
        self._settings = settings or GameSettings()
        self._rng = rng or create_rng()
        self._rooms: dict[str, Room] = {}
        self._player_rooms: dict[str, str] = {}  # player id -> room code

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def active_game_count(self) -> int:
        return sum(1 for room in self._rooms.values() if room.in_game)

    def get_room(self, code: str) -> Room | None:
        return self._rooms.get(normalize_room_code(code))

    def get_room_by_player(self, player_id: str) -> Room | None:
        code = self._player_rooms.get(player_id)
        return self._rooms.get(code) if code else None

    def get_players_in_room(self, code: str) -> list[Player]:
        room = self.get_room(code)
        return list(room.players.values()) if room else []

    def is_host(self, code: str, player_id: str) -> bool:
        room = self.get_room(code)
        return room is not None and room.host_id == player_id

    # --- Lobby ---

    def create_room(self, host_id: str, host_name: str) -> Room:
        code = generate_room_code(self._rng)
        while code in self._rooms:
            code = generate_room_code(self._rng)

        host = Player.create(host_id, host_name, self._settings)
        room = Room(code=code, host_id=host_id, players={host_id: host})
        self._rooms[code] = room
        self._player_rooms[host_id] = code
        logger.info("room %s created by %s", code, host_id)
        return room

    def join_room(self, code: str, player_id: str, name: str) -> JoinResult:
        room = self.get_room(code)
        if room is None:
            return JoinResult(success=False, failure=JoinFailure.ROOM_NOT_FOUND)
        if room.player_count >= self._settings.max_players:
            return JoinResult(success=False, failure=JoinFailure.ROOM_FULL)
        if room.in_game:
            return JoinResult(success=False, failure=JoinFailure.GAME_IN_PROGRESS)

        room.players[player_id] = Player.create(player_id, name, self._settings)
        self._player_rooms[player_id] = room.code
        logger.info("player %s joined room %s", player_id, room.code)
        return JoinResult(success=True)

    def add_ai_player(self, code: str) -> Player | None:
        room = self.get_room(code)
        if room is None or room.in_game or room.player_count >= self._settings.max_players:
            return None

        ai_id = f"ai_{uuid4().hex[:12]}"
        while ai_id in room.players:
            ai_id = f"ai_{uuid4().hex[:12]}"
        ai = Player.create(ai_id, self._pick_ai_name(room), self._settings, is_ai=True)
        room.players[ai_id] = ai
        logger.info("AI %s (%s) added to room %s", ai.name, ai_id, room.code)
        return ai

    def remove_ai_player(self, code: str, ai_id: str) -> bool:
        room = self.get_room(code)
        if room is None or room.in_game:
            return False
        player = room.players.get(ai_id)
        if player is None or not player.is_ai:
            return False
        del room.players[ai_id]
        return True

    def set_player_ready(self, player_id: str, *, ready: bool) -> Room | None:
        room = self.get_room_by_player(player_id)
        if room is None:
            return None
        room.players[player_id].is_ready = ready
        return room

    def can_start_game(self, code: str) -> bool:
        room = self.get_room(code)
        if room is None or room.in_game or room.player_count < self._settings.min_players:
            return False
        return all(p.is_ai or p.is_ready for p in room.players.values())

    def start_game(self, code: str) -> GameView | None:
        """Start a game for the room's current roster. Returns None when the room cannot start."""
        if not self.can_start_game(code):
            return None
        room = self.get_room(code)
        if room is None:
            return None
        room.engine = TurnEngine(list(room.players.values()), room.code, settings=self._settings, rng=self._rng)
        logger.info("game started in room %s with %d players", room.code, room.player_count)
        return room.engine.get_state()

    def reset_game_room(self, code: str) -> Room | None:
        """Drop the finished (or running) game and send everyone back to the lobby."""
        room = self.get_room(code)
        if room is None:
            return None
        room.engine = None
        for player in room.players.values():
            player.reset_stats(self._settings)
        # players who dropped out mid-game cannot ready up again
        for player in [p for p in room.players.values() if not p.is_connected]:
            self._remove_player(room, player.id)
        self._reassign_host(room)
        if room.is_abandoned:
            self._delete_room(room)
            return None
        return room

    def get_active_lobbies(self) -> list[LobbyInfo]:
        """Rooms that are still gathering players, oldest first."""
        lobbies = []
        for room in sorted(self._rooms.values(), key=lambda r: r.created_at):
            if room.in_game:
                continue
            host = room.host
            lobbies.append(
                LobbyInfo(
                    code=room.code,
                    host_name=host.name if host else "",
                    player_count=room.player_count,
                    max_players=self._settings.max_players,
                    players=[LobbyPlayerInfo(name=p.name, is_ai=p.is_ai) for p in room.players.values()],
                    created_at=room.created_at,
                ),
            )
        return lobbies

    # --- Connection lifecycle ---

    def handle_disconnect(self, player_id: str) -> DisconnectResult | None:
        """
        Drop a lobby player, or mark an in-game player disconnected.

        Rooms left without human members are deleted.
        """
        room = self.get_room_by_player(player_id)
        if room is None:
            return None

        was_host = room.host_id == player_id
        removed = not room.in_game
        if removed:
            self._remove_player(room, player_id)
            if was_host:
                self._reassign_host(room)
        else:
            room.players[player_id].is_connected = False

        room_deleted = room.is_abandoned
        if room_deleted:
            self._delete_room(room)
        return DisconnectResult(room_code=room.code, was_host=was_host, removed=removed, room_deleted=room_deleted)

    def handle_reconnect(self, code: str, old_id: str, new_id: str) -> Room | None:
        """Move a disconnected player onto a new connection id. Returns the room on success."""
        room = self.get_room(code)
        if room is None:
            return None
        player = room.players.get(old_id)
        if player is None or player.is_connected or new_id in room.players:
            return None

        del room.players[old_id]
        player.id = new_id
        player.is_connected = True
        room.players[new_id] = player

        self._player_rooms.pop(old_id, None)
        self._player_rooms[new_id] = room.code
        if room.host_id == old_id:
            room.host_id = new_id
        logger.info("player %s reconnected to room %s as %s", old_id, room.code, new_id)
        return room

    # --- Internals ---

    def _pick_ai_name(self, room: Room) -> str:
        used = {p.name for p in room.players.values()}
        for name in AI_NAMES:
            if name not in used:
                return name
        n = room.player_count
        while f"AI Pirate {n}" in used:
            n += 1
        return f"AI Pirate {n}"

    def _remove_player(self, room: Room, player_id: str) -> None:
        room.players.pop(player_id, None)
        self._player_rooms.pop(player_id, None)

    @staticmethod
    def _reassign_host(room: Room) -> None:
        if room.host_id in room.players:
            return
        humans = room.human_players
        if humans:
            room.host_id = humans[0].id

    def _delete_room(self, room: Room) -> None:
        for player_id in room.players:
            self._player_rooms.pop(player_id, None)
        self._rooms.pop(room.code, None)
        logger.info("room %s deleted", room.code)
