"""Turn orchestrator: validates callers, drives the engine, broadcasts and chains AI turns."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from booty.logic.enums import GameAction, TurnPhase
from booty.logic.exceptions import InvalidActionError, InvalidTargetError, NotYourTurnError
from booty.logic.types import PlayerView
from booty.messaging.types import (
    DiceRolledMessage,
    ErrorMessage,
    GameEndedMessage,
    GameStartingMessage,
    GameStateMessage,
    JoinResultMessage,
    LobbiesMessage,
    LobbyStateMessage,
    PlayerEliminatedMessage,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    PongMessage,
    RoomCreatedMessage,
    SessionErrorCode,
    TurnChangedMessage,
)
from booty.session.ai_turn import AITurnRunner
from booty.session.broadcast import broadcast_to_connections
from booty.session.registry import RoomRegistry

if TYPE_CHECKING:
    from booty.logic.engine import TurnEngine
    from booty.messaging.protocol import ConnectionProtocol
    from booty.session.models import Room

logger = structlog.get_logger()


class SessionManager:
    """
    Single entry point for everything a connection can ask for.

    Game actions for one room are serialized by a per-room lock, and at most
    one AI driver task runs per room; it keeps playing while AI hold the dice.
    """

    def __init__(
        self,
        registry: RoomRegistry | None = None,
        ai_runner: AITurnRunner | None = None,
        max_rooms: int | None = None,
    ) -> None:
        self._registry = registry or RoomRegistry()
        self._max_rooms = max_rooms
        self._ai_runner = ai_runner or AITurnRunner()
        self._connections: dict[str, ConnectionProtocol] = {}
        self._browse_subscribers: set[str] = set()
        self._room_locks: dict[str, asyncio.Lock] = {}
        self._ai_tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def registry(self) -> RoomRegistry:
        return self._registry

    @property
    def room_count(self) -> int:
        return self._registry.room_count

    @property
    def active_game_count(self) -> int:
        return self._registry.active_game_count

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    def unregister_connection(self, connection: ConnectionProtocol) -> None:
        self._connections.pop(connection.connection_id, None)
        self._browse_subscribers.discard(connection.connection_id)

    # --- Lobby ---

    async def create_room(self, connection: ConnectionProtocol, player_name: str) -> None:
        if await self._reject_if_in_room(connection):
            return
        if self._max_rooms is not None and self._registry.room_count >= self._max_rooms:
            await self._send_error(connection, SessionErrorCode.SERVER_FULL, "No free rooms, try again later")
            return
        room = self._registry.create_room(connection.connection_id, player_name)
        self._room_locks[room.code] = asyncio.Lock()
        structlog.contextvars.bind_contextvars(room_code=room.code)
        logger.info("room created", player_id=connection.connection_id)

        await connection.send_message(
            RoomCreatedMessage(room_code=room.code, player_id=connection.connection_id).model_dump(),
        )
        await self._broadcast_lobby_state(room)
        await self._publish_lobbies()

    async def join_room(self, connection: ConnectionProtocol, room_code: str, player_name: str) -> None:
        if await self._reject_if_in_room(connection):
            return
        result = self._registry.join_room(room_code, connection.connection_id, player_name)
        if not result.success:
            logger.info("join refused", room_code=room_code, reason=result.failure)
            await connection.send_message(
                JoinResultMessage(success=False, room_code=room_code, error=result.error).model_dump(),
            )
            return

        room = self._registry.get_room(room_code)
        if room is None:
            return
        structlog.contextvars.bind_contextvars(room_code=room.code)
        player = room.players[connection.connection_id]
        await connection.send_message(
            JoinResultMessage(success=True, room_code=room.code, player_id=player.id).model_dump(),
        )
        await self._broadcast_to_room(
            room,
            PlayerJoinedMessage(player=PlayerView.model_validate(player)).model_dump(),
            exclude_connection_id=connection.connection_id,
        )
        await self._broadcast_lobby_state(room)
        await self._publish_lobbies()

    async def set_ready(self, connection: ConnectionProtocol, *, ready: bool) -> None:
        room = await self._require_lobby(connection)
        if room is None:
            return
        self._registry.set_player_ready(connection.connection_id, ready=ready)
        await self._broadcast_lobby_state(room)

    async def add_ai_player(self, connection: ConnectionProtocol) -> None:
        room = await self._require_host_lobby(connection)
        if room is None:
            return
        ai = self._registry.add_ai_player(room.code)
        if ai is None:
            await self._send_error(connection, SessionErrorCode.ROOM_FULL, "Room is full")
            return
        await self._broadcast_to_room(room, PlayerJoinedMessage(player=PlayerView.model_validate(ai)).model_dump())
        await self._broadcast_lobby_state(room)
        await self._publish_lobbies()

    async def remove_ai_player(self, connection: ConnectionProtocol, ai_id: str) -> None:
        room = await self._require_host_lobby(connection)
        if room is None:
            return
        if not self._registry.remove_ai_player(room.code, ai_id):
            await self._send_error(connection, SessionErrorCode.PLAYER_NOT_FOUND, "No such AI player in this room")
            return
        await self._broadcast_to_room(room, PlayerLeftMessage(player_id=ai_id).model_dump())
        await self._broadcast_lobby_state(room)
        await self._publish_lobbies()

    async def start_game(self, connection: ConnectionProtocol) -> None:
        room = await self._require_host_lobby(connection)
        if room is None:
            return
        state = self._registry.start_game(room.code)
        if state is None or room.engine is None:
            await self._send_error(
                connection,
                SessionErrorCode.CANNOT_START,
                "Need at least 2 players and everyone ready",
            )
            return

        logger.info("game started", players=len(state.players))
        await self._broadcast_to_room(room, GameStartingMessage().model_dump())
        await self._broadcast_to_room(room, GameStateMessage(state=state).model_dump())
        await self._broadcast_to_room(
            room,
            TurnChangedMessage(
                current_player_index=state.current_player_index,
                player_id=state.current_player.id,
            ).model_dump(),
        )
        await self._publish_lobbies()
        self._schedule_ai_turns(room)

    async def reset_game(self, connection: ConnectionProtocol) -> None:
        room = self._registry.get_room_by_player(connection.connection_id)
        if room is None:
            await self._send_error(connection, SessionErrorCode.NOT_IN_ROOM, "You are not in a room")
            return
        if not self._registry.is_host(room.code, connection.connection_id):
            await self._send_error(connection, SessionErrorCode.NOT_HOST, "Only the host can do that")
            return

        lock = self._room_locks.setdefault(room.code, asyncio.Lock())
        async with lock:
            reset_room = self._registry.reset_game_room(room.code)
            self._cancel_ai_turns(room.code)
        if reset_room is None:
            self._forget_room(room.code)
        else:
            logger.info("room reset to lobby", room_code=room.code)
            await self._broadcast_lobby_state(reset_room)
        await self._publish_lobbies()

    # --- Game ---

    async def handle_game_action(
        self,
        connection: ConnectionProtocol,
        action: GameAction,
        data: dict[str, Any],
    ) -> None:
        """
        Apply a human player's game action.

        Raises GameRuleError subclasses for rule violations; the router turns
        them into an error for this connection only.
        """
        room = self._registry.get_room_by_player(connection.connection_id)
        if room is None:
            await self._send_error(connection, SessionErrorCode.NOT_IN_ROOM, "You are not in a room")
            return
        if room.engine is None:
            await self._send_error(connection, SessionErrorCode.NOT_IN_GAME, "The game has not started")
            return
        structlog.contextvars.bind_contextvars(room_code=room.code)

        async with self._room_locks.setdefault(room.code, asyncio.Lock()):
            engine = room.engine
            if engine is None:
                raise InvalidActionError("The game has not started")
            if engine.is_ended:
                raise InvalidActionError("The game is over")
            if engine.get_current_player().id != connection.connection_id:
                raise NotYourTurnError("It is not your turn")
            await self._apply_game_action(room, engine, action, data)

    async def _apply_game_action(
        self,
        room: Room,
        engine: TurnEngine,
        action: GameAction,
        data: dict[str, Any],
    ) -> None:
        """Validate turn-phase rules, mutate the engine, broadcast. Caller holds the room lock."""
        state = engine.get_state()
        has_rolled = state.rolls_remaining < engine.settings.rolls_per_turn

        if action == GameAction.LOCK_DICE:
            if state.turn_phase != TurnPhase.ROLLING:
                raise InvalidActionError("Rolling is over for this turn")
            engine.lock_dice(data["indices"])
        elif action == GameAction.ROLL:
            if state.turn_phase != TurnPhase.ROLLING:
                raise InvalidActionError("Rolling is over for this turn")
            result = engine.roll()
            await self._broadcast_to_room(room, DiceRolledMessage(dice=result.dice, combo=result.combo).model_dump())
        elif action == GameAction.FINISH_ROLLING:
            if not has_rolled:
                raise InvalidActionError("Roll at least once first")
            engine.finish_rolling()
        elif action == GameAction.SELECT_TARGET:
            if state.turn_phase == TurnPhase.ROLLING:
                raise InvalidActionError("Finish rolling before choosing targets")
            self._validate_target(engine, data["target_id"])
            engine.select_target(data["die_index"], data["target_id"])
        elif action == GameAction.END_TURN:
            if not has_rolled:
                raise InvalidActionError("Roll at least once first")
            if engine.has_unresolved_targets():
                raise InvalidActionError("Select targets for all attacks and steals first")
            await self._end_turn(room, engine)
            return

        await self._broadcast_state(room, engine)

    @staticmethod
    def _validate_target(engine: TurnEngine, target_id: str) -> None:
        target = engine.get_player(target_id)
        if target is None:
            raise InvalidTargetError("No such player")
        if target.id == engine.get_current_player().id:
            raise InvalidTargetError("You cannot target yourself")
        if target.is_eliminated:
            raise InvalidTargetError("That player has already been eliminated")

    async def _end_turn(self, room: Room, engine: TurnEngine) -> None:
        attacker = engine.get_current_player()
        resolution = engine.resolve_turn()

        for player_id in resolution.eliminations:
            logger.info("player eliminated", player_id=player_id, eliminator_id=attacker.id)
            await self._broadcast_to_room(
                room,
                PlayerEliminatedMessage(player_id=player_id, eliminator_id=attacker.id).model_dump(),
            )

        if resolution.winner is not None and resolution.win_reason is not None:
            logger.info("game ended", winner_id=resolution.winner, reason=resolution.win_reason)
            await self._broadcast_to_room(
                room,
                GameEndedMessage(winner_id=resolution.winner, reason=resolution.win_reason).model_dump(),
            )
            await self._broadcast_state(room, engine)
            return

        engine.end_turn()
        state = engine.get_state()
        await self._broadcast_to_room(room, GameStateMessage(state=state).model_dump())
        await self._broadcast_to_room(
            room,
            TurnChangedMessage(
                current_player_index=state.current_player_index,
                player_id=state.current_player.id,
            ).model_dump(),
        )
        self._schedule_ai_turns(room)

    # --- AI ---

    def _schedule_ai_turns(self, room: Room) -> None:
        """Start the room's AI driver if an AI holds the dice and none is running."""
        engine = room.engine
        if engine is None or engine.is_ended:
            return
        current = engine.get_current_player()
        if not current.is_ai or current.is_eliminated:
            return
        task = self._ai_tasks.get(room.code)
        if task is not None and not task.done():
            return
        self._ai_tasks[room.code] = asyncio.create_task(self._drive_ai_turns(room, engine))

    def _is_live(self, room: Room, engine: TurnEngine) -> bool:
        return self._registry.get_room(room.code) is room and room.engine is engine and not engine.is_ended

    async def _drive_ai_turns(self, room: Room, engine: TurnEngine) -> None:
        structlog.contextvars.bind_contextvars(room_code=room.code)
        try:
            while self._is_live(room, engine):
                current = engine.get_current_player()
                if not current.is_ai or current.is_eliminated:
                    return

                async def perform(action: GameAction, data: dict[str, Any], player_id: str = current.id) -> bool:
                    async with self._room_locks.setdefault(room.code, asyncio.Lock()):
                        if not self._is_live(room, engine) or engine.get_current_player().id != player_id:
                            return False
                        await self._apply_game_action(room, engine, action, data)
                        return True

                if not await self._ai_runner.take_turn(engine, current.id, perform):
                    logger.warning("AI turn stopped before ending", player_id=current.id)
                    return
        except Exception:
            logger.exception("AI turn failed")

    async def wait_for_ai_turns(self, room_code: str) -> None:
        """Wait until no AI driver is running for the room."""
        task = self._ai_tasks.get(room_code)
        while task is not None and not task.done():
            await task
            task = self._ai_tasks.get(room_code)

    def _cancel_ai_turns(self, room_code: str) -> None:
        task = self._ai_tasks.pop(room_code, None)
        if task is not None:
            task.cancel()

    def cancel_all_ai_turns(self) -> None:
        for task in self._ai_tasks.values():
            task.cancel()
        self._ai_tasks.clear()

    # --- Connection lifecycle ---

    async def reconnect(self, connection: ConnectionProtocol, room_code: str, player_id: str) -> None:
        if await self._reject_if_in_room(connection):
            return
        room = self._registry.handle_reconnect(room_code, player_id, connection.connection_id)
        if room is None:
            await self._send_error(connection, SessionErrorCode.RECONNECT_FAILED, "Cannot rejoin that seat")
            return
        structlog.contextvars.bind_contextvars(room_code=room.code)
        logger.info("player reconnected", old_player_id=player_id, player_id=connection.connection_id)
        if room.engine is not None:
            await self._broadcast_state(room, room.engine)
        else:
            await self._broadcast_lobby_state(room)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        self._browse_subscribers.discard(connection.connection_id)
        result = self._registry.handle_disconnect(connection.connection_id)
        if result is None:
            return
        structlog.contextvars.bind_contextvars(room_code=result.room_code)
        logger.info("player disconnected", was_host=result.was_host, room_deleted=result.room_deleted)

        if result.room_deleted:
            self._forget_room(result.room_code)
        else:
            room = self._registry.get_room(result.room_code)
            if room is not None and room.engine is not None:
                await self._broadcast_state(room, room.engine)
            elif room is not None:
                await self._broadcast_to_room(room, PlayerLeftMessage(player_id=connection.connection_id).model_dump())
                await self._broadcast_lobby_state(room)
        if result.removed or result.room_deleted:
            await self._publish_lobbies()

    # --- Browse ---

    async def subscribe_browse(self, connection: ConnectionProtocol) -> None:
        self._browse_subscribers.add(connection.connection_id)
        await connection.send_message(LobbiesMessage(lobbies=self._registry.get_active_lobbies()).model_dump())

    def unsubscribe_browse(self, connection: ConnectionProtocol) -> None:
        self._browse_subscribers.discard(connection.connection_id)

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        await connection.send_message(PongMessage().model_dump())

    # --- Helpers ---

    async def _publish_lobbies(self) -> None:
        if not self._browse_subscribers:
            return
        message = LobbiesMessage(lobbies=self._registry.get_active_lobbies()).model_dump()
        subscribers = [self._connections[cid] for cid in self._browse_subscribers if cid in self._connections]
        await broadcast_to_connections(subscribers, message)

    def _room_connections(self, room: Room) -> list[ConnectionProtocol]:
        return [
            self._connections[p.id]
            for p in room.players.values()
            if not p.is_ai and p.is_connected and p.id in self._connections
        ]

    async def _broadcast_to_room(
        self,
        room: Room,
        message: dict[str, Any],
        exclude_connection_id: str | None = None,
    ) -> None:
        await broadcast_to_connections(self._room_connections(room), message, exclude_connection_id)

    async def _broadcast_state(self, room: Room, engine: TurnEngine) -> None:
        await self._broadcast_to_room(room, GameStateMessage(state=engine.get_state()).model_dump())

    async def _broadcast_lobby_state(self, room: Room) -> None:
        message = LobbyStateMessage(
            room_code=room.code,
            host_id=room.host_id,
            players=[PlayerView.model_validate(p) for p in room.players.values()],
            can_start=self._registry.can_start_game(room.code),
        )
        await self._broadcast_to_room(room, message.model_dump())

    async def _send_error(self, connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        logger.warning("session error sent to client", error_code=code.value, error_message=message)
        await connection.send_message(ErrorMessage(code=code, message=message).model_dump())

    async def _reject_if_in_room(self, connection: ConnectionProtocol) -> bool:
        if self._registry.get_room_by_player(connection.connection_id) is None:
            return False
        await self._send_error(connection, SessionErrorCode.ALREADY_IN_ROOM, "You must leave your current room first")
        return True

    async def _require_lobby(self, connection: ConnectionProtocol) -> Room | None:
        room = self._registry.get_room_by_player(connection.connection_id)
        if room is None:
            await self._send_error(connection, SessionErrorCode.NOT_IN_ROOM, "You are not in a room")
            return None
        if room.in_game:
            await self._send_error(connection, SessionErrorCode.GAME_IN_PROGRESS, "Game already in progress")
            return None
        structlog.contextvars.bind_contextvars(room_code=room.code)
        return room

    async def _require_host_lobby(self, connection: ConnectionProtocol) -> Room | None:
        room = await self._require_lobby(connection)
        if room is not None and not self._registry.is_host(room.code, connection.connection_id):
            await self._send_error(connection, SessionErrorCode.NOT_HOST, "Only the host can do that")
            return None
        return room

    def _forget_room(self, room_code: str) -> None:
        self._room_locks.pop(room_code, None)
        self._cancel_ai_turns(room_code)
