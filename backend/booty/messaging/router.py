from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from booty.logic.exceptions import GameRuleError
from booty.messaging.types import (
    AddAIMessage,
    BrowseSubscribeMessage,
    BrowseUnsubscribeMessage,
    CreateRoomMessage,
    ErrorMessage,
    JoinRoomMessage,
    LockDiceMessage,
    NoDataActionMessage,
    PingMessage,
    ReconnectMessage,
    RemoveAIMessage,
    ResetGameMessage,
    SelectTargetMessage,
    SessionErrorCode,
    SetReadyMessage,
    StartGameMessage,
    parse_client_message,
)

if TYPE_CHECKING:
    from booty.messaging.protocol import ConnectionProtocol
    from booty.session.manager import SessionManager

logger = logging.getLogger(__name__)


_GAME_ACTION_TYPES = (LockDiceMessage, SelectTargetMessage, NoDataActionMessage)


class MessageRouter:
    """
    Routes incoming messages to the session manager.

    This class contains pure dispatch logic and can be tested
    without real WebSocket connections.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message from %s: %s", connection.connection_id, e)
            await self._send_error(connection, SessionErrorCode.INVALID_MESSAGE, str(e))
            return

        manager = self._session_manager
        if isinstance(message, CreateRoomMessage):
            await manager.create_room(connection, message.player_name)
        elif isinstance(message, JoinRoomMessage):
            await manager.join_room(connection, message.room_code, message.player_name)
        elif isinstance(message, SetReadyMessage):
            await manager.set_ready(connection, ready=message.ready)
        elif isinstance(message, AddAIMessage):
            await manager.add_ai_player(connection)
        elif isinstance(message, RemoveAIMessage):
            await manager.remove_ai_player(connection, message.ai_id)
        elif isinstance(message, StartGameMessage):
            await manager.start_game(connection)
        elif isinstance(message, ResetGameMessage):
            await manager.reset_game(connection)
        elif isinstance(message, _GAME_ACTION_TYPES):
            await self._handle_game_action(connection, message)
        elif isinstance(message, ReconnectMessage):
            await manager.reconnect(connection, message.room_code, message.player_id)
        elif isinstance(message, BrowseSubscribeMessage):
            await manager.subscribe_browse(connection)
        elif isinstance(message, BrowseUnsubscribeMessage):
            manager.unsubscribe_browse(connection)
        elif isinstance(message, PingMessage):
            await manager.handle_ping(connection)

    async def _handle_game_action(
        self,
        connection: ConnectionProtocol,
        message: LockDiceMessage | SelectTargetMessage | NoDataActionMessage,
    ) -> None:
        """Route a game action; rule violations only bounce back to the sender."""
        try:
            data = message.model_dump(exclude={"type", "action"})
            await self._session_manager.handle_game_action(connection, message.action, data)
        except (GameRuleError, ValueError) as e:
            logger.warning("action failed for %s: %s", connection.connection_id, e)
            await self._send_error(connection, SessionErrorCode.ACTION_FAILED, str(e))
        except Exception:
            logger.exception("unexpected error during game action for %s", connection.connection_id)
            await self._send_error(connection, SessionErrorCode.INTERNAL_ERROR, "Something went wrong")

    @staticmethod
    async def _send_error(connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        await connection.send_message(ErrorMessage(code=code, message=message).model_dump())

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._session_manager.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.handle_disconnect(connection)
        self._session_manager.unregister_connection(connection)
