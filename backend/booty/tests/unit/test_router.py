from unittest.mock import AsyncMock

from booty.messaging.router import MessageRouter
from booty.messaging.types import SessionErrorCode, SessionMessageType
from booty.tests.mocks import MockConnection


async def _connect(router: MessageRouter, connection_id: str = "c1") -> MockConnection:
    connection = MockConnection(connection_id)
    await router.handle_connect(connection)
    return connection


class TestMessageRouter:
    async def test_invalid_message_gets_error_reply(self, router):
        connection = await _connect(router)

        await router.handle_message(connection, {"type": "launch_cannons"})

        error = connection.last_message(SessionMessageType.ERROR)
        assert error["code"] == SessionErrorCode.INVALID_MESSAGE

    async def test_create_room_is_dispatched(self, router, manager):
        connection = await _connect(router)

        await router.handle_message(connection, {"type": "create_room", "player_name": "Anne"})

        created = connection.last_message(SessionMessageType.ROOM_CREATED)
        assert created["player_id"] == "c1"
        assert manager.room_count == 1

    async def test_ping_pong(self, router):
        connection = await _connect(router)

        await router.handle_message(connection, {"type": "ping"})

        assert connection.sent_messages == [{"type": "pong"}]

    async def test_browse_subscription(self, router, manager):
        watcher = await _connect(router, "watcher")
        host = await _connect(router, "host")

        await router.handle_message(watcher, {"type": "browse_subscribe"})
        assert watcher.last_message(SessionMessageType.LOBBIES)["lobbies"] == []

        await router.handle_message(host, {"type": "create_room", "player_name": "Anne"})
        lobbies = watcher.last_message(SessionMessageType.LOBBIES)["lobbies"]
        assert [lobby["host_name"] for lobby in lobbies] == ["Anne"]

        await router.handle_message(watcher, {"type": "browse_unsubscribe"})
        watcher.clear()
        await router.handle_message(host, {"type": "add_ai"})
        assert watcher.sent_messages == []

    async def test_rule_violation_is_reported_to_sender_only(self, router, manager):
        anne = await _connect(router, "anne")
        bonny = await _connect(router, "bonny")
        await router.handle_message(anne, {"type": "create_room", "player_name": "Anne"})
        code = anne.last_message(SessionMessageType.ROOM_CREATED)["room_code"]
        await router.handle_message(bonny, {"type": "join_room", "room_code": code, "player_name": "Bonny"})
        await router.handle_message(anne, {"type": "set_ready", "ready": True})
        await router.handle_message(bonny, {"type": "set_ready", "ready": True})
        await router.handle_message(anne, {"type": "start_game"})
        current = manager.registry.get_room(code).engine.get_current_player().id
        waiting = bonny if current == "anne" else anne
        anne.clear()
        bonny.clear()

        await router.handle_message(waiting, {"type": "game_action", "action": "roll"})

        error = waiting.last_message(SessionMessageType.ERROR)
        assert error == {"type": "session_error", "code": "action_failed", "message": "It is not your turn"}
        other = anne if waiting is bonny else bonny
        assert other.sent_messages == []

    async def test_unexpected_failure_becomes_internal_error(self, manager):
        manager.handle_game_action = AsyncMock(side_effect=KeyError("boom"))
        router = MessageRouter(manager)
        connection = await _connect(router)

        await router.handle_message(connection, {"type": "game_action", "action": "end_turn"})

        error = connection.last_message(SessionMessageType.ERROR)
        assert error["code"] == SessionErrorCode.INTERNAL_ERROR
        assert error["message"] == "Something went wrong"

    async def test_game_action_payload_excludes_envelope(self, manager):
        manager.handle_game_action = AsyncMock()
        router = MessageRouter(manager)
        connection = await _connect(router)

        await router.handle_message(
            connection,
            {"type": "game_action", "action": "select_target", "die_index": 1, "target_id": "bob"},
        )

        _, action, data = manager.handle_game_action.call_args.args
        assert action == "select_target"
        assert data == {"die_index": 1, "target_id": "bob"}

    async def test_disconnect_unregisters(self, router, manager):
        connection = await _connect(router)
        assert manager.connection_count == 1

        await router.handle_disconnect(connection)

        assert manager.connection_count == 0
