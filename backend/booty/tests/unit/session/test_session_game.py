import asyncio

import pytest

from booty.logic.enums import DiceFace, GameAction, GamePhase, TurnPhase
from booty.logic.exceptions import InvalidActionError, InvalidTargetError, NotYourTurnError
from booty.messaging.types import SessionErrorCode, SessionMessageType
from booty.session.ai_turn import AIDelays, AITurnRunner
from booty.session.manager import SessionManager
from booty.tests.helpers import create_lobby, start_game
from booty.tests.mocks import MockConnection

D = DiceFace.DOUBLOON
C = DiceFace.CUTLASS
J = DiceFace.JOLLY_ROGER
S = DiceFace.SHIELD


def _engine(manager, room_code):
    return manager.registry.get_room(room_code).engine


class TestTurnRules:
    async def test_roll_broadcasts_dice_and_state(self, manager, rng):
        _, (anne, bonny) = await start_game(manager)
        rng.queue(D, D, S, S, D, D)
        bonny.clear()

        await manager.handle_game_action(anne, GameAction.ROLL, {})

        rolled = bonny.last_message(SessionMessageType.DICE_ROLLED)
        assert [d["face"] for d in rolled["dice"]] == ["doubloon", "doubloon", "shield", "shield", "doubloon", "doubloon"]
        assert rolled["combo"] is None
        assert bonny.last_message(SessionMessageType.GAME_STATE)["state"]["rolls_remaining"] == 2

    async def test_only_current_player_may_act(self, manager):
        _, (_, bonny) = await start_game(manager)

        with pytest.raises(NotYourTurnError, match="It is not your turn"):
            await manager.handle_game_action(bonny, GameAction.ROLL, {})

    async def test_must_roll_before_finishing_or_ending(self, manager):
        _, (anne, _) = await start_game(manager)

        with pytest.raises(InvalidActionError, match="Roll at least once first"):
            await manager.handle_game_action(anne, GameAction.FINISH_ROLLING, {})
        with pytest.raises(InvalidActionError, match="Roll at least once first"):
            await manager.handle_game_action(anne, GameAction.END_TURN, {})

    async def test_no_rolling_after_finishing(self, manager, rng):
        _, (anne, _) = await start_game(manager)
        rng.queue(D, D, D, D, D, D)
        await manager.handle_game_action(anne, GameAction.ROLL, {})
        await manager.handle_game_action(anne, GameAction.FINISH_ROLLING, {})

        with pytest.raises(InvalidActionError, match="Rolling is over"):
            await manager.handle_game_action(anne, GameAction.ROLL, {})
        with pytest.raises(InvalidActionError, match="Rolling is over"):
            await manager.handle_game_action(anne, GameAction.LOCK_DICE, {"indices": [0]})

    async def test_lock_dice_is_broadcast(self, manager, rng):
        _, (anne, bonny) = await start_game(manager)
        rng.queue(D, D, D, D, D, D)
        await manager.handle_game_action(anne, GameAction.ROLL, {})

        await manager.handle_game_action(anne, GameAction.LOCK_DICE, {"indices": [1, 3]})

        dice = bonny.last_message(SessionMessageType.GAME_STATE)["state"]["dice"]
        assert [d["locked"] for d in dice] == [False, True, False, True, False, False]

    async def test_end_turn_waits_for_targets(self, manager, rng):
        _, (anne, _) = await start_game(manager)
        rng.queue(C, D, D, D, D, D)
        await manager.handle_game_action(anne, GameAction.ROLL, {})
        await manager.handle_game_action(anne, GameAction.FINISH_ROLLING, {})

        with pytest.raises(InvalidActionError, match="Select targets"):
            await manager.handle_game_action(anne, GameAction.END_TURN, {})

    @pytest.mark.parametrize(
        ("target_id", "message"),
        [("conn-anne", "cannot target yourself"), ("nobody", "No such player")],
    )
    async def test_invalid_targets(self, manager, rng, target_id, message):
        _, (anne, _) = await start_game(manager)
        rng.queue(C, D, D, D, D, D)
        await manager.handle_game_action(anne, GameAction.ROLL, {})
        await manager.handle_game_action(anne, GameAction.FINISH_ROLLING, {})

        with pytest.raises(InvalidTargetError, match=message):
            await manager.handle_game_action(anne, GameAction.SELECT_TARGET, {"die_index": 0, "target_id": target_id})

    async def test_eliminated_players_cannot_be_targeted(self, manager, rng):
        room_code, (anne, _, cara) = await start_game(manager, ["Anne", "Bonny", "Cara"])
        _engine(manager, room_code).get_player(cara.connection_id).is_eliminated = True
        rng.queue(J, D, D, D, D, D)
        await manager.handle_game_action(anne, GameAction.ROLL, {})
        await manager.handle_game_action(anne, GameAction.FINISH_ROLLING, {})

        with pytest.raises(InvalidTargetError, match="already been eliminated"):
            await manager.handle_game_action(anne, GameAction.SELECT_TARGET, {"die_index": 0, "target_id": "conn-cara"})

    async def test_targets_wait_until_rolling_is_over(self, manager, rng):
        room_code, (anne, _) = await start_game(manager)
        rng.queue(C, D, D, D, D, D)
        await manager.handle_game_action(anne, GameAction.ROLL, {})

        with pytest.raises(InvalidActionError, match="Finish rolling before choosing targets"):
            await manager.handle_game_action(anne, GameAction.SELECT_TARGET, {"die_index": 0, "target_id": "conn-bonny"})

        state = _engine(manager, room_code).get_state()
        assert state.turn_phase == TurnPhase.ROLLING
        assert state.rolls_remaining == 2
        assert not state.pending_actions[0].resolved

    async def test_last_roll_opens_target_selection(self, manager, rng):
        room_code, (anne, _) = await start_game(manager)
        rng.queue(*[D] * 6, *[D] * 6, C, D, D, D, D, D)
        for _ in range(3):
            await manager.handle_game_action(anne, GameAction.ROLL, {})

        await manager.handle_game_action(anne, GameAction.SELECT_TARGET, {"die_index": 0, "target_id": "conn-bonny"})

        state = _engine(manager, room_code).get_state()
        assert state.turn_phase == TurnPhase.RESOLVING
        assert state.pending_actions[0].target_player_id == "conn-bonny"

    async def test_full_turn_hands_dice_to_next_player(self, manager, rng):
        room_code, (anne, bonny) = await start_game(manager)
        rng.queue(C, D, D, D, D, D)
        await manager.handle_game_action(anne, GameAction.ROLL, {})
        await manager.handle_game_action(anne, GameAction.FINISH_ROLLING, {})
        await manager.handle_game_action(anne, GameAction.SELECT_TARGET, {"die_index": 0, "target_id": "conn-bonny"})
        bonny.clear()

        await manager.handle_game_action(anne, GameAction.END_TURN, {})

        assert [m["type"] for m in bonny.sent_messages] == ["game_state", "turn_changed"]
        state = bonny.last_message(SessionMessageType.GAME_STATE)["state"]
        assert state["players"][1]["lives"] == 9
        assert state["players"][0]["doubloons"] == 15
        assert state["turn_number"] == 2
        assert state["turn_phase"] == TurnPhase.ROLLING
        assert bonny.last_message(SessionMessageType.TURN_CHANGED)["player_id"] == "conn-bonny"
        assert _engine(manager, room_code).get_current_player().id == "conn-bonny"


class TestGameEnd:
    async def test_riches_end_the_game(self, manager, rng):
        room_code, (anne, bonny) = await start_game(manager)
        _engine(manager, room_code).force_player_stats("conn-anne", doubloons=23)
        rng.queue(D, D, D, D, D, D)
        await manager.handle_game_action(anne, GameAction.ROLL, {})
        bonny.clear()

        await manager.handle_game_action(anne, GameAction.END_TURN, {})

        assert [m["type"] for m in bonny.sent_messages] == ["game_ended", "game_state"]
        ended = bonny.last_message(SessionMessageType.GAME_ENDED)
        assert ended == {"type": "game_ended", "winner_id": "conn-anne", "reason": "doubloons"}
        state = bonny.last_message(SessionMessageType.GAME_STATE)["state"]
        assert state["phase"] == GamePhase.ENDED
        assert state["winner_id"] == "conn-anne"

        with pytest.raises(InvalidActionError, match="The game is over"):
            await manager.handle_game_action(anne, GameAction.ROLL, {})

    async def test_elimination_is_announced_with_eliminator(self, manager, rng):
        room_code, (anne, bonny, cara) = await start_game(manager, ["Anne", "Bonny", "Cara"])
        _engine(manager, room_code).force_player_stats("conn-cara", lives=1, doubloons=4)
        rng.queue(C, S, S, S, S, S)
        await manager.handle_game_action(anne, GameAction.ROLL, {})
        await manager.handle_game_action(anne, GameAction.FINISH_ROLLING, {})
        await manager.handle_game_action(anne, GameAction.SELECT_TARGET, {"die_index": 0, "target_id": "conn-cara"})
        await manager.handle_game_action(anne, GameAction.END_TURN, {})

        eliminated = bonny.last_message(SessionMessageType.PLAYER_ELIMINATED)
        assert eliminated == {"type": "player_eliminated", "player_id": "conn-cara", "eliminator_id": "conn-anne"}
        state = cara.last_message(SessionMessageType.GAME_STATE)["state"]
        assert state["players"][0]["doubloons"] == 9
        assert state["phase"] == GamePhase.PLAYING

    async def test_reset_returns_everyone_to_the_lobby(self, manager, rng):
        room_code, (anne, bonny) = await start_game(manager)
        _engine(manager, room_code).force_player_stats("conn-anne", doubloons=23)
        rng.queue(D, D, D, D, D, D)
        await manager.handle_game_action(anne, GameAction.ROLL, {})
        await manager.handle_game_action(anne, GameAction.END_TURN, {})

        await manager.reset_game(bonny)
        assert bonny.last_message(SessionMessageType.ERROR)["code"] == SessionErrorCode.NOT_HOST

        await manager.reset_game(anne)

        lobby = bonny.last_message(SessionMessageType.LOBBY_STATE)
        assert lobby["can_start"] is False
        assert all(p["doubloons"] == 5 and not p["is_ready"] for p in lobby["players"])
        assert manager.registry.get_room(room_code).engine is None


class TestActionPreconditions:
    async def test_not_in_a_room(self, manager):
        loner = MockConnection("loner")
        manager.register_connection(loner)

        await manager.handle_game_action(loner, GameAction.ROLL, {})

        assert loner.last_message(SessionMessageType.ERROR)["code"] == SessionErrorCode.NOT_IN_ROOM

    async def test_game_not_started(self, manager):
        _, (anne,) = await create_lobby(manager, ["Anne"])

        await manager.handle_game_action(anne, GameAction.ROLL, {})

        assert anne.last_message(SessionMessageType.ERROR)["code"] == SessionErrorCode.NOT_IN_GAME


class TestAITurns:
    async def test_ai_plays_its_turn_and_hands_back(self, manager, rng):
        room_code, (anne,) = await start_game(manager, ["Anne"], num_ai=1)
        rng.queue(D, D, D, D, D, D)
        await manager.handle_game_action(anne, GameAction.ROLL, {})
        await manager.handle_game_action(anne, GameAction.END_TURN, {})

        await manager.wait_for_ai_turns(room_code)

        engine = _engine(manager, room_code)
        state = engine.get_state()
        assert state.current_player.id == "conn-anne"
        assert state.turn_number == 3
        turns = [m["player_id"] for m in anne.messages_of_type(SessionMessageType.TURN_CHANGED)]
        assert turns[-2:] == [state.players[1].id, "conn-anne"]
        assert anne.messages_of_type(SessionMessageType.DICE_ROLLED)

    async def test_ai_chain_runs_through_consecutive_ai_seats(self, manager, rng):
        room_code, (anne,) = await start_game(manager, ["Anne"], num_ai=3)
        rng.queue(S, S, S, S, S, S)
        await manager.handle_game_action(anne, GameAction.ROLL, {})
        await manager.handle_game_action(anne, GameAction.END_TURN, {})

        await manager.wait_for_ai_turns(room_code)

        state = _engine(manager, room_code).get_state()
        if state.phase == GamePhase.PLAYING:
            assert state.current_player.id == "conn-anne"
            assert state.turn_number >= 5

    @pytest.mark.parametrize("rng", [True], indirect=True)
    async def test_ai_opens_the_game_when_seated_first(self, manager, rng):
        room_code, (anne,) = await create_lobby(manager, ["Anne"])
        await manager.add_ai_player(anne)
        await manager.set_ready(anne, ready=True)

        await manager.start_game(anne)
        await manager.wait_for_ai_turns(room_code)

        state = _engine(manager, room_code).get_state()
        assert state.players[0].is_ai
        assert state.current_player.id == "conn-anne"
        assert state.turn_number == 2

    @pytest.mark.parametrize("rng", [True], indirect=True)
    async def test_restart_during_ai_turn_gets_a_fresh_driver(self, registry, rng):
        delays = AIDelays(think=0.2, roll=0, target=0, end_turn=0)
        manager = SessionManager(registry=registry, ai_runner=AITurnRunner(delays=delays))
        try:
            room_code, (anne,) = await create_lobby(manager, ["Anne"])
            await manager.add_ai_player(anne)
            await manager.set_ready(anne, ready=True)
            await manager.start_game(anne)
            # the AI is still thinking about its first roll
            await asyncio.sleep(0.05)

            await manager.reset_game(anne)
            await manager.set_ready(anne, ready=True)
            await manager.start_game(anne)
            await manager.wait_for_ai_turns(room_code)

            state = _engine(manager, room_code).get_state()
            assert state.players[0].is_ai
            assert state.current_player.id == "conn-anne"
            assert state.turn_number == 2
        finally:
            manager.cancel_all_ai_turns()
