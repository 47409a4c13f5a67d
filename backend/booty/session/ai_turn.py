"""Drive one AI pirate through a turn using the same actions a human sends."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from booty.logic.ai_player import AIStrategy
from booty.logic.enums import GameAction, GamePhase

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from booty.logic.ai_player import TurnStrategy
    from booty.logic.engine import TurnEngine
    from booty.logic.types import GameView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AIDelays:
    """Artificial pauses (seconds) so humans can follow what the AI does."""

    think: float = 1.5
    roll: float = 0.8
    target: float = 0.5
    end_turn: float = 1.0


class AITurnRunner:
    """
    Run a strategy against a live engine.

    Every step waits, then re-checks that the game is still running and
    that the AI still holds the dice before it acts.
    """

    def __init__(self, strategy: TurnStrategy | None = None, delays: AIDelays | None = None) -> None:
        self._strategy = strategy or AIStrategy()
        self._delays = delays or AIDelays()

    async def take_turn(
        self,
        engine: TurnEngine,
        player_id: str,
        perform: Callable[[GameAction, dict[str, Any]], Awaitable[bool]],
    ) -> bool:
        """Play the current turn. Returns True if the turn was ended."""
        turn_number = engine.get_state().turn_number

        async def step(delay: float, action: GameAction, data: dict[str, Any] | None = None) -> bool:
            await asyncio.sleep(delay)
            if not self._still_my_turn(engine, player_id, turn_number):
                return False
            return await perform(action, data or {})

        # the fresh dice are a placeholder, the first roll is never optional
        if not await step(self._delays.think, GameAction.ROLL):
            return False

        view = engine.get_state()
        while view.rolls_remaining > 0:
            me = view.current_player
            keep = self._strategy.decide_keep_indices(view.dice, me, view)
            if not await step(self._delays.think, GameAction.LOCK_DICE, {"indices": keep}):
                return False
            view = engine.get_state()
            if not self._strategy.should_roll_again(view.dice, view.rolls_remaining, me, view):
                break
            if not await step(self._delays.roll, GameAction.ROLL):
                return False
            view = engine.get_state()

        if not await step(0, GameAction.FINISH_ROLLING):
            return False

        await asyncio.sleep(self._delays.think)
        view = engine.get_state()
        for action in view.pending_actions:
            if action.resolved:
                continue
            target = self._strategy.select_target(action.face, view.current_player, view)
            if target is None:
                logger.warning("AI %s found no target for die %d", player_id, action.die_index)
                continue
            data = {"die_index": action.die_index, "target_id": target.id}
            if not await step(0, GameAction.SELECT_TARGET, data):
                return False
            await asyncio.sleep(self._delays.target)

        return await step(self._delays.end_turn, GameAction.END_TURN)

    @staticmethod
    def _still_my_turn(engine: TurnEngine, player_id: str, turn_number: int) -> bool:
        view: GameView = engine.get_state()
        return (
            view.phase == GamePhase.PLAYING
            and view.turn_number == turn_number
            and view.current_player.id == player_id
        )
