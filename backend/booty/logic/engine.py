"""
Turn engine: the authoritative state machine of one Booty Dice game.

A turn moves through rolling -> selecting_targets (only when offensive dice
need targets) -> resolving, and end_turn() hands the dice to the next
living player. The engine is purely synchronous; identity and turn
ownership checks belong to the session layer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from booty.logic.dice import COMBO_NAMES, create_fresh_dice, describe_faces, roll_dice
from booty.logic.enums import (
    ATTACK_ORIGINS,
    TARGETED_FACES,
    DiceFace,
    EffectOrigin,
    EffectType,
    GamePhase,
    LogEntryType,
    TurnPhase,
    WinReason,
)
from booty.logic.exceptions import InvalidTargetError, NoRollsRemainingError
from booty.logic.resolver import resolve_effects
from booty.logic.rng import create_rng, fisher_yates_shuffle
from booty.logic.settings import GameSettings
from booty.logic.state import Die, GameState, LogEntry, PendingAction
from booty.logic.summary import TurnTally
from booty.logic.types import DieView, GameView, RollResult, TurnResolution

if TYPE_CHECKING:
    import random
    from collections.abc import Sequence

    from booty.logic.state import Player
    from booty.logic.types import ResolvedEffect

logger = logging.getLogger(__name__)


class TurnEngine:
    """
    Owns the GameState of one started room.

    Player objects are shared with the room that started the game, so
    connection state changes made by the room registry are visible here.
    """

    def __init__(
        self,
        players: Sequence[Player],
        room_code: str,
        settings: GameSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if not players:
            raise ValueError("cannot start a game without players")
        self._settings = settings or GameSettings()
        self._rng = rng or create_rng()
        self._state = GameState(
            room_code=room_code,
            players=fisher_yates_shuffle(players, self._rng),
            dice=create_fresh_dice(),
            rolls_remaining=self._settings.rolls_per_turn,
        )
        self._announce_turn()

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def room_code(self) -> str:
        return self._state.room_code

    @property
    def is_ended(self) -> bool:
        return self._state.phase == GamePhase.ENDED

    def get_state(self) -> GameView:
        """Return a frozen snapshot of the whole game."""
        return GameView.model_validate(self._state)

    def get_current_player(self) -> Player:
        return self._state.players[self._state.current_player_index]

    def get_player(self, player_id: str) -> Player | None:
        return next((p for p in self._state.players if p.id == player_id), None)

    # --- Rolling ---

    def lock_dice(self, indices: Sequence[int]) -> None:
        """Lock exactly the dice in `indices` and unlock the rest."""
        wanted = set(indices)
        for die in self._state.dice:
            die.locked = die.id in wanted

    def roll(self) -> RollResult:
        state = self._state
        if state.rolls_remaining <= 0:
            raise NoRollsRemainingError("No rolls remaining")

        dice, combo, bonus = roll_dice(state.dice, self._rng)
        state.dice = dice
        state.rolls_remaining -= 1
        state.pending_actions = _detect_pending_actions(dice)

        can_roll_again = state.rolls_remaining > 0
        if state.pending_actions and not can_roll_again:
            state.turn_phase = TurnPhase.SELECTING_TARGETS

        player = self.get_current_player()
        message = f"{player.name} rolled: {describe_faces(dice)}"
        if combo is not None:
            message += f" ({COMBO_NAMES[combo]}!)"
        self._add_log(player.id, message, LogEntryType.COMBO if combo else LogEntryType.ROLL)

        return RollResult(
            dice=[DieView.model_validate(die) for die in dice],
            combo=combo,
            bonus_count=bonus,
            can_roll_again=can_roll_again,
        )

    def finish_rolling(self) -> None:
        """Stop rolling early. Does nothing outside the rolling phase."""
        state = self._state
        if state.turn_phase != TurnPhase.ROLLING:
            return
        state.turn_phase = TurnPhase.SELECTING_TARGETS if state.pending_actions else TurnPhase.RESOLVING

    # --- Targeting ---

    def select_target(self, die_index: int, target_player_id: str) -> None:
        state = self._state
        action = next((a for a in state.pending_actions if a.die_index == die_index), None)
        if action is None:
            raise InvalidTargetError(f"No pending action for die {die_index}")

        action.target_player_id = target_player_id
        action.resolved = True
        if all(a.resolved for a in state.pending_actions):
            state.turn_phase = TurnPhase.RESOLVING

    def has_unresolved_targets(self) -> bool:
        return any(not a.resolved for a in self._state.pending_actions)

    # --- Resolution ---

    def resolve_turn(self) -> TurnResolution:
        """
        Apply the current player's final dice to the roster.

        Effects apply strictly in resolver order. Once the current player is
        eliminated, their remaining cutlass and jolly_roger effects are forfeited.
        """
        state = self._state
        current = self.get_current_player()
        effects = resolve_effects(state.dice, state.pending_actions, current, state.players, self._settings)

        applied: list[ResolvedEffect] = []
        forfeited: list[ResolvedEffect] = []
        eliminations: list[str] = []
        tally = TurnTally()
        for effect in effects:
            if effect.origin in ATTACK_ORIGINS and current.is_eliminated:
                forfeited.append(effect)
                continue
            target = self.get_player(effect.target_id)
            if target is None:
                continue
            self._apply_effect(effect, target, tally)
            applied.append(effect)
            if target.lives <= 0 and not target.is_eliminated:
                self._eliminate(target, effect.source_id)
                eliminations.append(target.id)

        if forfeited:
            logger.info("forfeited %d attack effects of eliminated player %s", len(forfeited), current.id)
        self._add_log(current.id, tally.describe(current.name), LogEntryType.SUMMARY)

        winner, reason = self._check_win_condition(eliminations)
        if winner is not None and reason is not None:
            state.phase = GamePhase.ENDED
            state.winner_id = winner.id
            reason_text = "riches" if reason == WinReason.DOUBLOONS else "last standing"
            self._add_log(winner.id, f"{winner.name} wins by {reason_text}!", LogEntryType.WIN)

        return TurnResolution(
            effects=applied,
            forfeited=forfeited,
            eliminations=eliminations,
            winner=winner.id if winner else None,
            win_reason=reason,
        )

    def _apply_effect(self, effect: ResolvedEffect, target: Player, tally: TurnTally) -> None:
        if effect.type == EffectType.DAMAGE:
            if target.shields > 0:
                target.shields -= 1
                tally.absorbed[target.name] += 1
                self._add_log(target.id, f"{target.name}'s shield absorbs the attack!", LogEntryType.ACTION)
                return
            target.lives -= effect.amount
            tally.damage[target.name] += effect.amount
        elif effect.type == EffectType.COINS_LOST:
            lost = min(effect.amount, target.doubloons)
            target.doubloons -= lost
            if effect.origin == EffectOrigin.JOLLY_ROGER:
                tally.stolen[target.name] += lost
            elif effect.origin == EffectOrigin.X_MARKS_SPOT:
                tally.coins_to_treasure += lost
        elif effect.type == EffectType.COINS_GAINED:
            target.doubloons += effect.amount
            if effect.origin == EffectOrigin.DOUBLOON:
                tally.coins_from_treasure += effect.amount
        elif effect.type == EffectType.SHIELD_GAINED:
            target.shields += effect.amount
            tally.shields_raised += effect.amount
        elif effect.type == EffectType.LIFE_LOST:
            # shields only block damage
            target.lives -= effect.amount
            if effect.origin == EffectOrigin.WALK_PLANK:
                tally.planks_walked += 1

    def _eliminate(self, victim: Player, source_id: str | None) -> None:
        victim.is_eliminated = True
        if source_id is not None and source_id != victim.id:
            killer = self.get_player(source_id)
            if killer is not None:
                plunder = victim.doubloons
                killer.doubloons += plunder
                victim.doubloons = 0
                self._add_log(
                    killer.id,
                    f"Captain's Plunder! {killer.name} takes {plunder} doubloons from {victim.name}!",
                    LogEntryType.ELIMINATION,
                )
        self._add_log(victim.id, f"{victim.name} has been eliminated!", LogEntryType.ELIMINATION)

    def _check_win_condition(self, eliminations: Sequence[str]) -> tuple[Player | None, WinReason | None]:
        alive = [p for p in self._state.players if not p.is_eliminated]
        rich = next((p for p in alive if p.doubloons >= self._settings.winning_doubloons), None)
        if rich is not None:
            return rich, WinReason.DOUBLOONS
        if len(alive) == 1:
            return alive[0], WinReason.LAST_STANDING
        if not alive and eliminations:
            # everyone fell in the same pass: the last one to go down outlasted the rest
            return self.get_player(eliminations[-1]), WinReason.LAST_STANDING
        return None, None

    # --- Turn advancement ---

    def end_turn(self) -> None:
        """Hand the dice to the next living player in seat order."""
        state = self._state
        if state.phase == GamePhase.ENDED:
            return

        seats = len(state.players)
        next_index = None
        for step in range(1, seats + 1):
            candidate = (state.current_player_index + step) % seats
            if not state.players[candidate].is_eliminated:
                next_index = candidate
                break
        if next_index is None:
            logger.error("no living player to pass the turn to in room %s", state.room_code)
            return

        state.current_player_index = next_index
        state.turn_number += 1
        state.rolls_remaining = self._settings.rolls_per_turn
        state.dice = create_fresh_dice()
        state.turn_phase = TurnPhase.ROLLING
        state.pending_actions = []
        self._announce_turn()

    # --- Scenario setup ---

    def force_dice(self, faces: Sequence[DiceFace]) -> None:
        """Set the dice to `faces` as if they had just been rolled, without using a roll."""
        state = self._state
        if len(faces) != len(state.dice):
            raise ValueError(f"expected {len(state.dice)} faces, got {len(faces)}")
        state.dice = [Die(id=slot, face=face) for slot, face in enumerate(faces)]
        state.pending_actions = _detect_pending_actions(state.dice)

    def force_player_stats(
        self,
        player_id: str,
        *,
        doubloons: int | None = None,
        lives: int | None = None,
        shields: int | None = None,
    ) -> None:
        """Overwrite a player's stats for scenario setup."""
        player = self.get_player(player_id)
        if player is None:
            raise ValueError(f"unknown player {player_id}")
        if doubloons is not None:
            player.doubloons = doubloons
        if lives is not None:
            player.lives = lives
        if shields is not None:
            player.shields = shields

    def _announce_turn(self) -> None:
        player = self.get_current_player()
        self._add_log(player.id, f"{player.name}'s turn begins", LogEntryType.ROLL)

    def _add_log(self, player_id: str, message: str, entry_type: LogEntryType) -> None:
        self._state.game_log.append(LogEntry(player_id=player_id, message=message, type=entry_type))


def _detect_pending_actions(dice: Sequence[Die]) -> list[PendingAction]:
    return [PendingAction(die_index=die.id, face=die.face) for die in dice if die.face in TARGETED_FACES]
