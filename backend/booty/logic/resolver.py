"""
Effect resolution for a finished turn.

resolve_effects() turns the final dice, the targeting decisions and the
roster into an ordered list of effects. It never mutates its inputs; the
TurnEngine applies the effects in the order they are returned.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from booty.logic.dice import absorbed_face, detect_combo
from booty.logic.enums import ComboType, DiceFace, EffectOrigin, EffectType
from booty.logic.settings import GameSettings
from booty.logic.types import ResolvedEffect

if TYPE_CHECKING:
    from collections.abc import Sequence

    from booty.logic.state import Die, PendingAction, Player

_DEFAULT_SETTINGS = GameSettings()


def _opponents(current: Player, players: Sequence[Player]) -> list[Player]:
    return [p for p in players if p.id != current.id and not p.is_eliminated]


def _combo_effects(
    combo: ComboType,
    bonus: int,
    current: Player,
    players: Sequence[Player],
    settings: GameSettings,
) -> list[ResolvedEffect]:
    effects: list[ResolvedEffect] = []
    for victim in _opponents(current, players):
        if combo == ComboType.BLACKBEARDS_CURSE:
            effects.append(
                ResolvedEffect(
                    type=EffectType.LIFE_LOST,
                    target_id=victim.id,
                    source_id=current.id,
                    amount=settings.curse_life_loss,
                    origin=EffectOrigin.BLACKBEARDS_CURSE,
                    description=f"{victim.name} loses {settings.curse_life_loss} lives from Blackbeard's Curse!",
                ),
            )
            effects.append(
                ResolvedEffect(
                    type=EffectType.COINS_LOST,
                    target_id=victim.id,
                    source_id=current.id,
                    amount=settings.curse_coin_loss,
                    origin=EffectOrigin.BLACKBEARDS_CURSE,
                    description=f"{victim.name} loses {settings.curse_coin_loss} doubloons from Blackbeard's Curse!",
                ),
            )
        elif combo == ComboType.MUTINY:
            amount = settings.mutiny_base_damage + bonus
            effects.append(
                ResolvedEffect(
                    type=EffectType.LIFE_LOST,
                    target_id=victim.id,
                    source_id=current.id,
                    amount=amount,
                    origin=EffectOrigin.MUTINY,
                    description=f"{victim.name} loses {amount} life from Mutiny!",
                ),
            )
        else:
            # shipwreck sinks coins into the sea, nobody collects them
            amount = settings.shipwreck_base_loss + bonus
            effects.append(
                ResolvedEffect(
                    type=EffectType.COINS_LOST,
                    target_id=victim.id,
                    amount=amount,
                    origin=EffectOrigin.SHIPWRECK,
                    description=f"{victim.name} loses {amount} doubloons from Shipwreck!",
                ),
            )
    return effects


def _targeted_effects(
    die: Die,
    action: PendingAction | None,
    current: Player,
    players: Sequence[Player],
    settings: GameSettings,
) -> list[ResolvedEffect]:
    if action is None or action.target_player_id is None:
        return []
    target = next((p for p in players if p.id == action.target_player_id), None)
    if target is None:
        return []

    if die.face == DiceFace.CUTLASS:
        return [
            ResolvedEffect(
                type=EffectType.DAMAGE,
                target_id=target.id,
                source_id=current.id,
                amount=settings.cutlass_damage,
                origin=EffectOrigin.CUTLASS,
                description=f"{current.name} attacks {target.name} with a cutlass!",
            ),
        ]

    steal = min(settings.steal_cap, target.doubloons)
    if steal <= 0:
        return []
    return [
        ResolvedEffect(
            type=EffectType.COINS_LOST,
            target_id=target.id,
            source_id=current.id,
            amount=steal,
            origin=EffectOrigin.JOLLY_ROGER,
            description=f"{current.name} steals {steal} doubloons from {target.name}!",
        ),
        ResolvedEffect(
            type=EffectType.COINS_GAINED,
            target_id=current.id,
            amount=steal,
            origin=EffectOrigin.JOLLY_ROGER,
            description=f"{current.name} pockets {steal} stolen doubloons",
        ),
    ]


def _self_effect(die: Die, current: Player, settings: GameSettings) -> ResolvedEffect:
    if die.face == DiceFace.DOUBLOON:
        return ResolvedEffect(
            type=EffectType.COINS_GAINED,
            target_id=current.id,
            amount=settings.doubloon_gain,
            origin=EffectOrigin.DOUBLOON,
            description=f"{current.name} gains {settings.doubloon_gain} doubloons",
        )
    if die.face == DiceFace.X_MARKS_SPOT:
        return ResolvedEffect(
            type=EffectType.COINS_LOST,
            target_id=current.id,
            amount=settings.x_marks_spot_loss,
            origin=EffectOrigin.X_MARKS_SPOT,
            description=f"{current.name} loses {settings.x_marks_spot_loss} doubloons to the treasure",
        )
    if die.face == DiceFace.WALK_PLANK:
        return ResolvedEffect(
            type=EffectType.LIFE_LOST,
            target_id=current.id,
            amount=settings.walk_plank_loss,
            origin=EffectOrigin.WALK_PLANK,
            description=f"{current.name} walks the plank and loses {settings.walk_plank_loss} life",
        )
    return ResolvedEffect(
        type=EffectType.SHIELD_GAINED,
        target_id=current.id,
        amount=settings.shield_gain,
        origin=EffectOrigin.SHIELD,
        description=f"{current.name} gains a shield",
    )


def resolve_effects(
    dice: Sequence[Die],
    pending_actions: Sequence[PendingAction],
    current_player: Player,
    players: Sequence[Player],
    settings: GameSettings | None = None,
) -> list[ResolvedEffect]:
    """
    Compute the ordered effects of the current player's final dice.

    Combo effects come first. Blackbeard's Curse replaces every per-die
    effect; Mutiny absorbs the walk_plank dice and Shipwreck the
    x_marks_spot dice. Remaining dice are resolved in slot order.
    Cutlass and jolly_roger dice without a chosen target do nothing.
    """
    settings = settings or _DEFAULT_SETTINGS
    combo, bonus = detect_combo(die.face for die in dice)

    effects: list[ResolvedEffect] = []
    if combo is not None:
        effects.extend(_combo_effects(combo, bonus, current_player, players, settings))
    if combo == ComboType.BLACKBEARDS_CURSE:
        return effects

    skipped_face = absorbed_face(combo)
    actions_by_die = {action.die_index: action for action in pending_actions}
    for die in dice:
        if die.face == skipped_face:
            continue
        if die.face in (DiceFace.CUTLASS, DiceFace.JOLLY_ROGER):
            effects.extend(_targeted_effects(die, actions_by_die.get(die.id), current_player, players, settings))
        else:
            effects.append(_self_effect(die, current_player, settings))
    return effects
