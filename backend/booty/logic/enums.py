"""
String enum definitions for Booty Dice game concepts.
"""

from enum import Enum


class DiceFace(str, Enum):
    """The six faces of a pirate die, in their fixed order."""

    DOUBLOON = "doubloon"
    X_MARKS_SPOT = "x_marks_spot"
    JOLLY_ROGER = "jolly_roger"
    CUTLASS = "cutlass"
    WALK_PLANK = "walk_plank"
    SHIELD = "shield"


ALL_FACES: tuple[DiceFace, ...] = tuple(DiceFace)
TARGETED_FACES = frozenset({DiceFace.CUTLASS, DiceFace.JOLLY_ROGER})


class ComboType(str, Enum):
    """Bonus patterns detected over the final six faces of a roll."""

    MUTINY = "mutiny"
    SHIPWRECK = "shipwreck"
    BLACKBEARDS_CURSE = "blackbeards_curse"


class GamePhase(str, Enum):
    PLAYING = "playing"
    ENDED = "ended"


class TurnPhase(str, Enum):
    """Sub-state of the turn in progress."""

    ROLLING = "rolling"
    SELECTING_TARGETS = "selecting_targets"
    RESOLVING = "resolving"


class EffectType(str, Enum):
    DAMAGE = "damage"
    COINS_LOST = "coins_lost"
    COINS_GAINED = "coins_gained"
    SHIELD_GAINED = "shield_gained"
    LIFE_LOST = "life_lost"


class EffectOrigin(str, Enum):
    """What produced an effect: a combo or a single die face."""

    BLACKBEARDS_CURSE = "blackbeards_curse"
    MUTINY = "mutiny"
    SHIPWRECK = "shipwreck"
    DOUBLOON = "doubloon"
    X_MARKS_SPOT = "x_marks_spot"
    WALK_PLANK = "walk_plank"
    SHIELD = "shield"
    CUTLASS = "cutlass"
    JOLLY_ROGER = "jolly_roger"


# effects a player only applies while still standing
ATTACK_ORIGINS = frozenset({EffectOrigin.CUTLASS, EffectOrigin.JOLLY_ROGER})


class LogEntryType(str, Enum):
    ROLL = "roll"
    ACTION = "action"
    COMBO = "combo"
    ELIMINATION = "elimination"
    WIN = "win"
    SUMMARY = "summary"


class WinReason(str, Enum):
    DOUBLOONS = "doubloons"
    LAST_STANDING = "last_standing"


class GameAction(str, Enum):
    """Actions dispatched from client to the turn orchestrator."""

    LOCK_DICE = "lock_dice"
    ROLL = "roll"
    FINISH_ROLLING = "finish_rolling"
    SELECT_TARGET = "select_target"
    END_TURN = "end_turn"
