"""
Dice construction, rolling and combo detection.

All functions here are pure: they never touch game state and take the
random generator as an argument.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from typing import TYPE_CHECKING

from booty.logic.enums import ALL_FACES, ComboType, DiceFace
from booty.logic.settings import NUM_DICE
from booty.logic.state import Die

if TYPE_CHECKING:
    import random
    from collections.abc import Iterable, Sequence

COMBO_THRESHOLD = 3

_COMBO_FACE = {
    ComboType.MUTINY: DiceFace.WALK_PLANK,
    ComboType.SHIPWRECK: DiceFace.X_MARKS_SPOT,
}

COMBO_NAMES = {
    ComboType.MUTINY: "MUTINY",
    ComboType.SHIPWRECK: "SHIPWRECK",
    ComboType.BLACKBEARDS_CURSE: "BLACKBEARD'S CURSE",
}


def create_fresh_dice(count: int = NUM_DICE) -> list[Die]:
    """Dice for the start of a turn: all doubloon, all unlocked."""
    return [Die(id=slot) for slot in range(count)]


def detect_combo(faces: Iterable[DiceFace]) -> tuple[ComboType | None, int]:
    """
    Detect the combo over the final faces of a roll.

    Returns the combo (or None) and its bonus count, i.e. how many matching
    faces exceed the threshold. Priority: curse, then mutiny, then shipwreck.
    """
    counts = Counter(faces)
    if len(counts) == len(ALL_FACES) and all(c == 1 for c in counts.values()):
        return ComboType.BLACKBEARDS_CURSE, 0
    for combo in (ComboType.MUTINY, ComboType.SHIPWRECK):
        matching = counts[_COMBO_FACE[combo]]
        if matching >= COMBO_THRESHOLD:
            return combo, matching - COMBO_THRESHOLD
    return None, 0


def absorbed_face(combo: ComboType | None) -> DiceFace | None:
    """Face whose individual effects are replaced by the combo, if any."""
    if combo is None:
        return None
    return _COMBO_FACE.get(combo)


def roll_dice(dice: Sequence[Die], rng: random.Random) -> tuple[list[Die], ComboType | None, int]:
    """Reroll every unlocked die. Returns new dice, the combo and its bonus count."""
    rolled = [die if die.locked else replace(die, face=rng.choice(ALL_FACES)) for die in dice]
    combo, bonus = detect_combo(die.face for die in rolled)
    return rolled, combo, bonus


def describe_faces(dice: Sequence[Die]) -> str:
    """Human-readable face counts, e.g. '2x doubloon, 1x walk plank'."""
    counts = Counter(die.face for die in dice)
    return ", ".join(f"{count}x {face.value.replace('_', ' ')}" for face, count in counts.items())
