"""
AI decision making for computer-controlled pirates.

A strategy only looks at snapshots and answers three questions: which dice
to keep, whether to roll again, and whom to target. Scheduling and delays
are owned by the session layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from booty.logic.enums import DiceFace

if TYPE_CHECKING:
    from collections.abc import Sequence

    from booty.logic.types import DieView, GameView, PlayerView

FACE_VALUE: dict[DiceFace, int] = {
    DiceFace.DOUBLOON: 8,
    DiceFace.JOLLY_ROGER: 7,
    DiceFace.SHIELD: 5,
    DiceFace.CUTLASS: 4,
    DiceFace.X_MARKS_SPOT: -3,
    DiceFace.WALK_PLANK: -5,
}

KEEP_THRESHOLD = 4
LOW_LIVES = 3
VULNERABLE_LIVES = 2
RICH_OPPONENTS_GOLD = 15
COMFORTABLE_LOCKED_VALUE = 20
NEAR_COMBO = 2


class TurnStrategy(Protocol):
    def decide_keep_indices(self, dice: Sequence[DieView], me: PlayerView, view: GameView) -> list[int]: ...

    def should_roll_again(
        self,
        dice: Sequence[DieView],
        rolls_remaining: int,
        me: PlayerView,
        view: GameView,
    ) -> bool: ...

    def select_target(self, face: DiceFace, me: PlayerView, view: GameView) -> PlayerView | None: ...


def _opponents(me: PlayerView, view: GameView) -> list[PlayerView]:
    return [p for p in view.players if p.id != me.id and not p.is_eliminated]


class AIStrategy:
    """Greedy pirate: bank good faces, chase combos when they hurt the table."""

    def decide_keep_indices(self, dice: Sequence[DieView], me: PlayerView, view: GameView) -> list[int]:
        opponents = _opponents(me, view)
        keep: list[int] = []

        planks = [die.id for die in dice if die.face == DiceFace.WALK_PLANK]
        if len(planks) >= NEAR_COMBO and any(p.lives <= LOW_LIVES for p in opponents):
            keep.extend(planks)

        marks = [die.id for die in dice if die.face == DiceFace.X_MARKS_SPOT]
        if len(marks) >= NEAR_COMBO and sum(p.doubloons for p in opponents) >= RICH_OPPONENTS_GOLD:
            keep.extend(marks)

        keep.extend(die.id for die in dice if FACE_VALUE[die.face] >= KEEP_THRESHOLD)
        return list(dict.fromkeys(keep))

    def should_roll_again(
        self,
        dice: Sequence[DieView],
        rolls_remaining: int,
        me: PlayerView,  # noqa: ARG002
        view: GameView,  # noqa: ARG002
    ) -> bool:
        if rolls_remaining <= 0:
            return False

        negatives = sum(1 for die in dice if not die.locked and FACE_VALUE[die.face] < 0)
        if negatives >= 2:
            return True

        locked_value = sum(FACE_VALUE[die.face] for die in dice if die.locked)
        if locked_value >= COMFORTABLE_LOCKED_VALUE and negatives <= 1:
            return False
        return negatives >= 1

    def select_target(self, face: DiceFace, me: PlayerView, view: GameView) -> PlayerView | None:
        opponents = _opponents(me, view)
        if not opponents:
            return None

        if face == DiceFace.CUTLASS:

            def cutlass_priority(p: PlayerView) -> tuple[bool, int]:
                vulnerable = p.lives <= VULNERABLE_LIVES and p.shields == 0
                return (not vulnerable, -p.doubloons)

            return min(opponents, key=cutlass_priority)
        return max(opponents, key=lambda p: p.doubloons)
