"""Per-turn tally of applied effects and the summary line written to the game log."""

from collections import Counter
from dataclasses import dataclass, field


@dataclass
class TurnTally:
    """What actually happened to the board during one resolution pass."""

    coins_from_treasure: int = 0
    coins_to_treasure: int = 0
    planks_walked: int = 0
    shields_raised: int = 0
    stolen: Counter[str] = field(default_factory=Counter)  # victim name -> doubloons
    damage: Counter[str] = field(default_factory=Counter)  # victim name -> lives
    absorbed: Counter[str] = field(default_factory=Counter)  # victim name -> blocked hits

    def describe(self, player_name: str) -> str:
        parts: list[str] = []
        if self.coins_from_treasure:
            parts.append(f"took {self.coins_from_treasure} doubloons from the treasure")
        parts.extend(f"stole {amount} from {victim}" for victim, amount in self.stolen.items())
        parts.extend(f"dealt {amount} damage to {victim}" for victim, amount in self.damage.items())
        parts.extend(
            f"was blocked by {victim}'s shield {_times(count)}" for victim, count in self.absorbed.items()
        )
        if self.coins_to_treasure:
            parts.append(f"lost {self.coins_to_treasure} doubloons to the treasure")
        if self.planks_walked:
            parts.append(f"walked the plank {_times(self.planks_walked)}")
        if self.shields_raised:
            noun = "shield" if self.shields_raised == 1 else "shields"
            parts.append(f"raised {self.shields_raised} {noun}")
        if not parts:
            return f"{player_name}'s turn: no plunder this time"
        return f"{player_name}'s turn: " + ", ".join(parts)


def _times(count: int) -> str:
    return "once" if count == 1 else f"{count} times"
