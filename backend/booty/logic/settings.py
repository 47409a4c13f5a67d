"""Centralized game settings for Booty Dice - every rule magnitude in one place."""

from pydantic import BaseModel, ConfigDict, Field

NUM_DICE = 6
MAX_PLAYERS = 6
MIN_PLAYERS = 2


class GameSettings(BaseModel):
    """
    Configuration for the Booty Dice rules.

    All defaults match the standard game.
    """

    model_config = ConfigDict(frozen=True)

    # --- Turn structure ---
    rolls_per_turn: int = Field(default=3, ge=1)

    # --- Starting stats ---
    starting_doubloons: int = Field(default=5, ge=0)
    starting_lives: int = Field(default=10, ge=1)
    starting_shields: int = Field(default=0, ge=0)

    # --- Room ---
    max_players: int = Field(default=MAX_PLAYERS, ge=MIN_PLAYERS)
    min_players: int = Field(default=MIN_PLAYERS, ge=MIN_PLAYERS)

    # --- Win condition ---
    winning_doubloons: int = Field(default=25, ge=1)

    # --- Single-die effects ---
    doubloon_gain: int = 2
    x_marks_spot_loss: int = 2
    walk_plank_loss: int = 1
    shield_gain: int = 1
    cutlass_damage: int = 1
    steal_cap: int = 2

    # --- Combos ---
    mutiny_base_damage: int = 1
    shipwreck_base_loss: int = 3
    curse_life_loss: int = 2
    curse_coin_loss: int = 5
