"""Typed domain exceptions for game rule violations.

All caller errors raised by the turn engine are subclasses of GameRuleError.
They are raised before any state is mutated and are converted to a single
error message for the offending connection at the routing boundary.
"""


class GameRuleError(Exception):
    """Base exception for game rule violations."""


class NoRollsRemainingError(GameRuleError):
    """The current player has used every roll this turn."""


class InvalidTargetError(GameRuleError):
    """Target selection does not match a pending action or a valid opponent."""


class NotYourTurnError(GameRuleError):
    """A game action came from a player who is not the current player."""


class InvalidActionError(GameRuleError):
    """Action is not valid in the current turn phase."""
