"""Typed domain exceptions for game rule violations.

Game logic raises subclasses of GameRuleError when a message is valid on the
wire but not allowed in the current state. The session layer catches them and
replies with an error message to the offending connection only; the game
state is left unchanged.
"""


class GameRuleError(Exception):
    """Base exception for game rule violations."""


class InvalidActionError(GameRuleError):
    """Action is not valid in the current game phase."""


class NotYourTurnError(GameRuleError):
    """The acting player does not hold the status the action requires."""


class PlayerNotFoundError(GameRuleError):
    """The referenced player is not in the roster."""


class NotAdmittedError(GameRuleError):
    """The acting player's join request has not been accepted yet."""
