"""
String enum definitions for game concepts.
"""

from enum import StrEnum


class PlayerStatus(StrEnum):
    """Turn status of a player. At most one player holds a non-NONE status."""

    NONE = "none"
    ACTIVE = "active"
    CHALLENGED = "challenged"
    REVIEWING = "reviewing"


class GamePhase(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    OVER = "over"


class GameAction(StrEnum):
    """Actions dispatched from a seated client to the game service."""

    ACCEPT_JOIN_REQUEST = "accept_join_request"
    DENY_JOIN_REQUEST = "deny_join_request"
    START_GAME = "start_game"
    LEAVE_GAME = "leave_game"
    PLAY_MOVE = "play_move"
    CHALLENGE = "challenge"
    GIVE_UP = "give_up"
    MARK_ANSWER_CORRECT = "mark_answer_correct"
    MARK_ANSWER_INCORRECT = "mark_answer_incorrect"
