"""
Events produced by game actions.

Actions mutate the GameSession in place and return events describing side
effects the session layer has to carry out (notifications, socket release,
lobby listing refresh). Snapshot broadcasting is not an event: the session
layer sends a fresh snapshot after every successful action.
"""

from pydantic import BaseModel, ConfigDict


class GameEvent(BaseModel):
    model_config = ConfigDict(frozen=True)


class ToastEvent(GameEvent):
    """Short human-readable notice. Sent to one player when target is set, else to the whole game."""

    message: str
    target: str | None = None


class JoinRequestDeniedEvent(GameEvent):
    """A pending player was denied or dropped at game start; their seat token is void."""

    player_id: str


class ListingChangedEvent(GameEvent):
    """The game's entry in the lobby's joinable list changed (host renamed, started, emptied)."""


class GameEndedEvent(GameEvent):
    winner_id: str | None
