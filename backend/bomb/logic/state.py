"""
Game state models.

GameSession is mutable and owned by exactly one session lock at a time.
It round-trips through model_dump()/model_validate() for the state cache.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from bomb.logic.enums import GamePhase, PlayerStatus
from bomb.logic.pages import ActorPage, MoviePage
from bomb.logic.settings import ELIMINATION_LETTERS
from bomb.logic.turn import is_eligible

Round = list[ActorPage | MoviePage]


class Player(BaseModel):
    """A seat in a game session. Survives socket disconnects."""

    id: str
    name: str
    pending: bool = False
    message: str | None = None
    letters: int = Field(default=0, ge=0, le=ELIMINATION_LETTERS)
    left: bool = False  # left a started game; stays listed, token no longer resolves

    @property
    def eliminated(self) -> bool:
        return not is_eligible(self.letters)


class GameSession(BaseModel):
    """One game: roster, round stack and turn pointer.

    Rounds are stored oldest first; the last one is the working round.
    The turn pointer is an index into `players` plus the status its holder
    has. Player order is fixed once the game starts.
    """

    id: str
    players: list[Player] = Field(default_factory=list)
    rounds: list[Round] = Field(default_factory=list)
    started: bool = False
    ended: bool = False
    turn_index: int | None = None
    turn_status: PlayerStatus = PlayerStatus.NONE
    winner_id: str | None = None

    @property
    def phase(self) -> GamePhase:
        if not self.started:
            return GamePhase.PENDING
        if self.ended:
            return GamePhase.OVER
        return GamePhase.ACTIVE

    @property
    def host(self) -> Player | None:
        return self.players[0] if self.players else None

    @property
    def is_empty(self) -> bool:
        return not self.players

    @property
    def letters(self) -> list[int]:
        return [p.letters for p in self.players]

    @property
    def admitted_players(self) -> list[Player]:
        return [p for p in self.players if not p.pending]

    @property
    def eligible_players(self) -> list[Player]:
        return [p for p in self.players if not p.eliminated]

    @property
    def holder(self) -> Player | None:
        """The player whose move it is, or None outside active play."""
        if self.turn_index is None:
            return None
        return self.players[self.turn_index]

    @property
    def current_round(self) -> Round:
        return self.rounds[-1]

    def index_of(self, player_id: str) -> int | None:
        for index, player in enumerate(self.players):
            if player.id == player_id:
                return index
        return None

    def get_player(self, player_id: str) -> Player | None:
        index = self.index_of(player_id)
        return None if index is None else self.players[index]

    def status_of(self, index: int) -> PlayerStatus:
        """Status shown for the player at `index`.

        Before the game starts the host is shown as active; that marks the
        host, not a turn.
        """
        if not self.started:
            return PlayerStatus.ACTIVE if index == 0 else PlayerStatus.NONE
        if index == self.turn_index:
            return self.turn_status
        return PlayerStatus.NONE
