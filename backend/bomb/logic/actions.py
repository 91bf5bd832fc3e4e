"""
Game actions.

Each handler validates the acting player and the phase, mutates the session
in place and returns the events the session layer must act on. A handler that
raises GameRuleError leaves the session untouched.
"""

from collections.abc import Callable
from typing import Any

from bomb.logic.enums import GameAction, GamePhase, PlayerStatus
from bomb.logic.events import GameEndedEvent, GameEvent, JoinRequestDeniedEvent, ListingChangedEvent, ToastEvent
from bomb.logic.exceptions import InvalidActionError, NotAdmittedError, NotYourTurnError, PlayerNotFoundError
from bomb.logic.pages import ActorPage, MoviePage
from bomb.logic.settings import ELIMINATION_LETTERS, MIN_PLAYERS_TO_START, PENALTY_WORD
from bomb.logic.state import GameSession, Player
from bomb.logic.turn import eligible_count, first_eligible, next_eligible, previous_eligible

ActionHandler = Callable[[GameSession, str, dict[str, Any]], list[GameEvent]]

_CHALLENGE_STATUSES = frozenset({PlayerStatus.CHALLENGED, PlayerStatus.REVIEWING})


# --- Lobby-facing ---


def create_game(game_id: str, player_id: str, name: str) -> GameSession:
    """Create a pending game with its creator as host."""
    return GameSession(id=game_id, players=[Player(id=player_id, name=name)])


def request_to_join(game: GameSession, player_id: str, name: str, message: str | None = None) -> None:
    """Append a pending player awaiting admission by the host."""
    if game.started:
        raise InvalidActionError("Game has already started")
    if game.get_player(player_id) is not None:
        raise InvalidActionError("You are already in this game")
    game.players.append(Player(id=player_id, name=name, pending=True, message=message or None))


# --- Guards ---


def _require_phase(game: GameSession, phase: GamePhase) -> None:
    if game.phase != phase:
        if phase == GamePhase.PENDING:
            raise InvalidActionError("Game has already started")
        if phase == GamePhase.ACTIVE and game.phase == GamePhase.PENDING:
            raise InvalidActionError("Game has not started yet")
        raise InvalidActionError("Game is over")


def _require_player(game: GameSession, player_id: str) -> Player:
    player = game.get_player(player_id)
    if player is None:
        raise PlayerNotFoundError("Player not found")
    return player


def _require_pending_target(game: GameSession, player_id: str) -> Player:
    player = game.get_player(player_id)
    if player is None or not player.pending:
        raise PlayerNotFoundError("No pending request from that player")
    return player


def _require_holder(game: GameSession, player_id: str, allowed: frozenset[PlayerStatus], verb: str) -> Player:
    _require_phase(game, GamePhase.ACTIVE)
    holder = game.holder
    if holder is None or holder.id != player_id or game.turn_status not in allowed:
        raise NotYourTurnError(f"You cannot {verb} right now")
    return holder


# --- Turn helpers ---


def _advance(game: GameSession, status: PlayerStatus) -> None:
    """Hand the turn to the next eligible player after the current holder."""
    if game.turn_index is None:
        raise InvalidActionError("No turn to advance")
    game.turn_index = next_eligible(game.letters, game.turn_index)
    game.turn_status = status if game.turn_index is not None else PlayerStatus.NONE


def _end_if_decided(game: GameSession, events: list[GameEvent]) -> bool:
    """End the game when at most one eligible player remains. Returns True if it ended."""
    if eligible_count(game.letters) > 1:
        return False
    survivors = game.eligible_players
    winner = survivors[0] if survivors else None
    game.ended = True
    game.winner_id = winner.id if winner is not None else None
    game.turn_index = None
    game.turn_status = PlayerStatus.NONE
    if winner is not None:
        events.append(ToastEvent(message=f"{winner.name} wins!"))
    events.append(GameEndedEvent(winner_id=game.winner_id))
    return True


def _penalize(game: GameSession, loser: Player) -> list[GameEvent]:
    """Give `loser` a letter, close the working round and pass the turn on."""
    loser.letters = min(loser.letters + 1, ELIMINATION_LETTERS)
    events: list[GameEvent] = []
    if loser.eliminated:
        events.append(ToastEvent(message=f"{loser.name} is out!"))
    else:
        events.append(ToastEvent(message=f"{loser.name} gets a letter: {PENALTY_WORD[: loser.letters]}"))

    if _end_if_decided(game, events):
        return events

    game.rounds.append([])
    _advance(game, PlayerStatus.ACTIVE)
    return events


# --- Waiting room ---


def accept_join_request(game: GameSession, player_id: str, data: dict[str, Any]) -> list[GameEvent]:
    _require_phase(game, GamePhase.PENDING)
    target = _require_pending_target(game, data["user_id"])
    target.pending = False
    target.message = None
    return [ToastEvent(message="Your request to join was accepted", target=target.id)]


def deny_join_request(game: GameSession, player_id: str, data: dict[str, Any]) -> list[GameEvent]:
    _require_phase(game, GamePhase.PENDING)
    target = _require_pending_target(game, data["user_id"])
    game.players.remove(target)
    return [JoinRequestDeniedEvent(player_id=target.id)]


def start_game(game: GameSession, player_id: str, data: dict[str, Any]) -> list[GameEvent]:
    """Drop pending requests, open the first round and give the first player the turn."""
    _require_phase(game, GamePhase.PENDING)
    if len(game.admitted_players) < MIN_PLAYERS_TO_START:
        raise InvalidActionError(f"At least {MIN_PLAYERS_TO_START} players are needed to start")

    events: list[GameEvent] = [JoinRequestDeniedEvent(player_id=p.id) for p in game.players if p.pending]
    game.players = game.admitted_players
    for player in game.players:
        player.message = None

    game.started = True
    game.rounds = [[]]
    game.turn_index = first_eligible(game.letters)
    game.turn_status = PlayerStatus.ACTIVE
    events.append(ListingChangedEvent())
    return events


def leave_game(game: GameSession, player_id: str, data: dict[str, Any]) -> list[GameEvent]:
    player = _require_player(game, player_id)
    if game.phase == GamePhase.PENDING:
        return _leave_pending(game, player)
    _require_phase(game, GamePhase.ACTIVE)
    return _leave_active(game, player)


def _leave_pending(game: GameSession, player: Player) -> list[GameEvent]:
    was_host = game.players[0] is player
    game.players.remove(player)
    if not was_host:
        return []
    if game.players:
        # first admitted player, or the oldest request if nobody was admitted
        new_host = next((p for p in game.players if not p.pending), game.players[0])
        game.players.remove(new_host)
        game.players.insert(0, new_host)
        new_host.pending = False
        new_host.message = None
        return [ListingChangedEvent(), ToastEvent(message="You are now the host", target=new_host.id)]
    return [ListingChangedEvent()]


def _leave_active(game: GameSession, player: Player) -> list[GameEvent]:
    """Eliminate a departing player without removing them from the roster."""
    index = game.index_of(player.id)
    held_turn = index == game.turn_index
    challenge_open = game.turn_status in _CHALLENGE_STATUSES

    player.letters = ELIMINATION_LETTERS
    player.left = True
    events: list[GameEvent] = [ToastEvent(message=f"{player.name} left the game")]

    if _end_if_decided(game, events):
        return events

    # a departure cancels any open challenge; the round it was about is closed
    if challenge_open:
        game.rounds.append([])
    if held_turn:
        _advance(game, PlayerStatus.ACTIVE)
    elif challenge_open:
        game.turn_status = PlayerStatus.ACTIVE
    return events


# --- Turn play ---


def play_move(game: GameSession, player_id: str, data: dict[str, Any]) -> list[GameEvent]:
    """Add a page to the working round.

    A challenged player's move is the answer to the challenge, so the next
    player receives it for review instead of a normal turn.
    """
    _require_holder(game, player_id, frozenset({PlayerStatus.ACTIVE, PlayerStatus.CHALLENGED}), "play")
    page: ActorPage | MoviePage = data["page"]
    game.current_round.append(page)
    answering_challenge = game.turn_status == PlayerStatus.CHALLENGED
    _advance(game, PlayerStatus.REVIEWING if answering_challenge else PlayerStatus.ACTIVE)
    return []


def challenge(game: GameSession, player_id: str, data: dict[str, Any]) -> list[GameEvent]:
    """Accuse the author of the last play; they must answer or give up."""
    challenger = _require_holder(game, player_id, frozenset({PlayerStatus.ACTIVE}), "challenge")
    if not game.current_round:
        raise InvalidActionError("There is no play to challenge")
    accused_index = previous_eligible(game.letters, game.turn_index)
    if accused_index is None or accused_index == game.turn_index:
        raise InvalidActionError("There is no one to challenge")
    accused = game.players[accused_index]
    game.turn_index = accused_index
    game.turn_status = PlayerStatus.CHALLENGED
    return [ToastEvent(message=f"{challenger.name} challenged {accused.name}!")]


def give_up(game: GameSession, player_id: str, data: dict[str, Any]) -> list[GameEvent]:
    accused = _require_holder(game, player_id, frozenset({PlayerStatus.CHALLENGED}), "give up")
    return _penalize(game, accused)


def mark_answer_correct(game: GameSession, player_id: str, data: dict[str, Any]) -> list[GameEvent]:
    """The reviewer accepts the answer: the challenge was wrong and the challenger pays."""
    reviewer = _require_holder(game, player_id, frozenset({PlayerStatus.REVIEWING}), "review")
    return _penalize(game, reviewer)


def mark_answer_incorrect(game: GameSession, player_id: str, data: dict[str, Any]) -> list[GameEvent]:
    """The reviewer rejects the answer: the accused (previous player) pays."""
    _require_holder(game, player_id, frozenset({PlayerStatus.REVIEWING}), "review")
    accused_index = previous_eligible(game.letters, game.turn_index)
    if accused_index is None:
        raise InvalidActionError("There is no answer to reject")
    return _penalize(game, game.players[accused_index])


_HANDLERS: dict[GameAction, ActionHandler] = {
    GameAction.ACCEPT_JOIN_REQUEST: accept_join_request,
    GameAction.DENY_JOIN_REQUEST: deny_join_request,
    GameAction.START_GAME: start_game,
    GameAction.LEAVE_GAME: leave_game,
    GameAction.PLAY_MOVE: play_move,
    GameAction.CHALLENGE: challenge,
    GameAction.GIVE_UP: give_up,
    GameAction.MARK_ANSWER_CORRECT: mark_answer_correct,
    GameAction.MARK_ANSWER_INCORRECT: mark_answer_incorrect,
}


def handle_action(game: GameSession, player_id: str, action: GameAction, data: dict[str, Any]) -> list[GameEvent]:
    """Dispatch an action from a seated player.

    Players still waiting for admission may only withdraw.
    """
    player = _require_player(game, player_id)
    if player.pending and action != GameAction.LEAVE_GAME:
        raise NotAdmittedError("Your request to join has not been accepted yet")
    return _HANDLERS[action](game, player_id, data)
