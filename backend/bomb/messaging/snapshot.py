"""Build the client view of a game session.

The snapshot is the only game state clients ever see: it is rebuilt from the
session and the connection table on every broadcast, never patched.
"""

from collections.abc import Container

from bomb.logic.state import GameSession
from bomb.messaging.types import (
    ActiveGameView,
    ActivePlayerView,
    AvailableGamesMessage,
    GameListing,
    GameStateMessage,
    PendingGameView,
    PendingPlayerView,
)


def build_game_view(game: GameSession, connected_ids: Container[str]) -> PendingGameView | ActiveGameView:
    """Return the snapshot of `game`; `connected_ids` holds the player ids with a bound socket."""
    if not game.started:
        return PendingGameView(
            id=game.id,
            players=[
                PendingPlayerView(
                    id=player.id,
                    name=player.name,
                    pending=player.pending,
                    message=player.message,
                    status=game.status_of(index),
                    connected=player.id in connected_ids,
                )
                for index, player in enumerate(game.players)
            ],
        )
    return ActiveGameView(
        id=game.id,
        players=[
            ActivePlayerView(
                id=player.id,
                name=player.name,
                letters=player.letters,
                status=game.status_of(index),
                connected=player.id in connected_ids,
            )
            for index, player in enumerate(game.players)
        ],
        rounds=[list(round_) for round_ in reversed(game.rounds)],
        winner=game.winner_id,
    )


def build_game_state(game: GameSession, connected_ids: Container[str]) -> GameStateMessage:
    return GameStateMessage(game=build_game_view(game, connected_ids))


def build_available_games(games: list[GameSession]) -> AvailableGamesMessage:
    """List the joinable games: those not started yet, each with its host's name."""
    return AvailableGamesMessage(
        games=[
            GameListing(id=game.id, creator_name=game.players[0].name)
            for game in games
            if not game.started and game.players
        ],
    )
