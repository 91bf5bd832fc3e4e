from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from bomb.logic.enums import GameAction, PlayerStatus
from bomb.logic.pages import ActorPage, MoviePage
from bomb.logic.settings import MAX_JOIN_MESSAGE_LENGTH, MAX_NAME_LENGTH

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

_WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _reject_control_chars(v: str) -> str:
    if any(ord(c) < _SPACE_ORD or ord(c) == _DEL_ORD for c in v):
        raise ValueError("must not contain control characters")
    return v


class ClientMessageType(StrEnum):
    CREATE_GAME = "create_game"
    REQUEST_TO_JOIN = "request_to_join"
    ACCEPT_JOIN_REQUEST = "accept_join_request"
    DENY_JOIN_REQUEST = "deny_join_request"
    START_GAME = "start_game"
    LEAVE_GAME = "leave_game"
    PLAY_MOVE = "play_move"
    CHALLENGE = "challenge"
    GIVE_UP = "give_up"
    MARK_ANSWER_CORRECT = "mark_answer_correct"
    MARK_ANSWER_INCORRECT = "mark_answer_incorrect"
    PONG = "pong"


class ServerMessageType(StrEnum):
    AVAILABLE_GAMES = "available_games"
    GAME_STATE = "game_state"
    TOKEN = "token"
    INVALID_TOKEN = "invalid_token"
    TOAST = "toast"
    ERROR = "error"
    JOIN_REQUEST_DENIED = "join_request_denied"
    PING = "ping"


# --- Inbound: lobby ---


_NAME_FIELD = Field(min_length=1, max_length=MAX_NAME_LENGTH)


class CreateGameMessage(BaseModel):
    model_config = _WIRE_CONFIG

    key: Literal[ClientMessageType.CREATE_GAME] = ClientMessageType.CREATE_GAME
    name: str = _NAME_FIELD

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return _reject_control_chars(v)


class RequestToJoinMessage(BaseModel):
    model_config = _WIRE_CONFIG

    key: Literal[ClientMessageType.REQUEST_TO_JOIN] = ClientMessageType.REQUEST_TO_JOIN
    game_id: str = Field(min_length=1, max_length=64)
    name: str = _NAME_FIELD
    message: str | None = Field(default=None, max_length=MAX_JOIN_MESSAGE_LENGTH)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return _reject_control_chars(v)


# --- Inbound: game actions ---


class AcceptJoinRequestMessage(BaseModel):
    model_config = _WIRE_CONFIG

    key: Literal[ClientMessageType.ACCEPT_JOIN_REQUEST] = ClientMessageType.ACCEPT_JOIN_REQUEST
    user_id: str = Field(min_length=1, max_length=64)


class DenyJoinRequestMessage(BaseModel):
    model_config = _WIRE_CONFIG

    key: Literal[ClientMessageType.DENY_JOIN_REQUEST] = ClientMessageType.DENY_JOIN_REQUEST
    user_id: str = Field(min_length=1, max_length=64)


class PlayMoveMessage(BaseModel):
    model_config = _WIRE_CONFIG

    key: Literal[ClientMessageType.PLAY_MOVE] = ClientMessageType.PLAY_MOVE
    page: ActorPage | MoviePage


class NoDataActionMessage(BaseModel):
    key: Literal[
        ClientMessageType.START_GAME,
        ClientMessageType.LEAVE_GAME,
        ClientMessageType.CHALLENGE,
        ClientMessageType.GIVE_UP,
        ClientMessageType.MARK_ANSWER_CORRECT,
        ClientMessageType.MARK_ANSWER_INCORRECT,
    ]


class PongMessage(BaseModel):
    key: Literal[ClientMessageType.PONG] = ClientMessageType.PONG


LobbyMessage = CreateGameMessage | RequestToJoinMessage

GameActionMessage = AcceptJoinRequestMessage | DenyJoinRequestMessage | PlayMoveMessage | NoDataActionMessage

ClientMessage = LobbyMessage | GameActionMessage | PongMessage


def action_for(message: GameActionMessage) -> GameAction:
    """Map a game action message to the action the game logic dispatches on."""
    return GameAction(message.key.value)


# --- Outbound ---


class GameListing(BaseModel):
    model_config = _WIRE_CONFIG

    id: str
    creator_name: str


class AvailableGamesMessage(BaseModel):
    model_config = _WIRE_CONFIG

    key: Literal[ServerMessageType.AVAILABLE_GAMES] = ServerMessageType.AVAILABLE_GAMES
    games: list[GameListing]


class PendingPlayerView(BaseModel):
    model_config = _WIRE_CONFIG

    id: str
    name: str
    pending: bool
    message: str | None
    status: PlayerStatus
    connected: bool


class ActivePlayerView(BaseModel):
    model_config = _WIRE_CONFIG

    id: str
    name: str
    letters: int
    status: PlayerStatus
    connected: bool


class PendingGameView(BaseModel):
    """Snapshot of a game still in its waiting room."""

    model_config = _WIRE_CONFIG

    id: str
    started: Literal[False] = False
    players: list[PendingPlayerView]


class ActiveGameView(BaseModel):
    """Snapshot of a started game. Rounds are newest first."""

    model_config = _WIRE_CONFIG

    id: str
    started: Literal[True] = True
    players: list[ActivePlayerView]
    rounds: list[list[ActorPage | MoviePage]]
    winner: str | None = None


class GameStateMessage(BaseModel):
    model_config = _WIRE_CONFIG

    key: Literal[ServerMessageType.GAME_STATE] = ServerMessageType.GAME_STATE
    game: PendingGameView | ActiveGameView


class TokenMessage(BaseModel):
    key: Literal[ServerMessageType.TOKEN] = ServerMessageType.TOKEN
    token: str


class InvalidTokenMessage(BaseModel):
    key: Literal[ServerMessageType.INVALID_TOKEN] = ServerMessageType.INVALID_TOKEN


class ToastMessage(BaseModel):
    key: Literal[ServerMessageType.TOAST] = ServerMessageType.TOAST
    message: str


class ErrorMessage(BaseModel):
    key: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    message: str


class JoinRequestDeniedMessage(BaseModel):
    key: Literal[ServerMessageType.JOIN_REQUEST_DENIED] = ServerMessageType.JOIN_REQUEST_DENIED


class PingMessage(BaseModel):
    key: Literal[ServerMessageType.PING] = ServerMessageType.PING


_client_adapter = TypeAdapter(
    Annotated[
        CreateGameMessage
        | RequestToJoinMessage
        | AcceptJoinRequestMessage
        | DenyJoinRequestMessage
        | PlayMoveMessage
        | NoDataActionMessage
        | PongMessage,
        Field(discriminator="key"),
    ],
)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage, dispatching on its "key" field."""
    return _client_adapter.validate_python(data)


def wire(message: BaseModel) -> dict[str, Any]:
    """Dump an outbound message in its wire shape (camelCase field names)."""
    return message.model_dump(mode="json", by_alias=True)
