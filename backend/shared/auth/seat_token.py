"""HMAC-SHA256 sealed seat tokens.

A seat token lets a client resume its seat in a game session after the socket
drops. The server mints one when a player creates or asks to join a game and
opens it on every reconnect. Tokens are tamper-evident: any altered byte makes
open_seat_token() return None.

The payload is signed, not encrypted. Anyone holding a token can read the game
id, user id and timestamps inside it. Those ids are not secrets: the game id
is public in the lobby listing and the user id is sent to every seat in the
game snapshot. Only the signature stands between a reader and a forged seat.

Token format: base64url(json_payload_bytes).base64url(hmac_sha256_signature)
"""

import base64
import binascii
import hashlib
import hmac
import json
import math
import time
from dataclasses import asdict, dataclass

import structlog

logger = structlog.get_logger()

_TOKEN_PARTS = 2  # base64url(payload).base64url(signature)

SEAT_TOKEN_TTL_SECONDS = 86400  # 24 hours
CLOCK_SKEW_SECONDS = 60


@dataclass
class SeatToken:
    """Payload carried inside a sealed seat token."""

    game_id: str
    user_id: str
    issued_at: float
    expires_at: float


def seal_seat_token(game_id: str, user_id: str, secret: str) -> str:
    """Create and sign a seat token for a player in a game."""
    now = time.time()
    token = SeatToken(
        game_id=game_id,
        user_id=user_id,
        issued_at=now,
        expires_at=now + SEAT_TOKEN_TTL_SECONDS,
    )
    return sign_seat_token(token, secret)


def sign_seat_token(token: SeatToken, secret: str) -> str:
    """Serialize the payload to JSON, sign it, return base64url(payload).base64url(sig)."""
    payload_bytes = json.dumps(asdict(token), sort_keys=True).encode()
    sig = hmac.new(secret.encode(), payload_bytes, hashlib.sha256).digest()
    return f"{_b64encode(payload_bytes)}.{_b64encode(sig)}"


def open_seat_token(token: str, secret: str) -> SeatToken | None:
    """Verify signature, payload shape and expiry. Returns SeatToken or None on any failure."""
    parts = token.split(".")
    if len(parts) != _TOKEN_PARTS:
        return None

    payload_bytes = _b64decode_canonical(parts[0])
    provided_sig = _b64decode_canonical(parts[1])
    if payload_bytes is None or provided_sig is None:
        logger.debug("seat token not canonical base64")
        return None

    expected_sig = hmac.new(secret.encode(), payload_bytes, hashlib.sha256).digest()
    if not hmac.compare_digest(provided_sig, expected_sig):
        logger.debug("seat token signature mismatch")
        return None

    try:
        data = json.loads(payload_bytes)
        seat_token = SeatToken(**data)
    except (json.JSONDecodeError, TypeError, KeyError):
        logger.debug("seat token malformed payload")
        return None

    if not _has_chars(seat_token.game_id) or not _has_chars(seat_token.user_id):
        logger.debug("seat token missing identity")
        return None

    if not _validate_timestamps(seat_token):
        return None

    return seat_token


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode()


def _b64decode_canonical(text: str) -> bytes | None:
    """Decode base64url, rejecting any input that is not the canonical encoding of its bytes.

    The decoder ignores stray characters and unused trailing bits, so two
    different strings can decode to the same bytes; re-encoding closes that gap.
    """
    try:
        raw = base64.urlsafe_b64decode(text)
    except (ValueError, binascii.Error):
        return None
    if _b64encode(raw) != text:
        return None
    return raw


def _has_chars(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_finite_number(value: object) -> bool:
    """Check that a value is a finite int or float (excluding bool)."""
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _validate_timestamps(token: SeatToken) -> bool:
    """Reject non-finite, future-dated, over-long or expired tokens."""
    if not _is_finite_number(token.issued_at) or not _is_finite_number(token.expires_at):
        logger.debug("seat token non-finite timestamp")
        return False

    now = time.time()

    if token.issued_at > now + CLOCK_SKEW_SECONDS:
        logger.debug("seat token issued in the future")
        return False

    if token.expires_at <= token.issued_at:
        logger.debug("seat token expires_at <= issued_at")
        return False

    if token.expires_at - token.issued_at > SEAT_TOKEN_TTL_SECONDS + CLOCK_SKEW_SECONDS:
        logger.debug("seat token lifetime too long")
        return False

    if now > token.expires_at:
        logger.debug("seat token expired")
        return False

    return True
