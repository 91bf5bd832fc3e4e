"""Seat token sealing shared by the session layer and its tests."""

from shared.auth.seat_token import (
    CLOCK_SKEW_SECONDS,
    SEAT_TOKEN_TTL_SECONDS,
    SeatToken,
    open_seat_token,
    seal_seat_token,
    sign_seat_token,
)

__all__ = [
    "CLOCK_SKEW_SECONDS",
    "SEAT_TOKEN_TTL_SECONDS",
    "SeatToken",
    "open_seat_token",
    "seal_seat_token",
    "sign_seat_token",
]
