"""Side store for in-flight game state.

The session layer keeps the authoritative state in memory and mirrors it here
after each mutation of an active game, so a restarted process can resume a
game when a player reconnects. Records carry a TTL as a safety net against
sessions that are never cleaned up.

Values are MessagePack-encoded dicts keyed by ``game:{game_id}``.
"""

from typing import Any, Protocol

import msgpack
import redis.asyncio as redis
import structlog

logger = structlog.get_logger()

DEFAULT_TTL_SECONDS = 6 * 3600

# Game records are small; anything larger is not ours.
_MAX_RECORD_LEN = 256 * 1024


class CacheDecodeError(Exception):
    """Raised when a cached record cannot be decoded."""


class GameStateCache(Protocol):
    """Protocol for mirroring game state outside the process."""

    async def load(self, game_id: str) -> dict[str, Any] | None: ...

    async def save(self, game_id: str, state: dict[str, Any]) -> None: ...

    async def delete(self, game_id: str) -> None: ...

    async def close(self) -> None: ...


def cache_key(game_id: str) -> str:
    return f"game:{game_id}"


def encode_record(state: dict[str, Any]) -> bytes:
    return msgpack.packb(state)


def decode_record(data: bytes) -> dict[str, Any]:
    """Decode a cached record. Raises CacheDecodeError on malformed data."""
    if len(data) > _MAX_RECORD_LEN:
        raise CacheDecodeError(f"record too large: {len(data)} bytes")
    try:
        result = msgpack.unpackb(data, raw=False)
    except (msgpack.UnpackException, ValueError) as e:
        raise CacheDecodeError(f"failed to decode record: {e}") from e
    if not isinstance(result, dict):
        raise CacheDecodeError(f"expected dict, got {type(result).__name__}")
    return result


class RedisGameStateCache:
    """Redis-backed game state cache with per-record expiry."""

    def __init__(self, url: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self._redis = redis.from_url(url)
        self._ttl_seconds = ttl_seconds

    async def load(self, game_id: str) -> dict[str, Any] | None:
        data = await self._redis.get(cache_key(game_id))
        if data is None:
            return None
        try:
            return decode_record(data)
        except CacheDecodeError:
            logger.warning("discarding unreadable cache record", game_id=game_id)
            await self._redis.delete(cache_key(game_id))
            return None

    async def save(self, game_id: str, state: dict[str, Any]) -> None:
        await self._redis.set(cache_key(game_id), encode_record(state), ex=self._ttl_seconds)

    async def delete(self, game_id: str) -> None:
        await self._redis.delete(cache_key(game_id))

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("game state cache closed")
