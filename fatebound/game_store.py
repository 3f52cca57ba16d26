from __future__ import annotations

import logging
import secrets
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from datetime import UTC, datetime
from typing import Protocol

import redis

from fatebound.api.models import GameState
from fatebound.errors import GameBusy, GameNotFound, StorageError

logger = logging.getLogger(__name__)

GAME_KEY_PREFIX = "fatebound:game:"  # + {game_id}
LOCK_KEY_PREFIX = "fatebound:lock:"  # + {game_id}
RECENT_PHRASES_KEY = "fatebound:recent_phrases"
RECENT_PHRASES_LIMIT = 20


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _game_key(game_id: str) -> str:
    return f"{GAME_KEY_PREFIX}{game_id}"


def _lock_key(game_id: str) -> str:
    return f"{LOCK_KEY_PREFIX}{game_id}"


def connect_redis(url: str) -> redis.Redis:
    # decode_responses=True => game documents come back as str, ready for model_validate_json
    return redis.Redis.from_url(url, decode_responses=True)


class GameStore(Protocol):
    """Persistence port for GameState."""

    def get(self, game_id: str) -> GameState | None:  # pragma: no cover
        ...

    def require(self, game_id: str) -> GameState:  # pragma: no cover
        ...

    def put(self, state: GameState, *, ttl_s: int | None = None) -> None:  # pragma: no cover
        ...

    def delete(self, game_id: str) -> None:  # pragma: no cover
        ...

    def exists(self, game_id: str) -> bool:  # pragma: no cover
        ...

    def lock(self, game_id: str) -> AbstractContextManager[None]:  # pragma: no cover
        ...

    def recent_phrases(self) -> list[str]:  # pragma: no cover
        ...

    def remember_phrase(self, phrase: str) -> None:  # pragma: no cover
        ...


class RedisGameStore:
    """GameState persisted as one JSON document per game.

    Every redis failure is surfaced as `StorageError`; a failed `put` leaves the
    previously stored document untouched.
    """

    def __init__(
        self,
        r: redis.Redis,
        *,
        ttl_s: int = 86_400,
        lock_ttl_ms: int = 30_000,
        recent_limit: int = RECENT_PHRASES_LIMIT,
    ) -> None:
        self.r = r
        self.ttl_s = ttl_s
        self.lock_ttl_ms = lock_ttl_ms
        self.recent_limit = recent_limit

    def get(self, game_id: str) -> GameState | None:
        try:
            raw = self.r.get(_game_key(game_id))
        except redis.RedisError as e:
            raise StorageError(f"Failed to load game {game_id}: {e}") from e
        if not raw:
            return None
        return GameState.model_validate_json(raw)

    def require(self, game_id: str) -> GameState:
        state = self.get(game_id)
        if state is None:
            raise GameNotFound(game_id)
        return state

    def put(self, state: GameState, *, ttl_s: int | None = None) -> None:
        state.last_updated_at = _now()
        ttl = ttl_s if ttl_s is not None else self.ttl_s
        try:
            self.r.set(_game_key(state.game_id), state.model_dump_json(), ex=ttl if ttl > 0 else None)
        except redis.RedisError as e:
            raise StorageError(f"Failed to save game {state.game_id}: {e}") from e

    def delete(self, game_id: str) -> None:
        try:
            self.r.delete(_game_key(game_id))
        except redis.RedisError as e:
            raise StorageError(f"Failed to delete game {game_id}: {e}") from e

    def exists(self, game_id: str) -> bool:
        try:
            return bool(self.r.exists(_game_key(game_id)))
        except redis.RedisError as e:
            raise StorageError(f"Failed to check game {game_id}: {e}") from e

    @contextmanager
    def lock(self, game_id: str) -> Iterator[None]:
        """Best-effort per-game lock (SET NX PX with a unique token).

        Contention fails fast with `GameBusy` instead of waiting; clients poll anyway.
        The lock expires on its own if the holder dies mid-operation.
        """

        key = _lock_key(game_id)
        token = secrets.token_hex(8)
        try:
            acquired = self.r.set(key, token, nx=True, px=self.lock_ttl_ms)
        except redis.RedisError as e:
            raise StorageError(f"Failed to lock game {game_id}: {e}") from e
        if not acquired:
            raise GameBusy("Game is busy, try again")
        try:
            yield
        finally:
            try:
                # Only release our own token (not atomic).
                if self.r.get(key) == token:
                    self.r.delete(key)
            except redis.RedisError:
                # The lock still expires after lock_ttl_ms.
                logger.warning("Failed to release lock for game %s", game_id, exc_info=True)

    def recent_phrases(self) -> list[str]:
        """Puzzle phrases handed out lately, newest first."""

        try:
            return list(self.r.lrange(RECENT_PHRASES_KEY, 0, self.recent_limit - 1))
        except redis.RedisError as e:
            raise StorageError(f"Failed to load recent phrases: {e}") from e

    def remember_phrase(self, phrase: str) -> None:
        pipe = self.r.pipeline()
        pipe.lrem(RECENT_PHRASES_KEY, 0, phrase)
        pipe.lpush(RECENT_PHRASES_KEY, phrase)
        pipe.ltrim(RECENT_PHRASES_KEY, 0, self.recent_limit - 1)
        try:
            pipe.execute()
        except redis.RedisError as e:
            raise StorageError(f"Failed to record phrase: {e}") from e
