from __future__ import annotations

import random
from collections.abc import Generator
from functools import lru_cache

import redis
from fastapi import Depends

from fatebound.agent_runner import AgentRunnerConfig
from fatebound.agents.content import ContentGenerator
from fatebound.agents.factory import create_default_generator
from fatebound.assets.singleton import get_assets
from fatebound.config import GameSettings, settings_from_env
from fatebound.game_store import RedisGameStore, connect_redis


@lru_cache(maxsize=1)
def get_settings() -> GameSettings:
    return settings_from_env()


def get_redis(settings: GameSettings = Depends(get_settings)) -> Generator[redis.Redis, None, None]:
    client = connect_redis(settings.redis_url)
    try:
        yield client
    finally:
        try:
            client.close()
        except redis.RedisError:
            # Closing a connection that already dropped is harmless.
            pass


def get_store(
    r: redis.Redis = Depends(get_redis),
    settings: GameSettings = Depends(get_settings),
) -> RedisGameStore:
    return RedisGameStore(r, ttl_s=settings.game_ttl_s, lock_ttl_ms=settings.lock_ttl_ms)


_CONTENT: ContentGenerator | None = None


def get_content_generator(settings: GameSettings = Depends(get_settings)) -> ContentGenerator:
    """One generator per process; the model backend is chosen from env on first use."""

    global _CONTENT
    if _CONTENT is None:
        _CONTENT = ContentGenerator(
            generator=create_default_generator(),
            assets=get_assets(),
            rng=random.Random(settings.seed),
        )
    return _CONTENT


def get_runner_config(settings: GameSettings = Depends(get_settings)) -> AgentRunnerConfig:
    return AgentRunnerConfig.from_settings(settings)
