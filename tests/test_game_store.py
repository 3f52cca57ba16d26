from __future__ import annotations

import pytest

from fatebound.errors import GameBusy, GameNotFound
from fatebound.game_store import GAME_KEY_PREFIX, LOCK_KEY_PREFIX, RedisGameStore


def test_put_get_roundtrip_sets_ttl_and_timestamp(redis_client, make_game) -> None:
    store = RedisGameStore(redis_client, ttl_s=60)
    state = make_game()
    before = state.last_updated_at

    store.put(state)

    loaded = store.require(state.game_id)
    assert loaded == state
    assert loaded.last_updated_at >= before
    assert 0 < redis_client.ttl(f"{GAME_KEY_PREFIX}{state.game_id}") <= 60


def test_zero_ttl_keeps_game_forever(redis_client, make_game) -> None:
    store = RedisGameStore(redis_client, ttl_s=0)
    state = make_game()
    store.put(state)
    assert redis_client.ttl(f"{GAME_KEY_PREFIX}{state.game_id}") == -1


def test_missing_and_deleted_games(store, make_game) -> None:
    assert store.get("NOPE00") is None
    with pytest.raises(GameNotFound) as e:
        store.require("NOPE00")
    assert e.value.status_code == 404

    state = make_game()
    store.put(state)
    assert store.exists(state.game_id)
    store.delete(state.game_id)
    assert not store.exists(state.game_id)


def test_lock_is_exclusive_and_released(store, redis_client) -> None:
    with store.lock("ABC123"):
        assert redis_client.exists(f"{LOCK_KEY_PREFIX}ABC123")
        with pytest.raises(GameBusy):
            with store.lock("ABC123"):
                pass
        # Other games are unaffected.
        with store.lock("XYZ789"):
            pass

    assert not redis_client.exists(f"{LOCK_KEY_PREFIX}ABC123")


def test_lock_released_when_body_raises(store, redis_client) -> None:
    with pytest.raises(RuntimeError):
        with store.lock("ABC123"):
            raise RuntimeError("boom")
    assert not redis_client.exists(f"{LOCK_KEY_PREFIX}ABC123")


def test_expired_lock_is_not_deleted_by_previous_holder(store, redis_client) -> None:
    with store.lock("ABC123"):
        # Simulate expiry plus another holder taking over.
        redis_client.set(f"{LOCK_KEY_PREFIX}ABC123", "someone-else")

    assert redis_client.get(f"{LOCK_KEY_PREFIX}ABC123") == "someone-else"


def test_recent_phrases_are_newest_first_unique_and_capped(redis_client) -> None:
    store = RedisGameStore(redis_client, recent_limit=3)
    assert store.recent_phrases() == []

    for phrase in ("MAGIC SWORD", "DARK FOREST", "MAGIC SWORD", "LOST TREASURE", "DRAGON SLAYER"):
        store.remember_phrase(phrase)

    assert store.recent_phrases() == ["DRAGON SLAYER", "LOST TREASURE", "MAGIC SWORD"]
