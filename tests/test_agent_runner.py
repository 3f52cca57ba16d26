from __future__ import annotations

import random

import pytest

from fatebound import actions
from fatebound.agent_runner import (
    LETTER_FREQUENCY,
    AgentRunnerConfig,
    choose_bot_letter,
    run_bot_step,
    run_bots_until_human,
)
from fatebound.api.models import GamePhase
from fatebound.errors import InvalidPhase, NotYourTurn

NO_WAIT = AgentRunnerConfig(think_time_s=0, continue_delay_s=0)


def test_choose_bot_letter_prefers_common_untried_letters(make_game) -> None:
    state = make_game(phase=GamePhase.letter_selection)
    state.puzzle.selected_letters = ["E", "T", "A"]
    rng = random.Random(3)

    for _ in range(20):
        assert choose_bot_letter(state, rng) in {"O", "I", "N", "S", "H"}

    state.puzzle.selected_letters = list(LETTER_FREQUENCY)
    with pytest.raises(InvalidPhase):
        choose_bot_letter(state, rng)


@pytest.mark.asyncio
async def test_bot_step_is_noop_for_humans_and_lobby(store, offline_content) -> None:
    created = await actions.create_game(store=store, content=offline_content, name="Alice")
    gid = created.state.game_id
    actions.add_bot(store=store, game_id=gid)

    assert await run_bot_step(store=store, content=offline_content, game_id=gid, config=NO_WAIT) is None

    await actions.start_game(store=store, content=offline_content, game_id=gid)
    # Alice (human) is up first.
    assert await run_bot_step(store=store, content=offline_content, game_id=gid, config=NO_WAIT) is None


@pytest.mark.asyncio
async def test_bots_play_until_the_human_is_up(store, offline_content) -> None:
    created = await actions.create_game(store=store, content=offline_content, name="Alice")
    gid = created.state.game_id
    alice = created.player_id
    actions.add_bot(store=store, game_id=gid)
    await actions.start_game(store=store, content=offline_content, game_id=gid)

    await actions.submit_action(
        store=store, content=offline_content, game_id=gid, player_id=alice, text="I rush in blindly."
    )
    await actions.continue_turn(store=store, content=offline_content, game_id=gid)

    state, steps = await run_bots_until_human(
        store=store, content=offline_content, game_id=gid, config=NO_WAIT, rng=random.Random(1)
    )

    assert steps >= 1
    if state.phase != GamePhase.game_over:
        assert state.players[state.current_player_index].player_id == alice
        assert state.phase == GamePhase.playing
    assert any(e.kind == "action" and e.player_id != alice for e in state.events)


@pytest.mark.asyncio
async def test_all_bot_table_plays_to_the_end(store, make_game, offline_content) -> None:
    state = make_game(players=[("Sir Caution", 3), ("Lady Reckless", 3)], bots=("Sir Caution", "Lady Reckless"))
    store.put(state)

    final, steps = await run_bots_until_human(
        store=store,
        content=offline_content,
        game_id=state.game_id,
        config=AgentRunnerConfig(think_time_s=0, continue_delay_s=0, max_steps=500),
        rng=random.Random(5),
    )

    assert final.phase == GamePhase.game_over
    assert final.winner_id in {"p0", "p1"}
    assert 0 < steps < 500


@pytest.mark.asyncio
async def test_max_steps_bounds_a_run(store, make_game, offline_content) -> None:
    state = make_game(players=[("Sir Caution", 3), ("Lady Reckless", 3)], bots=("Sir Caution", "Lady Reckless"))
    store.put(state)

    _, steps = await run_bots_until_human(
        store=store,
        content=offline_content,
        game_id=state.game_id,
        config=AgentRunnerConfig(think_time_s=0, continue_delay_s=0, max_steps=1),
    )
    assert steps == 1


@pytest.mark.asyncio
async def test_stale_bot_move_is_dropped(store, make_game, offline_content, monkeypatch) -> None:
    state = make_game(phase=GamePhase.letter_selection, bots=("Alice",))
    store.put(state)

    async def _raced(**kwargs):  # type: ignore[no-untyped-def]
        raise NotYourTurn("Not your turn")

    monkeypatch.setattr(actions, "pick_letter", _raced)

    result = await run_bot_step(store=store, content=offline_content, game_id=state.game_id, config=NO_WAIT)
    assert result is None
