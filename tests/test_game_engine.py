from __future__ import annotations

import pytest

from fatebound import game_engine
from fatebound.api.models import GamePhase
from fatebound.errors import DuplicateGuess, InsufficientPlayers, InvalidInput
from fatebound.fsm import GameFSM

FAIL = "F: The troll swats you aside with its club."
SUCCEED = "S: You duck under the club and slip past the troll."


@pytest.mark.asyncio
async def test_start_requires_two_players(make_game, offline_content) -> None:
    state = make_game(players=[("Alice", 3)], phase=GamePhase.lobby)
    with pytest.raises(InsufficientPlayers):
        await game_engine.start(state, GameFSM(state), offline_content)
    assert state.phase == GamePhase.lobby


@pytest.mark.asyncio
async def test_start_deals_first_scenario(make_game, offline_content, assets) -> None:
    state = make_game(phase=GamePhase.lobby)
    await game_engine.start(state, GameFSM(state), offline_content)

    assert state.phase == GamePhase.playing
    assert state.current_player_index == 0
    assert state.round_number == 1
    assert any(s.text == state.current_scenario for s in assets.scenarios)
    assert state.events[-1].kind == "started"


@pytest.mark.asyncio
async def test_success_scores_and_opens_letter_selection(make_game, make_content) -> None:
    state = make_game()
    report = await game_engine.resolve_action(state, GameFSM(state), make_content([SUCCEED]), text="I duck.")

    assert report.success is True
    assert state.players[0].score == game_engine.SUCCESS_POINTS
    assert state.players[0].lives == 3
    assert state.phase == GamePhase.letter_selection


@pytest.mark.asyncio
async def test_failure_costs_a_life_and_waits_for_continue(make_game, make_content) -> None:
    state = make_game(players=[("Alice", 3), ("Bob", 3), ("Cara", 3)])
    report = await game_engine.resolve_action(state, GameFSM(state), make_content([FAIL]), text="I charge.")

    assert report.success is False
    assert state.players[0].lives == 2
    assert state.players[0].is_alive
    assert state.phase == GamePhase.waiting_continue


@pytest.mark.asyncio
async def test_losing_last_life_with_one_opponent_ends_game(make_game, make_content) -> None:
    state = make_game(players=[("A", 1), ("B", 3)])
    await game_engine.resolve_action(state, GameFSM(state), make_content([FAIL]), text="I charge.")

    a, b = state.players
    assert (a.lives, a.is_alive) == (0, False)
    assert state.phase == GamePhase.game_over
    assert state.winner_id == b.player_id
    kinds = [e.kind for e in state.events]
    assert kinds[-2:] == ["eliminated", "game_over"]


@pytest.mark.asyncio
async def test_continue_skips_eliminated_players(make_game, offline_content) -> None:
    state = make_game(players=[("A", 3), ("B", 0), ("C", 3)], phase=GamePhase.waiting_continue)
    previous = state.current_scenario
    await game_engine.resolve_continue(state, GameFSM(state), offline_content)

    assert state.current_player_index == 2
    assert state.round_number == 2
    assert state.phase == GamePhase.playing
    assert state.scenario_history == [previous]
    assert state.current_scenario != previous

    state.phase = GamePhase.waiting_continue
    await game_engine.resolve_continue(state, GameFSM(state), offline_content)
    assert state.current_player_index == 0


@pytest.mark.asyncio
async def test_letter_hit_scores_per_occurrence(make_game, offline_content) -> None:
    state = make_game(phase=GamePhase.letter_selection, phrase="DRAGON SLAYER")
    report = await game_engine.resolve_letter(state, GameFSM(state), offline_content, letter="a")

    assert state.players[0].score == 2 * game_engine.LETTER_POINTS
    assert state.puzzle.revealed_letters == ["A"]
    assert state.puzzle.selected_letters == ["A"]
    assert "2 times" in report.message
    assert state.current_player_index == 1
    assert state.phase == GamePhase.playing


@pytest.mark.asyncio
async def test_letter_miss_records_selection_only(make_game, offline_content) -> None:
    state = make_game(phase=GamePhase.letter_selection)
    await game_engine.resolve_letter(state, GameFSM(state), offline_content, letter="Z")

    assert state.players[0].score == 0
    assert state.puzzle.revealed_letters == []
    assert state.puzzle.selected_letters == ["Z"]
    assert state.phase == GamePhase.playing


@pytest.mark.asyncio
async def test_duplicate_letter_is_rejected_without_changes(make_game, offline_content) -> None:
    state = make_game(phase=GamePhase.letter_selection)
    state.puzzle.selected_letters = ["A"]
    state.puzzle.revealed_letters = ["A"]
    before = state.model_dump()

    with pytest.raises(DuplicateGuess):
        await game_engine.resolve_letter(state, GameFSM(state), offline_content, letter="a")
    assert state.model_dump() == before


@pytest.mark.parametrize("letter", ["", "AB", "1", "é"])
def test_normalize_letter_rejects_non_letters(letter: str) -> None:
    with pytest.raises(InvalidInput):
        game_engine.normalize_letter(letter)


@pytest.mark.asyncio
async def test_revealing_last_letter_wins(make_game, offline_content) -> None:
    state = make_game(phase=GamePhase.letter_selection)
    state.puzzle.revealed_letters = list("MAGICSWOR")
    state.puzzle.selected_letters = list("MAGICSWOR")

    await game_engine.resolve_letter(state, GameFSM(state), offline_content, letter="D")

    assert state.phase == GamePhase.game_over
    assert state.winner_id == "p0"
    assert state.players[0].score == game_engine.LETTER_POINTS + game_engine.SOLVE_BONUS


@pytest.mark.asyncio
async def test_correct_guess_wins_and_reveals(make_game, offline_content) -> None:
    state = make_game(phase=GamePhase.letter_selection)
    report = await game_engine.resolve_guess(state, GameFSM(state), offline_content, guess="  magic   sword ")

    assert "Correct" in report.message
    assert state.phase == GamePhase.game_over
    assert state.winner_id == "p0"
    assert set(state.puzzle.revealed_letters) == set("MAGICSWORD")
    assert state.players[0].score == game_engine.SOLVE_BONUS


@pytest.mark.asyncio
async def test_wrong_guess_eliminates_and_passes_turn(make_game, offline_content) -> None:
    state = make_game(players=[("A", 3), ("B", 3), ("C", 3)], phase=GamePhase.letter_selection)
    await game_engine.resolve_guess(state, GameFSM(state), offline_content, guess="MAGIC SHIELD")

    assert state.players[0].is_alive is False
    assert state.players[0].lives == 0
    assert state.current_player_index == 1
    assert state.phase == GamePhase.playing


@pytest.mark.asyncio
async def test_wrong_guess_heads_up_hands_the_win_to_opponent(make_game, offline_content) -> None:
    state = make_game(phase=GamePhase.letter_selection)
    await game_engine.resolve_guess(state, GameFSM(state), offline_content, guess="MAGIC SHIELD")

    assert state.phase == GamePhase.game_over
    assert state.winner_id == "p1"


def test_everyone_eliminated_highest_score_wins(make_game) -> None:
    state = make_game(players=[("A", 0), ("B", 0), ("C", 0)])
    state.players[0].score = 20
    state.players[1].score = 35
    state.players[2].score = 35

    assert game_engine.finish_if_decided(state, GameFSM(state)) is True
    assert state.phase == GamePhase.game_over
    # Ties go to the earlier seat.
    assert state.winner_id == "p1"


def test_two_alive_is_not_decided(make_game) -> None:
    state = make_game()
    assert game_engine.finish_if_decided(state, GameFSM(state)) is False
    assert state.phase == GamePhase.playing
    assert state.winner_id is None


@pytest.mark.asyncio
async def test_scenarios_do_not_repeat_recent_history(make_game, offline_content) -> None:
    state = make_game(players=[("A", 3), ("B", 3), ("C", 3)])
    for _ in range(50):
        state.phase = GamePhase.waiting_continue
        await game_engine.advance_turn(state, GameFSM(state), offline_content)

        assert len(state.scenario_history) <= 5
        assert state.current_scenario not in state.scenario_history

    assert state.round_number == 51
