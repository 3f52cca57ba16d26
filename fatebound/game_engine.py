from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from fatebound.agents.content import ContentGenerator
from fatebound.api.models import GameState, PlayerState
from fatebound.content_rules import DEFAULT_RULES
from fatebound.contracts import normalize_phrase
from fatebound.core.events import record_event
from fatebound.errors import DuplicateGuess, InsufficientPlayers, InvalidInput, PlayerNotFound
from fatebound.fsm import GameFSM

logger = logging.getLogger(__name__)

STARTING_LIVES = 3
SUCCESS_POINTS = 10
LETTER_POINTS = 5
SOLVE_BONUS = 100
MIN_PLAYERS = 2

_LETTER_RE = re.compile(r"^[A-Z]$")


@dataclass(frozen=True, slots=True)
class TurnReport:
    message: str
    # Only set for judged actions.
    success: bool | None = None


def alive_players(state: GameState) -> list[PlayerState]:
    return [p for p in state.players if p.is_alive]


def current_player(state: GameState) -> PlayerState:
    return state.players[state.current_player_index]


def find_player(state: GameState, player_id: str) -> PlayerState:
    for p in state.players:
        if p.player_id == player_id:
            return p
    raise PlayerNotFound(f"Player not found: {player_id}")


def _eliminate(state: GameState, player: PlayerState) -> None:
    player.lives = 0
    player.is_alive = False
    record_event(state=state, kind="eliminated", player_id=player.player_id, text=f"{player.name} has been eliminated!")


def _win(state: GameState, fsm: GameFSM, winner: PlayerState, reason: str) -> None:
    fsm.game_finished()
    fsm.sync_phase_to_model()
    state.winner_id = winner.player_id
    record_event(state=state, kind="game_over", player_id=winner.player_id, text=f"{winner.name} wins! {reason}")
    logger.info("game %s over: winner=%s (%s)", state.game_id, winner.player_id, reason)


def finish_if_decided(state: GameState, fsm: GameFSM) -> bool:
    """End the game when at most one player is left standing.

    Nobody alive: highest score wins, ties going to the earliest seat.
    """

    alive = alive_players(state)
    if not alive:
        # max() keeps the first of equal scores, i.e. list order.
        winner = max(state.players, key=lambda p: p.score)
        _win(state, fsm, winner, "Everyone fell, so the highest score takes it.")
        return True
    if len(alive) == 1:
        _win(state, fsm, alive[0], "Last adventurer standing.")
        return True
    return False


def _next_alive_index(state: GameState) -> int:
    n = len(state.players)
    for step in range(1, n + 1):
        idx = (state.current_player_index + step) % n
        if state.players[idx].is_alive:
            return idx
    raise RuntimeError("advance_turn called with no alive players")


async def advance_turn(state: GameState, fsm: GameFSM, content: ContentGenerator) -> None:
    """Pass the turn to the next alive player and deal them a fresh scenario."""

    if finish_if_decided(state, fsm):
        return

    state.current_player_index = _next_alive_index(state)
    state.round_number += 1

    if state.current_scenario:
        state.scenario_history.append(state.current_scenario)
        del state.scenario_history[: max(0, len(state.scenario_history) - DEFAULT_RULES.scenario_history_size)]
    scenario = await content.next_scenario(history=state.scenario_history)
    state.current_scenario = scenario.text

    fsm.turn_advanced()
    fsm.sync_phase_to_model()

    nxt = current_player(state)
    record_event(state=state, kind="turn", player_id=nxt.player_id, text=f"It's {nxt.name}'s turn.")


async def start(state: GameState, fsm: GameFSM, content: ContentGenerator) -> TurnReport:
    if len(state.players) < MIN_PLAYERS:
        raise InsufficientPlayers(f"Need at least {MIN_PLAYERS} players to start (have {len(state.players)})")

    scenario = await content.next_scenario(history=state.scenario_history)
    state.current_scenario = scenario.text
    state.current_player_index = 0
    state.round_number = 1

    fsm.game_started()
    fsm.sync_phase_to_model()

    first = current_player(state)
    record_event(state=state, kind="started", player_id=first.player_id, text=f"The adventure begins! {first.name} goes first.")
    return TurnReport(message="Game started")


async def resolve_action(state: GameState, fsm: GameFSM, content: ContentGenerator, *, text: str) -> TurnReport:
    """Judge the current player's action against the current scenario."""

    player = current_player(state)
    record_event(state=state, kind="action", player_id=player.player_id, text=f"{player.name}: {text}")

    verdict = await content.judge_action(scenario=state.current_scenario, action=text)
    record_event(state=state, kind="verdict", player_id=player.player_id, text=verdict.outcome)

    if verdict.success:
        player.score += SUCCESS_POINTS
        fsm.action_succeeded()
        fsm.sync_phase_to_model()
        return TurnReport(message=verdict.outcome, success=True)

    player.lives = max(0, player.lives - 1)
    if player.lives == 0:
        _eliminate(state, player)

    if not finish_if_decided(state, fsm):
        fsm.action_failed()
        fsm.sync_phase_to_model()
    return TurnReport(message=verdict.outcome, success=False)


def normalize_letter(letter: str) -> str:
    cleaned = letter.strip().upper()
    if not _LETTER_RE.match(cleaned):
        raise InvalidInput("Pick a single letter A-Z")
    return cleaned


def _all_letters_revealed(state: GameState) -> bool:
    needed = {ch for ch in state.puzzle.phrase if ch != " "}
    return needed <= set(state.puzzle.revealed_letters)


async def resolve_letter(state: GameState, fsm: GameFSM, content: ContentGenerator, *, letter: str) -> TurnReport:
    letter = normalize_letter(letter)
    puzzle = state.puzzle
    if letter in puzzle.selected_letters:
        raise DuplicateGuess(f"'{letter}' has already been picked")

    player = current_player(state)
    puzzle.selected_letters.append(letter)
    hits = puzzle.phrase.count(letter)

    if not hits:
        message = f"No '{letter}' in the phrase."
        record_event(state=state, kind="letter", player_id=player.player_id, text=f"{player.name} picked '{letter}': {message}")
        await advance_turn(state, fsm, content)
        return TurnReport(message=message)

    puzzle.revealed_letters.append(letter)
    player.score += LETTER_POINTS * hits
    message = f"'{letter}' appears {hits} time{'s' if hits != 1 else ''}! +{LETTER_POINTS * hits} points."
    record_event(state=state, kind="letter", player_id=player.player_id, text=f"{player.name} picked '{letter}': {message}")

    if _all_letters_revealed(state):
        player.score += SOLVE_BONUS
        _win(state, fsm, player, f"Revealed the whole phrase: {puzzle.phrase}.")
        return TurnReport(message=f"{message} The phrase is complete!")

    await advance_turn(state, fsm, content)
    return TurnReport(message=message)


async def resolve_guess(state: GameState, fsm: GameFSM, content: ContentGenerator, *, guess: str) -> TurnReport:
    """A correct guess wins outright; a wrong one eliminates the guesser."""

    normalized = normalize_phrase(guess)
    if not normalized:
        raise InvalidInput("Guess cannot be empty")

    player = current_player(state)
    puzzle = state.puzzle
    record_event(state=state, kind="guess", player_id=player.player_id, text=f"{player.name} guessed '{normalized}'.")

    if normalized == normalize_phrase(puzzle.phrase):
        for ch in puzzle.phrase:
            if ch != " " and ch not in puzzle.revealed_letters:
                puzzle.revealed_letters.append(ch)
        player.score += SOLVE_BONUS
        _win(state, fsm, player, f"Solved the phrase: {puzzle.phrase}.")
        return TurnReport(message="Correct! You solved the puzzle.")

    _eliminate(state, player)
    await advance_turn(state, fsm, content)
    return TurnReport(message="Wrong guess! You have been eliminated.")


async def resolve_continue(state: GameState, fsm: GameFSM, content: ContentGenerator) -> TurnReport:
    await advance_turn(state, fsm, content)
    return TurnReport(message="Next turn")
