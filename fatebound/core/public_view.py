from __future__ import annotations

from fatebound.api.models import (
    GamePhase,
    GameState,
    PublicGameState,
    PublicPlayer,
    PublicPuzzle,
    PuzzleState,
)
from fatebound.errors import PlayerNotFound
from fatebound.turn_processing.turns import current_turn_player_id


def masked_phrase(puzzle: PuzzleState) -> str:
    """`MAGIC SWORD` with `A` and `S` revealed -> `_A___ S____`."""

    revealed = set(puzzle.revealed_letters)
    return "".join(ch if ch == " " or ch in revealed else "_" for ch in puzzle.phrase)


def _public_puzzle(state: GameState) -> PublicPuzzle:
    puzzle = state.puzzle
    over = state.phase == GamePhase.game_over
    return PublicPuzzle(
        category=puzzle.category,
        difficulty=puzzle.difficulty,
        masked_phrase=puzzle.phrase if over else masked_phrase(puzzle),
        word_lengths=[len(w) for w in puzzle.phrase.split()],
        revealed_letters=list(puzzle.revealed_letters),
        selected_letters=list(puzzle.selected_letters),
        phrase=puzzle.phrase if over else None,
    )


def public_view(state: GameState, *, viewer_id: str | None = None) -> PublicGameState:
    """Client-safe projection of GameState.

    The phrase stays hidden until `game-over`; letter logs are emitted as ordered lists.
    """

    if viewer_id is not None and not any(p.player_id == viewer_id for p in state.players):
        raise PlayerNotFound(f"Player not found: {viewer_id}")

    current_id = current_turn_player_id(state=state)
    return PublicGameState(
        game_id=state.game_id,
        phase=state.phase,
        round_number=state.round_number,
        players=[
            PublicPlayer(
                player_id=p.player_id,
                name=p.name,
                is_bot=p.is_bot,
                is_alive=p.is_alive,
                lives=p.lives,
                score=p.score,
            )
            for p in state.players
        ],
        current_player_id=current_id,
        current_scenario=state.current_scenario,
        puzzle=_public_puzzle(state),
        winner_id=state.winner_id,
        created_at=state.created_at,
        last_updated_at=state.last_updated_at,
        events=list(state.events),
        viewer_id=viewer_id,
        is_viewer_turn=viewer_id is not None and viewer_id == current_id,
    )
