from __future__ import annotations

from fatebound.api.models import GamePhase, GameState
from fatebound.errors import NotYourTurn


def current_turn_player_id(*, state: GameState) -> str | None:
    """Return which player_id should act next, or None outside of turn-based phases."""

    if state.phase in {GamePhase.lobby, GamePhase.game_over} or not state.players:
        return None
    return state.players[state.current_player_index].player_id


def assert_is_players_turn(*, state: GameState, player_id: str) -> None:
    expected = current_turn_player_id(state=state)
    if player_id != expected:
        raise NotYourTurn("Not your turn")
