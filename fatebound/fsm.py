from __future__ import annotations

from statemachine import State, StateMachine

from fatebound.api.models import GamePhase, GameState


class GameFSM(StateMachine):
    """FSM wrapper around GameState.

    The engine mutates players, puzzle and scores; the FSM only guards which
    phase changes are legal:
    - lobby -> playing
    - playing -> letter-selection (action succeeded) | waiting-continue (action failed)
    - letter-selection | waiting-continue -> playing (turn advanced)
    - any in-game phase -> game-over
    """

    lobby = State(GamePhase.lobby.value, value=GamePhase.lobby.value, initial=True)
    playing = State(GamePhase.playing.value, value=GamePhase.playing.value)
    letter_selection = State(GamePhase.letter_selection.value, value=GamePhase.letter_selection.value)
    waiting_continue = State(GamePhase.waiting_continue.value, value=GamePhase.waiting_continue.value)
    game_over = State(GamePhase.game_over.value, value=GamePhase.game_over.value, final=True)

    game_started = lobby.to(playing)
    action_succeeded = playing.to(letter_selection)
    action_failed = playing.to(waiting_continue)
    turn_advanced = letter_selection.to(playing) | waiting_continue.to(playing)
    game_finished = playing.to(game_over) | letter_selection.to(game_over) | waiting_continue.to(game_over)

    def __init__(self, game: GameState):
        self.game = game
        super().__init__(start_value=game.phase.value)

    def sync_phase_to_model(self) -> None:
        self.game.phase = GamePhase(str(self.current_state.value))
