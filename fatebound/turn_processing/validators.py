from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from fatebound.api.models import GamePhase, GameState
from fatebound.errors import InvalidInput, InvalidPhase


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Inputs available to validators.

    Keep this tight and serializable-ish so we can safely log it.
    """

    game_id: str
    action: str
    player_id: str | None = None


class TurnValidator(ABC):
    """A small, composable validation unit for an incoming action."""

    @abstractmethod
    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class CompletedGameValidator(TurnValidator):
    """Deny every move once the game is over."""

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if state.phase == GamePhase.game_over:
            raise InvalidPhase("Game is over")


@dataclass(frozen=True, slots=True)
class PhaseValidator(TurnValidator):
    """Validates current game phase for a given action."""

    allowed_phases: frozenset[GamePhase]
    message: str | None = None

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if state.phase not in self.allowed_phases:
            if self.message:
                raise InvalidPhase(self.message)
            allowed = ",".join(sorted(p.value for p in self.allowed_phases))
            raise InvalidPhase(f"Action '{ctx.action}' not allowed in phase '{state.phase.value}' (allowed: {allowed})")


@dataclass(frozen=True, slots=True)
class CurrentPlayerValidator(TurnValidator):
    """Only the player whose turn it is may act."""

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        from fatebound.turn_processing.turns import assert_is_players_turn

        assert_is_players_turn(state=state, player_id=ctx.player_id or "")


@dataclass(frozen=True, slots=True)
class SeatAvailableValidator(TurnValidator):
    max_players: int

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if len(state.players) >= self.max_players:
            raise InvalidInput(f"Game is full ({self.max_players} players max)")


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[TurnValidator, ...]

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, state=state)


_IN_LOBBY = PhaseValidator(allowed_phases=frozenset({GamePhase.lobby}), message="Game already started")

DEFAULT_ACTION_PIPELINES: dict[str, ValidatorPipeline] = {
    "join": ValidatorPipeline(validators=(CompletedGameValidator(), _IN_LOBBY)),
    "add_bot": ValidatorPipeline(validators=(CompletedGameValidator(), _IN_LOBBY)),
    "start": ValidatorPipeline(validators=(CompletedGameValidator(), _IN_LOBBY)),
    "act": ValidatorPipeline(
        validators=(
            CompletedGameValidator(),
            CurrentPlayerValidator(),
            PhaseValidator(allowed_phases=frozenset({GamePhase.playing})),
        )
    ),
    "letter": ValidatorPipeline(
        validators=(
            CompletedGameValidator(),
            CurrentPlayerValidator(),
            PhaseValidator(allowed_phases=frozenset({GamePhase.letter_selection})),
        )
    ),
    "guess": ValidatorPipeline(
        validators=(
            CompletedGameValidator(),
            CurrentPlayerValidator(),
            PhaseValidator(allowed_phases=frozenset({GamePhase.letter_selection})),
        )
    ),
    "continue": ValidatorPipeline(
        validators=(
            CompletedGameValidator(),
            PhaseValidator(allowed_phases=frozenset({GamePhase.waiting_continue})),
        )
    ),
}


def pipeline_for_action(action: str, *, max_players: int | None = None) -> ValidatorPipeline:
    pipe = DEFAULT_ACTION_PIPELINES.get(action)
    if pipe is None:
        raise ValueError(f"Unknown action: {action}")
    if max_players is not None and action in {"join", "add_bot"}:
        return ValidatorPipeline(validators=(*pipe.validators, SeatAvailableValidator(max_players=max_players)))
    return pipe
