from __future__ import annotations


class GameError(ValueError):
    """Caller-facing rejection of an operation.

    Every subclass carries the HTTP status the API layer should answer with.
    Raising one of these never leaves a partially written GameState behind:
    operations only save after the transition succeeded.
    """

    status_code: int = 422

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class GameNotFound(GameError):
    status_code = 404

    def __init__(self, game_id: str) -> None:
        super().__init__(f"Game not found: {game_id}")
        self.game_id = game_id


class NotYourTurn(GameError):
    status_code = 409


class InsufficientPlayers(GameError):
    status_code = 422


class InvalidInput(GameError):
    status_code = 422


class InvalidPhase(InvalidInput):
    status_code = 409


class PlayerNotFound(InvalidInput):
    status_code = 404


class DuplicateGuess(GameError):
    status_code = 409


class StorageError(GameError):
    status_code = 503


class GameBusy(StorageError):
    status_code = 409
