from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class GamePhase(StrEnum):
    lobby = "lobby"
    playing = "playing"
    letter_selection = "letter-selection"
    waiting_continue = "waiting-continue"
    game_over = "game-over"


class Difficulty(StrEnum):
    easy = "easy"
    medium = "medium"
    hard = "hard"
    very_hard = "very-hard"


class CreateGameRequest(BaseModel):
    name: str = Field(..., max_length=200)
    difficulty: Difficulty = Difficulty.medium


class JoinGameRequest(BaseModel):
    name: str = Field(..., max_length=200)


class ActionRequest(BaseModel):
    text: str = Field(..., max_length=2000)


class LetterRequest(BaseModel):
    letter: str = Field(..., max_length=8)


class GuessRequest(BaseModel):
    guess: str = Field(..., max_length=400)


class PlayerState(BaseModel):
    player_id: str
    name: str
    is_bot: bool = False

    is_alive: bool = True
    lives: int = 3
    score: int = 0

    # Bots only: flavor text fed into the bot action prompt.
    personality: str | None = None


class PuzzleState(BaseModel):
    # Server truth; never sent to clients before the game is over.
    phrase: str
    category: str
    difficulty: Difficulty

    # Hits only, in the order they were revealed.
    revealed_letters: list[str] = Field(default_factory=list)
    # Every letter picked so far, hit or miss.
    selected_letters: list[str] = Field(default_factory=list)


class TurnEvent(BaseModel):
    seq: int
    round_number: int
    kind: str
    player_id: str | None = None
    text: str
    created_at: datetime


class GameState(BaseModel):
    game_id: str
    created_at: datetime
    last_updated_at: datetime

    players: list[PlayerState] = Field(default_factory=list)
    current_player_index: int = 0
    phase: GamePhase = GamePhase.lobby

    puzzle: PuzzleState
    current_scenario: str = ""
    # Newest last.
    scenario_history: list[str] = Field(default_factory=list)
    round_number: int = 1

    winner_id: str | None = None

    events: list[TurnEvent] = Field(default_factory=list)


class PublicPlayer(BaseModel):
    player_id: str
    name: str
    is_bot: bool
    is_alive: bool
    lives: int
    score: int


class PublicPuzzle(BaseModel):
    category: str
    difficulty: Difficulty
    masked_phrase: str
    word_lengths: list[int]
    revealed_letters: list[str]
    selected_letters: list[str]
    # Only populated once the game is over.
    phrase: str | None = None


class PublicGameState(BaseModel):
    game_id: str
    phase: GamePhase
    round_number: int
    players: list[PublicPlayer]
    current_player_id: str | None
    current_scenario: str
    puzzle: PublicPuzzle
    winner_id: str | None
    created_at: datetime
    last_updated_at: datetime
    events: list[TurnEvent]

    viewer_id: str | None = None
    is_viewer_turn: bool = False


class CreateGameResponse(BaseModel):
    game_id: str
    player_id: str
    game: PublicGameState


class JoinGameResponse(BaseModel):
    player_id: str
    game: PublicGameState


class TurnResponse(BaseModel):
    game: PublicGameState
    message: str
    success: bool | None = None


class BotRunResponse(BaseModel):
    game: PublicGameState
    steps: int
