from __future__ import annotations

import logging
import random
import re
import string
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

from fatebound import game_engine
from fatebound.agents.content import ContentGenerator
from fatebound.api.models import Difficulty, GameState, PlayerState, PublicGameState, PuzzleState
from fatebound.assets.singleton import get_assets
from fatebound.config import GameSettings
from fatebound.core.events import record_event
from fatebound.core.public_view import public_view
from fatebound.errors import InvalidInput, StorageError
from fatebound.fsm import GameFSM
from fatebound.game_engine import TurnReport
from fatebound.game_store import GameStore
from fatebound.turn_processing.validators import ValidationContext, pipeline_for_action

logger = logging.getLogger(__name__)

GAME_ID_ALPHABET = string.ascii_uppercase + string.digits
GAME_ID_LENGTH = 6
MAX_NAME_LENGTH = 20
MAX_ACTION_LENGTH = 280

_sysrand = random.SystemRandom()

TurnStep = Callable[[GameState, GameFSM], Awaitable[TurnReport]]


@dataclass(frozen=True, slots=True)
class ActionResult:
    state: GameState
    message: str = ""
    success: bool | None = None


@dataclass(frozen=True, slots=True)
class SeatResult:
    """Outcome of an operation that seated a new player."""

    state: GameState
    player_id: str
    message: str = ""


def _now() -> datetime:
    return datetime.now(tz=UTC)


def clean_name(name: str) -> str:
    cleaned = re.sub(r"\s+", " ", name).strip()
    if not 1 <= len(cleaned) <= MAX_NAME_LENGTH:
        raise InvalidInput(f"Name must be 1-{MAX_NAME_LENGTH} characters")
    return cleaned


def clean_action_text(text: str) -> str:
    cleaned = re.sub(r"\s+", " ", text).strip()
    if not cleaned:
        raise InvalidInput("Action cannot be empty")
    if len(cleaned) > MAX_ACTION_LENGTH:
        raise InvalidInput(f"Action must be at most {MAX_ACTION_LENGTH} characters")
    return cleaned


def new_player_id() -> str:
    return uuid4().hex[:12]


def _new_game_id(store: GameStore, *, attempts: int = 10) -> str:
    for _ in range(attempts):
        gid = "".join(_sysrand.choice(GAME_ID_ALPHABET) for _ in range(GAME_ID_LENGTH))
        if not store.exists(gid):
            return gid
    raise StorageError("Could not allocate a free game code")


async def create_game(
    *,
    store: GameStore,
    content: ContentGenerator,
    name: str,
    difficulty: Difficulty = Difficulty.medium,
) -> SeatResult:
    """Create a lobby with the caller seated first and a puzzle already chosen."""

    name = clean_name(name)
    difficulty = Difficulty(difficulty)
    game_id = _new_game_id(store)
    puzzle = await content.new_puzzle(difficulty=difficulty, recent_phrases=store.recent_phrases())

    now = _now()
    host = PlayerState(player_id=new_player_id(), name=name, lives=game_engine.STARTING_LIVES)
    state = GameState(
        game_id=game_id,
        created_at=now,
        last_updated_at=now,
        players=[host],
        puzzle=PuzzleState(phrase=puzzle.phrase, category=puzzle.category, difficulty=difficulty),
    )
    record_event(state=state, kind="joined", player_id=host.player_id, text=f"{host.name} created the game.")

    store.remember_phrase(puzzle.phrase)
    store.put(state)
    logger.info("game %s created (%s)", game_id, difficulty.value)
    return SeatResult(state=state, player_id=host.player_id, message="Game created")


def join_game(
    *,
    store: GameStore,
    game_id: str,
    name: str,
    settings: GameSettings | None = None,
) -> SeatResult:
    settings = settings or GameSettings()
    name = clean_name(name)

    with store.lock(game_id):
        state = store.require(game_id)
        pipeline_for_action("join", max_players=settings.max_players).validate(
            ctx=ValidationContext(game_id=game_id, action="join"), state=state
        )
        player = PlayerState(player_id=new_player_id(), name=name, lives=game_engine.STARTING_LIVES)
        state.players.append(player)
        record_event(state=state, kind="joined", player_id=player.player_id, text=f"{player.name} joined.")
        store.put(state)

    logger.info("game %s: %s joined", game_id, player.player_id)
    return SeatResult(state=state, player_id=player.player_id, message=f"{player.name} joined")


def add_bot(
    *,
    store: GameStore,
    game_id: str,
    settings: GameSettings | None = None,
    rng: random.Random | None = None,
) -> SeatResult:
    """Seat a bot with a roster name nobody at the table is using yet."""

    settings = settings or GameSettings()
    rng = rng or _sysrand

    with store.lock(game_id):
        state = store.require(game_id)
        pipeline_for_action("add_bot", max_players=settings.max_players).validate(
            ctx=ValidationContext(game_id=game_id, action="add_bot"), state=state
        )
        taken = {p.name.casefold() for p in state.players}
        available = [b for b in get_assets().bots if b.name.casefold() not in taken]
        if not available:
            raise InvalidInput("No more bot names available")

        profile = rng.choice(available)
        bot = PlayerState(
            player_id=new_player_id(),
            name=profile.name,
            is_bot=True,
            lives=game_engine.STARTING_LIVES,
            personality=profile.personality,
        )
        state.players.append(bot)
        record_event(state=state, kind="joined", player_id=bot.player_id, text=f"{bot.name} (bot) joined.")
        store.put(state)

    logger.info("game %s: bot %s added", game_id, bot.name)
    return SeatResult(state=state, player_id=bot.player_id, message=f"{bot.name} joined")


async def _apply_turn(
    *,
    store: GameStore,
    game_id: str,
    action: str,
    player_id: str | None,
    step: TurnStep,
) -> ActionResult:
    """Load, validate, transition, save once.

    Any rejection raised before `store.put` leaves the stored game untouched.
    """

    with store.lock(game_id):
        state = store.require(game_id)
        pipeline_for_action(action).validate(
            ctx=ValidationContext(game_id=game_id, action=action, player_id=player_id), state=state
        )
        fsm = GameFSM(state)
        report = await step(state, fsm)
        store.put(state)

    logger.info("game %s: %s by %s -> phase=%s round=%d", game_id, action, player_id, state.phase.value, state.round_number)
    return ActionResult(state=state, message=report.message, success=report.success)


async def start_game(*, store: GameStore, content: ContentGenerator, game_id: str) -> ActionResult:
    return await _apply_turn(
        store=store,
        game_id=game_id,
        action="start",
        player_id=None,
        step=lambda state, fsm: game_engine.start(state, fsm, content),
    )


async def submit_action(
    *,
    store: GameStore,
    content: ContentGenerator,
    game_id: str,
    player_id: str,
    text: str,
) -> ActionResult:
    text = clean_action_text(text)
    return await _apply_turn(
        store=store,
        game_id=game_id,
        action="act",
        player_id=player_id,
        step=lambda state, fsm: game_engine.resolve_action(state, fsm, content, text=text),
    )


async def pick_letter(
    *,
    store: GameStore,
    content: ContentGenerator,
    game_id: str,
    player_id: str,
    letter: str,
) -> ActionResult:
    letter = game_engine.normalize_letter(letter)
    return await _apply_turn(
        store=store,
        game_id=game_id,
        action="letter",
        player_id=player_id,
        step=lambda state, fsm: game_engine.resolve_letter(state, fsm, content, letter=letter),
    )


async def guess_phrase(
    *,
    store: GameStore,
    content: ContentGenerator,
    game_id: str,
    player_id: str,
    guess: str,
) -> ActionResult:
    if not guess.strip():
        raise InvalidInput("Guess cannot be empty")
    return await _apply_turn(
        store=store,
        game_id=game_id,
        action="guess",
        player_id=player_id,
        step=lambda state, fsm: game_engine.resolve_guess(state, fsm, content, guess=guess),
    )


async def continue_turn(*, store: GameStore, content: ContentGenerator, game_id: str) -> ActionResult:
    return await _apply_turn(
        store=store,
        game_id=game_id,
        action="continue",
        player_id=None,
        step=lambda state, fsm: game_engine.resolve_continue(state, fsm, content),
    )


def get_public_state(*, store: GameStore, game_id: str, viewer_id: str | None = None) -> PublicGameState:
    return public_view(store.require(game_id), viewer_id=viewer_id)
