from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from fatebound import actions
from fatebound.agent_runner import AgentRunnerConfig, run_bots_until_human
from fatebound.agents.content import ContentGenerator
from fatebound.api.deps import get_content_generator, get_runner_config, get_settings, get_store
from fatebound.api.models import (
    ActionRequest,
    BotRunResponse,
    CreateGameRequest,
    CreateGameResponse,
    GuessRequest,
    JoinGameRequest,
    JoinGameResponse,
    LetterRequest,
    PublicGameState,
    TurnResponse,
)
from fatebound.config import GameSettings
from fatebound.core.public_view import public_view
from fatebound.errors import GameError
from fatebound.game_store import RedisGameStore

router = APIRouter()


def _http_error(e: GameError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


def _turn_response(result: actions.ActionResult, *, viewer_id: str | None = None) -> TurnResponse:
    return TurnResponse(
        game=public_view(result.state, viewer_id=viewer_id),
        message=result.message,
        success=result.success,
    )


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/games", response_model=CreateGameResponse, status_code=status.HTTP_201_CREATED)
async def create_game_route(
    payload: CreateGameRequest,
    store: RedisGameStore = Depends(get_store),
    content: ContentGenerator = Depends(get_content_generator),
) -> CreateGameResponse:
    try:
        result = await actions.create_game(store=store, content=content, name=payload.name, difficulty=payload.difficulty)
    except GameError as e:
        raise _http_error(e) from e

    return CreateGameResponse(
        game_id=result.state.game_id,
        player_id=result.player_id,
        game=public_view(result.state, viewer_id=result.player_id),
    )


@router.get("/games/{game_id}", response_model=PublicGameState)
async def get_game_route(
    game_id: str,
    viewer_id: str | None = None,
    store: RedisGameStore = Depends(get_store),
) -> PublicGameState:
    try:
        return actions.get_public_state(store=store, game_id=game_id.upper(), viewer_id=viewer_id)
    except GameError as e:
        raise _http_error(e) from e


@router.post("/games/{game_id}/players", response_model=JoinGameResponse)
async def join_game_route(
    game_id: str,
    payload: JoinGameRequest,
    store: RedisGameStore = Depends(get_store),
    settings: GameSettings = Depends(get_settings),
) -> JoinGameResponse:
    try:
        result = actions.join_game(store=store, game_id=game_id.upper(), name=payload.name, settings=settings)
    except GameError as e:
        raise _http_error(e) from e

    return JoinGameResponse(player_id=result.player_id, game=public_view(result.state, viewer_id=result.player_id))


@router.post("/games/{game_id}/bots", response_model=JoinGameResponse)
async def add_bot_route(
    game_id: str,
    store: RedisGameStore = Depends(get_store),
    settings: GameSettings = Depends(get_settings),
) -> JoinGameResponse:
    try:
        result = actions.add_bot(store=store, game_id=game_id.upper(), settings=settings)
    except GameError as e:
        raise _http_error(e) from e

    return JoinGameResponse(player_id=result.player_id, game=public_view(result.state))


@router.post("/games/{game_id}/start", response_model=TurnResponse)
async def start_game_route(
    game_id: str,
    store: RedisGameStore = Depends(get_store),
    content: ContentGenerator = Depends(get_content_generator),
) -> TurnResponse:
    try:
        result = await actions.start_game(store=store, content=content, game_id=game_id.upper())
    except GameError as e:
        raise _http_error(e) from e
    return _turn_response(result)


@router.post("/games/{game_id}/players/{player_id}/action", response_model=TurnResponse)
async def submit_action_route(
    game_id: str,
    player_id: str,
    payload: ActionRequest,
    store: RedisGameStore = Depends(get_store),
    content: ContentGenerator = Depends(get_content_generator),
) -> TurnResponse:
    try:
        result = await actions.submit_action(
            store=store, content=content, game_id=game_id.upper(), player_id=player_id, text=payload.text
        )
    except GameError as e:
        raise _http_error(e) from e
    return _turn_response(result, viewer_id=player_id)


@router.post("/games/{game_id}/players/{player_id}/letter", response_model=TurnResponse)
async def pick_letter_route(
    game_id: str,
    player_id: str,
    payload: LetterRequest,
    store: RedisGameStore = Depends(get_store),
    content: ContentGenerator = Depends(get_content_generator),
) -> TurnResponse:
    try:
        result = await actions.pick_letter(
            store=store, content=content, game_id=game_id.upper(), player_id=player_id, letter=payload.letter
        )
    except GameError as e:
        raise _http_error(e) from e
    return _turn_response(result, viewer_id=player_id)


@router.post("/games/{game_id}/players/{player_id}/guess", response_model=TurnResponse)
async def guess_phrase_route(
    game_id: str,
    player_id: str,
    payload: GuessRequest,
    store: RedisGameStore = Depends(get_store),
    content: ContentGenerator = Depends(get_content_generator),
) -> TurnResponse:
    try:
        result = await actions.guess_phrase(
            store=store, content=content, game_id=game_id.upper(), player_id=player_id, guess=payload.guess
        )
    except GameError as e:
        raise _http_error(e) from e
    return _turn_response(result, viewer_id=player_id)


@router.post("/games/{game_id}/continue", response_model=TurnResponse)
async def continue_turn_route(
    game_id: str,
    store: RedisGameStore = Depends(get_store),
    content: ContentGenerator = Depends(get_content_generator),
) -> TurnResponse:
    try:
        result = await actions.continue_turn(store=store, content=content, game_id=game_id.upper())
    except GameError as e:
        raise _http_error(e) from e
    return _turn_response(result)


@router.post("/games/{game_id}/bots/act", response_model=BotRunResponse)
async def run_bots_route(
    game_id: str,
    store: RedisGameStore = Depends(get_store),
    content: ContentGenerator = Depends(get_content_generator),
    config: AgentRunnerConfig = Depends(get_runner_config),
) -> BotRunResponse:
    """Play every bot turn until a human is up (clients call this while polling)."""

    try:
        state, steps = await run_bots_until_human(store=store, content=content, game_id=game_id.upper(), config=config)
    except GameError as e:
        raise _http_error(e) from e
    return BotRunResponse(game=public_view(state), steps=steps)
