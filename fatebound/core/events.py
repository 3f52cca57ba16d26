from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from fatebound.api.models import GameState, TurnEvent

EventKind = Literal[
    "joined",
    "started",
    "action",
    "verdict",
    "letter",
    "guess",
    "eliminated",
    "turn",
    "game_over",
]

MAX_EVENTS = 50


def record_event(*, state: GameState, kind: EventKind, text: str, player_id: str | None = None) -> TurnEvent:
    """Append to the capped turn log so polling clients can replay what happened."""

    seq = (state.events[-1].seq + 1) if state.events else 1
    event = TurnEvent(
        seq=seq,
        round_number=state.round_number,
        kind=kind,
        player_id=player_id,
        text=text,
        created_at=datetime.now(tz=UTC),
    )
    state.events.append(event)
    if len(state.events) > MAX_EVENTS:
        del state.events[: len(state.events) - MAX_EVENTS]
    return event
