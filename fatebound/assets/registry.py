from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path

from fatebound.agents.bot_actor import Peril
from fatebound.api.models import Difficulty
from fatebound.contracts import BotAction, PuzzleContent, Scenario


@dataclass(frozen=True, slots=True)
class BotProfile:
    id: str
    name: str
    personality: str


@dataclass(frozen=True, slots=True)
class GameAssets:
    """Curated content: fallback pools for every generated artifact plus the bot roster."""

    scenarios: tuple[Scenario, ...]
    puzzles: dict[Difficulty, tuple[PuzzleContent, ...]]
    success_outcomes: tuple[str, ...]
    failure_outcomes: tuple[str, ...]
    bot_actions: dict[Peril, tuple[BotAction, ...]]
    bots: tuple[BotProfile, ...]

    def puzzles_for(self, difficulty: Difficulty) -> tuple[PuzzleContent, ...]:
        return self.puzzles.get(Difficulty(difficulty), ())

    def bot_by_name(self, name: str) -> BotProfile | None:
        key = name.strip().casefold()
        return next((b for b in self.bots if b.name.casefold() == key), None)


class AssetLoadError(RuntimeError):
    pass


def _read_csv_rows(path: Path) -> list[list[str]]:
    try:
        raw = path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as e:
        raise AssetLoadError(f"Asset file not found: {path}") from e

    reader = csv.reader(raw.splitlines())
    rows = [[c.strip() for c in row if c is not None] for row in reader]
    return [row for row in rows if any(cell.strip() for cell in row)]


def _read_table(path: Path, header: list[str]) -> list[list[str]]:
    rows = _read_csv_rows(path)
    if not rows:
        raise AssetLoadError(f"Empty CSV: {path}")
    if [c.casefold() for c in rows[0]][: len(header)] != header:
        raise AssetLoadError(f"Unexpected header in {path}: {rows[0]}")

    out = [row for row in rows[1:] if len(row) >= len(header) and all(row[: len(header)])]
    ids = [row[0] for row in out]
    dupes = sorted({i for i in ids if ids.count(i) > 1})
    if dupes:
        raise AssetLoadError(f"Duplicate ids in {path}: {dupes}")
    return out


def _parse_bool(raw: str, *, path: Path) -> bool:
    v = raw.strip().casefold()
    if v in {"true", "1", "yes"}:
        return True
    if v in {"false", "0", "no"}:
        return False
    raise AssetLoadError(f"Invalid boolean {raw!r} in {path}")


def load_scenarios_csv(path: Path) -> tuple[Scenario, ...]:
    return tuple(Scenario(text=row[1]) for row in _read_table(path, ["id", "text"]))


def load_puzzles_csv(path: Path) -> dict[Difficulty, tuple[PuzzleContent, ...]]:
    by_difficulty: dict[Difficulty, list[PuzzleContent]] = {d: [] for d in Difficulty}
    for row in _read_table(path, ["id", "difficulty", "phrase", "category"]):
        try:
            difficulty = Difficulty(row[1])
        except ValueError as e:
            raise AssetLoadError(f"Unknown difficulty {row[1]!r} in {path}") from e
        by_difficulty[difficulty].append(PuzzleContent(phrase=row[2], category=row[3]))

    missing = [d.value for d, items in by_difficulty.items() if not items]
    if missing:
        raise AssetLoadError(f"No fallback puzzles for {missing} in {path}")
    return {d: tuple(items) for d, items in by_difficulty.items()}


def load_verdicts_csv(path: Path) -> tuple[tuple[str, ...], tuple[str, ...]]:
    success: list[str] = []
    failure: list[str] = []
    for row in _read_table(path, ["id", "success", "outcome"]):
        (success if _parse_bool(row[1], path=path) else failure).append(row[2])
    if not success or not failure:
        raise AssetLoadError(f"Need both success and failure outcomes in {path}")
    return tuple(success), tuple(failure)


def load_bot_actions_csv(path: Path) -> dict[Peril, tuple[BotAction, ...]]:
    by_peril: dict[str, list[BotAction]] = {"bold": [], "wary": [], "desperate": []}
    for row in _read_table(path, ["id", "peril", "text"]):
        if row[1] not in by_peril:
            raise AssetLoadError(f"Unknown peril {row[1]!r} in {path}")
        by_peril[row[1]].append(BotAction(text=row[2]))
    return {p: tuple(items) for p, items in by_peril.items()}  # type: ignore[misc]


def load_bots_csv(path: Path) -> tuple[BotProfile, ...]:
    return tuple(BotProfile(id=row[0], name=row[1], personality=row[2]) for row in _read_table(path, ["id", "name", "personality"]))


def load_game_assets(*, root: Path) -> GameAssets:
    assets_dir = root / "assets"
    success, failure = load_verdicts_csv(assets_dir / "fallback_verdicts.csv")
    return GameAssets(
        scenarios=load_scenarios_csv(assets_dir / "fallback_scenarios.csv"),
        puzzles=load_puzzles_csv(assets_dir / "fallback_puzzles.csv"),
        success_outcomes=success,
        failure_outcomes=failure,
        bot_actions=load_bot_actions_csv(assets_dir / "fallback_bot_actions.csv"),
        bots=load_bots_csv(assets_dir / "bots.csv"),
    )
