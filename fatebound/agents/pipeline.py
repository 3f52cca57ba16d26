from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, Literal, TypeVar

from fatebound.agents.base import GenerationOptions, GenerationUnavailable, TextGenerator
from fatebound.core.context import RenderedPrompt

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_REPAIRS = 2


class GenerationExhausted(RuntimeError):
    """Every attempt failed to produce a valid value. Never leaves `generate_valid`."""

    def __init__(self, artifact: str, attempts: int, violations: Sequence[str]) -> None:
        super().__init__(f"{artifact}: no valid output after {attempts} attempts: {'; '.join(violations)}")
        self.artifact = artifact
        self.attempts = attempts
        self.violations = tuple(violations)


@dataclass(frozen=True, slots=True)
class RepairPlan(Generic[T]):
    prompt: RenderedPrompt
    # Turns the repair reply into a full candidate (a partial repair can keep fields of the last one).
    parse: Callable[[str], T]


@dataclass(frozen=True, slots=True)
class Generated(Generic[T]):
    value: T
    source: Literal["model", "fallback"]
    attempts: int


class ArtifactContract(ABC, Generic[T]):
    """How to prompt for, parse, check, repair, and replace one kind of artifact."""

    name: str = "artifact"
    options: GenerationOptions = GenerationOptions()
    repair_options: GenerationOptions = GenerationOptions(temperature=0.3)

    @abstractmethod
    def render(self) -> RenderedPrompt:
        raise NotImplementedError

    @abstractmethod
    def parse(self, text: str) -> T:
        raise NotImplementedError

    @abstractmethod
    def validate(self, value: T) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    def plan_repair(self, *, candidate: T | None, raw: str, violations: list[str]) -> RepairPlan[T]:
        raise NotImplementedError

    @abstractmethod
    def fallback_pool(self) -> Sequence[T]:
        raise NotImplementedError

    def is_denied(self, value: T) -> bool:
        """Recent-history denylist applied to fallback picks."""

        return False

    def pick_fallback(self, rng: random.Random) -> T:
        pool = list(self.fallback_pool())
        if not pool:
            raise RuntimeError(f"Empty fallback pool for {self.name}")
        allowed = [v for v in pool if not self.is_denied(v)]
        return rng.choice(allowed or pool)


@dataclass(slots=True)
class _Progress:
    attempts: int = 0
    violations: list[str] = field(default_factory=list)


async def _generate_with_repairs(
    *,
    generator: TextGenerator,
    contract: ArtifactContract[T],
    max_repairs: int,
    progress: _Progress,
) -> T:
    prompt = contract.render()
    options = contract.options
    parse = contract.parse

    for _ in range(1 + max_repairs):
        progress.attempts += 1
        raw = ""
        candidate: T | None = None
        try:
            raw = await generator.generate(prompt=prompt, options=options)
            candidate = parse(raw)
            violations = contract.validate(candidate)
        except GenerationUnavailable:
            raise
        except Exception as e:
            logger.warning("%s attempt %d failed: %s", contract.name, progress.attempts, e)
            violations = ["Reply using exactly the required output format."]
        else:
            if not violations:
                return candidate
            logger.warning(
                "%s attempt %d rejected: %s", contract.name, progress.attempts, "; ".join(violations)
            )

        progress.violations = violations
        plan = contract.plan_repair(candidate=candidate, raw=raw, violations=violations)
        prompt, parse = plan.prompt, plan.parse
        options = contract.repair_options

    raise GenerationExhausted(contract.name, progress.attempts, progress.violations)


async def generate_valid(
    *,
    generator: TextGenerator,
    contract: ArtifactContract[T],
    rng: random.Random,
    max_repairs: int = DEFAULT_MAX_REPAIRS,
) -> Generated[T]:
    """Always return a value that passes `contract.validate`.

    One attempt plus up to `max_repairs` repair calls (lower temperature, violated
    rules restated), then a pick from the curated fallback pool. Nothing raised by
    the generator, the parser or a validator escapes this function.
    """

    progress = _Progress()
    try:
        value = await _generate_with_repairs(
            generator=generator,
            contract=contract,
            max_repairs=max_repairs,
            progress=progress,
        )
        return Generated(value=value, source="model", attempts=progress.attempts)
    except GenerationUnavailable as e:
        logger.info("%s: %s; using fallback", contract.name, e)
    except GenerationExhausted as e:
        logger.info("%s; using fallback", e)
    except Exception:
        logger.exception("%s generation crashed after %d attempts; using fallback", contract.name, progress.attempts)

    return Generated(value=contract.pick_fallback(rng), source="fallback", attempts=progress.attempts)
