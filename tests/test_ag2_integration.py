from __future__ import annotations

import os
import random

import httpx
import pytest

from fatebound.agents.ag2_backend import Ag2TextGenerator
from fatebound.agents.autogen_config import DEFAULT_MODEL
from fatebound.agents.pipeline import generate_valid
from fatebound.agents.scenario_writer import ScenarioContract


def _ollama_healthy(base_url: str) -> bool:
    # base_url might be http://127.0.0.1:11434/v1
    root = base_url.removesuffix("/v1")
    try:
        r = httpx.get(f"{root}/api/tags", timeout=1.0)
        return r.status_code == 200
    except httpx.HTTPError:
        return False


@pytest.mark.asyncio
async def test_ag2_scenario_generation_env_gated(assets) -> None:
    base_url = os.environ.get("OPENAI_BASE_URL")
    api_key = os.environ.get("OPENAI_API_KEY")

    if not (api_key or base_url):
        pytest.skip("Set OPENAI_API_KEY or OPENAI_BASE_URL")

    if base_url and not _ollama_healthy(base_url):
        pytest.skip("Ollama not reachable at OPENAI_BASE_URL")

    generator = Ag2TextGenerator(name="fatebound-test", model=os.environ.get("OPENAI_MODEL", DEFAULT_MODEL))
    contract = ScenarioContract(history=[], pool=assets.scenarios)

    result = await generate_valid(generator=generator, contract=contract, rng=random.Random(0))

    # Small local models may need the fallback; either way the value is valid.
    assert contract.validate(result.value) == []
    assert result.value.text.endswith("What do you do?")
    assert result.attempts >= 1
