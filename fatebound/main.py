from fastapi import FastAPI
import logging

from fatebound.api.routes import router
from fatebound.assets.singleton import init_assets
from fatebound.config import settings_from_env

app = FastAPI(title="fatebound", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=settings_from_env().log_level)
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    # Fail fast on a broken asset pack: every fallback path depends on it.
    init_assets()
    logger.info("fatebound ready")


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "fatebound", "version": "0.1.0"}
