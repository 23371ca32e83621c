from fastapi import FastAPI
import logging

from gridmerge.api.routes import router
from gridmerge.config import init_config

app = FastAPI(title="gridmerge", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    config = init_config()
    logger.info(
        "grid config: tile=%s radius=%s win_threshold=%s geolocation=%s",
        config.tile_degrees,
        config.interaction_radius,
        config.win_threshold,
        config.geolocation_enabled,
    )


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "gridmerge", "version": "0.1.0"}
