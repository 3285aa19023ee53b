import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.v1.router import router as v1_router
from app.core.config import settings
from app.core.db import engine
from app.core.telemetry import configure_logging, setup_telemetry

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("%s starting (env=%s)", settings.service_name, settings.env)
    yield
    await engine.dispose()


configure_logging()

app = FastAPI(title="Foodshare API", version="0.1.0", lifespan=lifespan)

setup_telemetry(app)
app.include_router(v1_router)
