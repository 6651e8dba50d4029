import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tutor_market.api.health import router as health_router
from tutor_market.api.registry import router as registry_router
from tutor_market.api.reviews import router as reviews_router
from tutor_market.api.sessions import router as sessions_router
from tutor_market.config import settings
from tutor_market.database import engine
from tutor_market.models import Base
from tutor_market.tasks.auto_release import run_auto_release_loop

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        if settings.RESET_DB:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    task = None
    if settings.AUTO_RELEASE_ENABLED:
        task = asyncio.create_task(run_auto_release_loop())
        logger.info("Auto-release sweep every %ss", settings.AUTO_RELEASE_INTERVAL_SECONDS)
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await engine.dispose()


app = FastAPI(title="Campus Tutor Market", version="0.1.0", lifespan=lifespan)
app.include_router(health_router, prefix="/api")
app.include_router(registry_router, prefix="/api")
app.include_router(sessions_router, prefix="/api")
app.include_router(reviews_router, prefix="/api")


@app.get("/api")
def api_root():
    return {"message": "Campus Tutor Market API"}
