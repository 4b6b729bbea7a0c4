import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from article_ingest.config.database import Base, engine
from article_ingest.config.settings import settings
from article_ingest.modules.cache.service import cache_service
from article_ingest.modules.http.service import http_service
from article_ingest.modules.jobs.router import router as jobs_router
from article_ingest.modules.jobs.scheduler import sync_scheduler
from article_ingest.modules.jobs.service import job_worker

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    import article_ingest.modules.persistence.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables synced")

    job_worker.start()
    sync_scheduler.start()
    yield
    sync_scheduler.stop()
    await job_worker.stop()
    await http_service.aclose()
    await cache_service.close()
    await engine.dispose()


app = FastAPI(title="Article Ingest", lifespan=lifespan)

app.include_router(jobs_router, prefix="/api/jobs", tags=["jobs"])


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.app_host, port=settings.app_port)
