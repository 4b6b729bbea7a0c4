from fastapi import APIRouter, HTTPException

from article_ingest.modules.jobs import service
from article_ingest.modules.jobs.schemas import (
    ImportArticleJob,
    JobRecord,
    SyncFeedArticlesInput,
)

router = APIRouter()


@router.post("/import", response_model=JobRecord, status_code=202)
async def enqueue_import(body: ImportArticleJob):
    return await service.job_worker.enqueue_import(body)


@router.post("/sync", response_model=JobRecord, status_code=202)
async def enqueue_sync(body: SyncFeedArticlesInput):
    return await service.job_worker.enqueue_sync(body)


@router.get("/{job_id}", response_model=JobRecord)
async def get_job(job_id: str):
    job = service.job_worker.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job
