import asyncio
import logging
import uuid
from collections import OrderedDict

from article_ingest.config.settings import settings
from article_ingest.errors import CacheError, IngestError
from article_ingest.modules.importer.service import ImportArticleProcessor, import_article_processor
from article_ingest.modules.jobs.schemas import (
    ImportArticleJob,
    JobConfig,
    JobName,
    JobRecord,
    JobStatus,
    SyncFeedArticlesInput,
)
from article_ingest.modules.metadata.schemas import ArticleMetadata
from article_ingest.modules.metadata.service import ArticleMetadataService, article_metadata_service
from article_ingest.modules.persistence.contracts import ArticleStoreContract
from article_ingest.modules.persistence.service import persistence_service
from article_ingest.modules.sync.service import SyncArticlesProcessor, sync_articles_processor
from article_ingest.utils.dates import utc_now

logger = logging.getLogger(__name__)

MAX_FINISHED_JOBS = 1000


class JobWorker:
    """In-process job queue feeding the import and sync processors.

    The worker is the caller that persists results: each successful job is
    written to the store once, then its articles go into the metadata cache
    so later syncs skip them.
    """

    def __init__(
        self,
        importer: ImportArticleProcessor,
        syncer: SyncArticlesProcessor,
        metadata: ArticleMetadataService,
        store: ArticleStoreContract,
        concurrency: int = settings.worker_concurrency,
        config: JobConfig | None = None,
    ) -> None:
        self._importer = importer
        self._syncer = syncer
        self._metadata = metadata
        self._store = store
        self._concurrency = max(1, concurrency)
        self._config = config or JobConfig()
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._jobs: OrderedDict[str, JobRecord] = OrderedDict()
        self._tasks: list[asyncio.Task] = []

    # ── Queue ───────────────────────────────────────────────────

    async def enqueue_import(self, payload: ImportArticleJob, job_id: str | None = None) -> JobRecord:
        return await self._enqueue(JobName.IMPORT, payload.model_dump(mode="json"), job_id)

    async def enqueue_sync(self, payload: SyncFeedArticlesInput) -> JobRecord:
        # One sync per feed at a time
        return await self._enqueue(JobName.SYNC, payload.model_dump(mode="json"), payload.feed.id)

    async def _enqueue(self, name: JobName, data: dict, job_id: str | None) -> JobRecord:
        existing = self._jobs.get(job_id) if job_id else None
        if existing is not None and existing.status in (JobStatus.WAITING, JobStatus.ACTIVE):
            logger.info("Job %s already %s, not enqueued again", existing.id, existing.status.value)
            return existing

        record = JobRecord(
            id=job_id or uuid.uuid4().hex,
            name=name,
            data=data,
            created_at=utc_now(),
        )
        self._jobs[record.id] = record
        self._jobs.move_to_end(record.id)
        await self._queue.put(record.id)
        logger.info("Enqueued %s job %s", name.value, record.id)
        return record

    def get(self, job_id: str) -> JobRecord | None:
        return self._jobs.get(job_id)

    async def join(self) -> None:
        await self._queue.join()

    # ── Lifecycle ───────────────────────────────────────────────

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._consume(), name=f"job-worker-{i}")
            for i in range(self._concurrency)
        ]
        logger.info("Job worker started (%d consumers)", self._concurrency)

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Job worker stopped")

    async def _consume(self) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                record = self._jobs.get(job_id)
                if record is not None:
                    await self.run_job(record)
            finally:
                self._queue.task_done()

    # ── Execution ───────────────────────────────────────────────

    async def run_job(self, record: JobRecord) -> JobRecord:
        record.status = JobStatus.ACTIVE
        try:
            articles, feed_id = await self._dispatch(record)
            await self._store.upsert_articles(articles, feed_id)
            await self._cache_articles(record.id, articles)
        except IngestError as exc:
            logger.error("[%s] Job failed: %s", record.id, exc)
            self._finish(record, JobStatus.FAILED, error=str(exc))
        except Exception as exc:
            logger.exception("[%s] Job crashed", record.id)
            self._finish(record, JobStatus.FAILED, error=str(exc) or type(exc).__name__)
        else:
            if record.name == JobName.IMPORT:
                record.result = articles[0].model_dump(mode="json")
            else:
                record.result = [article.model_dump(mode="json") for article in articles]
            self._finish(record, JobStatus.COMPLETED)
        return record

    async def _dispatch(self, record: JobRecord) -> tuple[list[ArticleMetadata], str | None]:
        if record.name == JobName.IMPORT:
            payload = ImportArticleJob.model_validate(record.data)
            article = await self._importer.process(record.id, payload)
            return [article], None

        payload = SyncFeedArticlesInput.model_validate(record.data)
        articles = await self._syncer.process(record.id, payload, self._config)
        return articles, payload.feed.id

    async def _cache_articles(self, job_id: str, articles: list[ArticleMetadata]) -> None:
        for article in articles:
            try:
                await self._metadata.create_article_metadata_cache(article)
            except CacheError as exc:
                logger.warning("[%s] Error caching metadata for %s: %s", job_id, article.link, exc)

    def _finish(self, record: JobRecord, status: JobStatus, error: str | None = None) -> None:
        record.status = status
        record.error = error
        record.finished_at = utc_now()
        logger.info("[%s] Job %s", record.id, status.value)
        self._prune()

    def _prune(self) -> None:
        finished = [
            job_id
            for job_id, job in self._jobs.items()
            if job.status in (JobStatus.COMPLETED, JobStatus.FAILED)
        ]
        for job_id in finished[: max(0, len(finished) - MAX_FINISHED_JOBS)]:
            del self._jobs[job_id]


job_worker = JobWorker(
    import_article_processor,
    sync_articles_processor,
    article_metadata_service,
    persistence_service,
)
