import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from article_ingest.config.settings import settings
from article_ingest.modules.jobs.schemas import SyncFeedArticlesInput
from article_ingest.modules.jobs.service import JobWorker, job_worker
from article_ingest.modules.persistence.contracts import FeedStoreContract
from article_ingest.modules.persistence.service import persistence_service

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Periodically enqueues a sync job for every stored feed."""

    def __init__(
        self,
        worker: JobWorker,
        feeds: FeedStoreContract,
        interval_minutes: int = settings.sync_interval_minutes,
    ) -> None:
        self._worker = worker
        self._feeds = feeds
        self._interval_minutes = interval_minutes
        self._scheduler = AsyncIOScheduler()

    async def enqueue_all(self) -> int:
        feeds = await self._feeds.list_feeds()
        for feed in feeds:
            await self._worker.enqueue_sync(SyncFeedArticlesInput(feed=feed))
        logger.info("Scheduled sync for %d feeds", len(feeds))
        return len(feeds)

    def start(self) -> None:
        self._scheduler.add_job(
            self.enqueue_all,
            IntervalTrigger(minutes=self._interval_minutes),
            id="sync_feeds",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Scheduler started, feeds sync every %d minutes", self._interval_minutes)

    def stop(self) -> None:
        self._scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


sync_scheduler = SyncScheduler(job_worker, persistence_service)
