"""Tests for article_ingest.modules.jobs.service and scheduler modules."""

from unittest.mock import AsyncMock

import pytest

from article_ingest.errors import FetchError
from article_ingest.modules.feeds.schemas import RawFeedEntry
from article_ingest.modules.importer.service import ImportArticleProcessor
from article_ingest.modules.jobs.scheduler import SyncScheduler
from article_ingest.modules.jobs.schemas import (
    FeedRef,
    ImportArticleJob,
    JobConfig,
    JobStatus,
    SyncFeedArticlesInput,
)
from article_ingest.modules.jobs.service import JobWorker
from article_ingest.modules.metadata.service import ArticleMetadataService, default_article_metadata
from article_ingest.modules.persistence.contracts import ArticleStoreContract, FeedStoreContract
from article_ingest.modules.readability.service import ReadableArticleService
from article_ingest.modules.sync.service import SyncArticlesProcessor

FEED = FeedRef(id="feed-1", name="City Times", link="https://example.com/feed.xml")


class FakeStore(ArticleStoreContract, FeedStoreContract):
    def __init__(self, feeds: list[FeedRef] | None = None) -> None:
        self.feeds = feeds or []
        self.articles: dict[str, dict] = {}
        self.calls: list[tuple[int, str | None]] = []

    async def upsert_articles(self, articles, feed_id=None) -> int:
        self.calls.append((len(articles), feed_id))
        for article in articles:
            self.articles[article.link] = {**article.model_dump(), "feed_id": feed_id}
        return len(articles)

    async def list_feeds(self) -> list[FeedRef]:
        return self.feeds


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def build_worker(cache, store):
    def _build(importer=None, syncer=None) -> JobWorker:
        return JobWorker(
            importer or AsyncMock(),
            syncer or AsyncMock(),
            ArticleMetadataService(cache),
            store,
            concurrency=1,
            config=JobConfig(chunk_size=10, parallel_delay=0),
        )

    return _build


class TestJobWorker:
    @pytest.mark.asyncio
    async def test_import_job_completes(self, build_worker, store, cache) -> None:
        importer = AsyncMock()
        importer.process.return_value = default_article_metadata("Example", "https://example.com/a")
        worker = build_worker(importer=importer)

        record = await worker.enqueue_import(ImportArticleJob(title="Example", url="https://example.com/a"))
        worker.start()
        await worker.join()
        await worker.stop()

        job = worker.get(record.id)
        assert job.status == JobStatus.COMPLETED
        assert job.result["title"] == "Example"
        assert job.finished_at is not None
        assert store.calls == [(1, None)]
        assert await cache.get("metadata:https://example.com/a") is not None

    @pytest.mark.asyncio
    async def test_failed_job_records_error(self, build_worker, store) -> None:
        importer = AsyncMock()
        importer.process.side_effect = FetchError("HTTP 500 fetching https://example.com/a", status_code=500)
        worker = build_worker(importer=importer)

        record = await worker.enqueue_import(ImportArticleJob(url="https://example.com/a"))
        job = await worker.run_job(record)

        assert job.status == JobStatus.FAILED
        assert "HTTP 500" in job.error
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_job(self, build_worker) -> None:
        importer = AsyncMock()
        importer.process.side_effect = RuntimeError("boom")
        worker = build_worker(importer=importer)

        record = await worker.enqueue_import(ImportArticleJob(url="https://example.com/a"))
        job = await worker.run_job(record)

        assert job.status == JobStatus.FAILED
        assert job.error == "boom"

    @pytest.mark.asyncio
    async def test_sync_job_persists_with_feed_id(self, build_worker, store) -> None:
        syncer = AsyncMock()
        syncer.process.return_value = [
            default_article_metadata("One", "https://example.com/1"),
            default_article_metadata("Two", "https://example.com/2"),
        ]
        worker = build_worker(syncer=syncer)

        record = await worker.enqueue_sync(SyncFeedArticlesInput(feed=FEED))
        job = await worker.run_job(record)

        assert record.id == "feed-1"
        assert job.status == JobStatus.COMPLETED
        assert [a["title"] for a in job.result] == ["One", "Two"]
        assert store.calls == [(2, "feed-1")]

    @pytest.mark.asyncio
    async def test_pending_sync_is_not_enqueued_twice(self, build_worker) -> None:
        worker = build_worker()

        first = await worker.enqueue_sync(SyncFeedArticlesInput(feed=FEED))
        second = await worker.enqueue_sync(SyncFeedArticlesInput(feed=FEED))

        assert first is second

    @pytest.mark.asyncio
    async def test_finished_sync_can_run_again(self, build_worker) -> None:
        syncer = AsyncMock()
        syncer.process.return_value = []
        worker = build_worker(syncer=syncer)

        first = await worker.enqueue_sync(SyncFeedArticlesInput(feed=FEED))
        await worker.run_job(first)
        second = await worker.enqueue_sync(SyncFeedArticlesInput(feed=FEED))

        assert second.status == JobStatus.WAITING
        assert second is not first

    @pytest.mark.asyncio
    async def test_repeat_sync_is_idempotent(self, build_worker, store, cache, make_fetched, article_html) -> None:
        http = AsyncMock()
        http.fetch_article.side_effect = lambda url: make_fetched(article_html, url=url)
        feeds = AsyncMock()
        feeds.retrieve_articles_from_feed.return_value = [
            RawFeedEntry(title="One", link="https://example.com/1"),
            RawFeedEntry(title="Two", link="https://example.com/2"),
        ]
        readable = ReadableArticleService(cache)
        metadata = ArticleMetadataService(cache)
        syncer = SyncArticlesProcessor(http, feeds, readable, metadata, sleep=AsyncMock())
        importer = ImportArticleProcessor(http, readable, metadata)
        worker = build_worker(importer=importer, syncer=syncer)

        first = await worker.run_job(await worker.enqueue_sync(SyncFeedArticlesInput(feed=FEED)))
        second = await worker.run_job(await worker.enqueue_sync(SyncFeedArticlesInput(feed=FEED)))

        assert len(first.result) == 2
        assert second.result == []
        assert set(store.articles) == {"https://example.com/1", "https://example.com/2"}
        assert http.fetch_article.await_count == 2


class TestSyncScheduler:
    @pytest.mark.asyncio
    async def test_enqueues_one_sync_per_feed(self, build_worker) -> None:
        feeds = [FEED, FeedRef(id="feed-2", name="Blog", link="https://blog.example.com/rss")]
        worker = build_worker()
        scheduler = SyncScheduler(worker, FakeStore(feeds), interval_minutes=5)

        assert await scheduler.enqueue_all() == 2
        assert worker.get("feed-1") is not None
        assert worker.get("feed-2") is not None
