import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from article_ingest.errors import CacheError, ExtractError, IngestError, ValidationError
from article_ingest.modules.feeds.schemas import RawFeedEntry
from article_ingest.modules.feeds.service import FeedService, feed_service
from article_ingest.modules.http.service import HttpService, http_service, is_html_mime_type
from article_ingest.modules.jobs.schemas import JobConfig, SyncFeedArticlesInput
from article_ingest.modules.metadata.schemas import ArticleHints, ArticleMetadata
from article_ingest.modules.metadata.service import (
    ArticleMetadataService,
    article_metadata_service,
    default_article_metadata,
)
from article_ingest.modules.readability.service import (
    ReadableArticleService,
    readable_article_service,
)
from article_ingest.utils.links import is_valid_link, normalize_link

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def chunk_entries(entries: Sequence[T], chunk_size: int) -> list[list[T]]:
    """Split entries into consecutive groups of at most ``chunk_size``."""
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")
    return [list(entries[i : i + chunk_size]) for i in range(0, len(entries), chunk_size)]


class SyncArticlesProcessor:
    """Syncs every article listed in a feed.

    Chunks run one after another with a pause in between; the entries of a
    chunk run concurrently. A failing entry is downgraded to default
    metadata and never fails the job.
    """

    def __init__(
        self,
        http: HttpService,
        feeds: FeedService,
        readable: ReadableArticleService,
        metadata: ArticleMetadataService,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._http = http
        self._feeds = feeds
        self._readable = readable
        self._metadata = metadata
        self._sleep = sleep

    async def process(
        self,
        job_id: str,
        payload: SyncFeedArticlesInput,
        config: JobConfig | None = None,
    ) -> list[ArticleMetadata]:
        config = config or JobConfig()
        feed = payload.feed
        logger.info("Job %s started...", job_id)

        if not is_valid_link(feed.link):
            logger.error("[%s] Invalid feed link for %s: %s", job_id, feed.name, feed.link)
            raise ValidationError(f"Invalid feed link: {feed.link!r}")

        entries = await self._feeds.retrieve_articles_from_feed(feed.link)
        if not entries:
            logger.info("[%s] No articles found in feed %s.", job_id, feed.name)
            return []

        logger.info("[%s] Syncing %d articles from %s...", job_id, len(entries), feed.name)

        chunks = chunk_entries(entries, config.chunk_size)
        seen: set[str] = set()
        articles: list[ArticleMetadata] = []

        for index, chunk in enumerate(chunks):
            tasks = []
            for entry in chunk:
                link = self._claim_link(job_id, entry, seen)
                if link is None:
                    continue
                tasks.append(self._process_entry(job_id, entry, link))

            results = await asyncio.gather(*tasks)
            articles.extend(result for result in results if result is not None)

            if index < len(chunks) - 1:
                await self._sleep(config.parallel_delay)

        logger.info("[%s] %d new articles found.", job_id, len(articles))
        return articles

    @staticmethod
    def _claim_link(job_id: str, entry: RawFeedEntry, seen: set[str]) -> str | None:
        """Return the entry's link if it should be processed in this job."""
        link = entry.link
        if not link:
            logger.warning("[%s] No link found for article: %s", job_id, entry.title)
            return None
        if not is_valid_link(link):
            logger.warning("[%s] Invalid link found: %s", job_id, link)
            return None
        key = normalize_link(link)
        if key in seen:
            logger.info("[%s] Duplicate link in feed: %s", job_id, link)
            return None
        seen.add(key)
        return link

    async def _process_entry(
        self, job_id: str, entry: RawFeedEntry, link: str
    ) -> ArticleMetadata | None:
        try:
            existing = await self._metadata.retrieve_cached_article_metadata(link)
        except CacheError as exc:
            logger.warning("[%s] Metadata cache lookup failed for %s: %s", job_id, link, exc)
            existing = None
        if existing is not None:
            logger.info("[%s] Article already exists: %s", job_id, link)
            return None

        default = default_article_metadata(entry.title, link, entry.published_at)
        try:
            return await self._build_metadata(job_id, entry, link, default)
        except IngestError as exc:
            logger.warning("[%s] Error processing article %s: %s", job_id, link, exc)
        except Exception:
            logger.exception("[%s] Unexpected error processing article %s", job_id, link)
        return default

    async def _build_metadata(
        self,
        job_id: str,
        entry: RawFeedEntry,
        link: str,
        default: ArticleMetadata,
    ) -> ArticleMetadata:
        fetched = await self._http.fetch_article(link)

        if not is_html_mime_type(fetched.mime_type):
            logger.warning("[%s] Article not HTML: %s", job_id, link)
            return default

        html = fetched.text
        readable = False
        try:
            article = await self._readable.retrieve_readable_article(link, html)
            if article is None:
                logger.warning("[%s] Readable article not found: %s", job_id, link)
            else:
                await self._readable.create_readable_article_cache(link, article)
                readable = True
        except ExtractError as exc:
            logger.warning("[%s] Readable article not found: %s %s", job_id, link, exc)
        except CacheError as exc:
            logger.warning("[%s] Error caching readable article: %s %s", job_id, link, exc)

        return await self._metadata.retrieve_article_metadata(
            html,
            ArticleHints(title=entry.title, link=link, published_at=entry.published_at),
            readable,
        )


sync_articles_processor = SyncArticlesProcessor(
    http_service, feed_service, readable_article_service, article_metadata_service
)
