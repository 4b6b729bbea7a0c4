import logging

from article_ingest.errors import CacheError, ExtractError, NotHtmlError, ValidationError
from article_ingest.modules.http.schemas import FetchedArticle
from article_ingest.modules.http.service import HttpService, http_service, is_html_mime_type
from article_ingest.modules.jobs.schemas import ImportArticleJob
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
from article_ingest.utils.links import is_valid_link

logger = logging.getLogger(__name__)


class ImportArticleProcessor:
    """Imports a single article: fetch, distil, describe."""

    def __init__(
        self,
        http: HttpService,
        readable: ReadableArticleService,
        metadata: ArticleMetadataService,
    ) -> None:
        self._http = http
        self._readable = readable
        self._metadata = metadata

    async def process(self, job_id: str, payload: ImportArticleJob) -> ArticleMetadata:
        logger.info("Job %s started...", job_id)
        url = payload.url

        if not is_valid_link(url):
            logger.warning("[%s] Invalid url found: %s", job_id, url)
            raise ValidationError(f"Invalid url: {url!r}")

        logger.info("[%s] Processing article %s from %s", job_id, payload.title, url)

        fetched = await self._http.fetch_article(url)

        if not is_html_mime_type(fetched.mime_type):
            logger.warning("[%s] Article not HTML: %s (%s)", job_id, url, fetched.mime_type)
            raise NotHtmlError(f"Article not HTML: {url}", url=url, status_code=fetched.status_code)

        if not payload.make_readable:
            return default_article_metadata(payload.title, url)

        is_readable = await self._make_readable(job_id, url, fetched)

        metadata = await self._metadata.retrieve_article_metadata(
            fetched.text,
            ArticleHints(title=payload.title, link=url),
            is_readable,
        )
        logger.info("[%s] Imported %s (readable=%s)", job_id, url, is_readable)
        return metadata

    async def _make_readable(self, job_id: str, url: str, fetched: FetchedArticle) -> bool:
        """Extract and cache the readable rendition. True only once it is cached."""
        try:
            article = await self._readable.retrieve_readable_article(url, fetched.text)
        except ExtractError as exc:
            logger.warning("[%s] Readable article not found: %s %s", job_id, url, exc)
            return False

        if article is None:
            logger.warning("[%s] Readable article not found: %s", job_id, url)
            return False

        try:
            await self._readable.create_readable_article_cache(url, article)
        except CacheError as exc:
            logger.warning("[%s] Error caching readable article: %s %s", job_id, url, exc)
            return False
        return True


import_article_processor = ImportArticleProcessor(
    http_service, readable_article_service, article_metadata_service
)
