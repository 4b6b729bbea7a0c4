import logging
import uuid

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert

from article_ingest.config.database import async_session
from article_ingest.modules.jobs.schemas import FeedRef
from article_ingest.modules.metadata.schemas import ArticleMetadata
from article_ingest.modules.persistence.contracts import ArticleStoreContract, FeedStoreContract
from article_ingest.modules.persistence.models import Article, Feed

logger = logging.getLogger(__name__)


def _feed_uuid(feed_id: str | None) -> uuid.UUID | None:
    if not feed_id:
        return None
    try:
        return uuid.UUID(feed_id)
    except ValueError:
        logger.warning("Ignoring malformed feed id %s", feed_id)
        return None


class PersistenceService(ArticleStoreContract, FeedStoreContract):

    # ── Articles ─────────────────────────────────────────────────

    async def upsert_articles(
        self,
        articles: list[ArticleMetadata],
        feed_id: str | None = None,
    ) -> int:
        if not articles:
            return 0

        feed_uuid = _feed_uuid(feed_id)
        async with async_session() as session:
            for article in articles:
                values = {
                    "title": article.title,
                    "site_name": article.site_name,
                    "published_at": article.published_at,
                    "readable": article.readable,
                    "excerpt": article.excerpt,
                    "cover_image": article.cover_image,
                    "author": article.author,
                }
                stmt = (
                    insert(Article)
                    .values(link=article.link, feed_id=feed_uuid, **values)
                    .on_conflict_do_update(index_elements=["link"], set_=values)
                )
                await session.execute(stmt)
            await session.commit()

        logger.info("Stored %d articles (feed=%s)", len(articles), feed_id)
        return len(articles)

    # ── Feeds ────────────────────────────────────────────────────

    async def list_feeds(self) -> list[FeedRef]:
        async with async_session() as session:
            result = await session.execute(select(Feed).order_by(Feed.created_at))
            return [
                FeedRef(id=str(feed.id), name=feed.name, link=feed.link)
                for feed in result.scalars().all()
            ]


persistence_service = PersistenceService()
