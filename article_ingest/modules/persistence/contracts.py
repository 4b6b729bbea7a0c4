from abc import ABC, abstractmethod

from article_ingest.modules.jobs.schemas import FeedRef
from article_ingest.modules.metadata.schemas import ArticleMetadata


class ArticleStoreContract(ABC):
    @abstractmethod
    async def upsert_articles(
        self,
        articles: list[ArticleMetadata],
        feed_id: str | None = None,
    ) -> int: ...


class FeedStoreContract(ABC):
    @abstractmethod
    async def list_feeds(self) -> list[FeedRef]: ...
