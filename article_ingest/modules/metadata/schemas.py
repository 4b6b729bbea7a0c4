from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ArticleMetadata(BaseModel):
    """Normalized description of one article, keyed by ``link``."""

    model_config = ConfigDict(frozen=True)

    title: str = "Untitled"
    link: str
    readable: bool = False
    published_at: datetime
    site_name: str
    excerpt: str | None = None
    cover_image: str | None = None
    author: str | None = None


class ArticleHints(BaseModel):
    """Values supplied by the caller. ``title`` and ``link`` override scraped values;
    ``published_at`` is only a fallback for pages without a date."""

    title: str | None = None
    link: str
    published_at: datetime | None = None


class ScrapedMetadata(BaseModel):
    title: str | None = None
    site_name: str | None = None
    published_at: datetime | None = None
    excerpt: str | None = None
    cover_image: str | None = None
    author: str | None = None
