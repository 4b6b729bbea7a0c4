from datetime import datetime

from pydantic import BaseModel


class RawFeedEntry(BaseModel):
    """One item of an RSS/Atom feed, as listed."""

    title: str | None = None
    link: str | None = None
    published_at: datetime | None = None
    summary: str | None = None
