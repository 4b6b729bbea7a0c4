from pydantic import BaseModel, ConfigDict


class ReadableArticle(BaseModel):
    """Distilled main content of an article page."""

    model_config = ConfigDict(frozen=True)

    title: str
    content: str
    excerpt: str | None = None
    byline: str | None = None
    length: int
