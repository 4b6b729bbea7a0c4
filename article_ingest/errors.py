"""Failure types raised by the ingestion pipeline.

Expected failures are raised as one of these; callers decide whether a
failure ends the job or only degrades a single article.
"""


class IngestError(Exception):
    pass


class ValidationError(IngestError):
    """The link is not an absolute http(s) URL."""


class FetchError(IngestError):
    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class NotHtmlError(FetchError):
    """The response was fetched but is not an HTML document."""


class ExtractError(IngestError):
    """The HTML could not be parsed into a document tree."""


class MetadataError(IngestError):
    pass


class FeedParseError(IngestError):
    """The feed is unreachable or is not a parseable RSS/Atom document."""


class CacheError(IngestError):
    pass
