import logging
from datetime import datetime

import feedparser

from article_ingest.errors import FeedParseError, FetchError
from article_ingest.modules.feeds.schemas import RawFeedEntry
from article_ingest.modules.http.service import HttpService, http_service
from article_ingest.utils.dates import from_struct_time, parse_datetime

logger = logging.getLogger(__name__)


def _text(value) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _parse_published_date(entry) -> datetime | None:
    """Extract the published date from a feed entry, falling back to updated."""
    for key in ("published_parsed", "updated_parsed", "created_parsed"):
        parsed = from_struct_time(entry.get(key))
        if parsed is not None:
            return parsed
    for key in ("published", "updated", "created"):
        parsed = parse_datetime(_text(entry.get(key)))
        if parsed is not None:
            return parsed
    return None


def _parse_entry(entry) -> RawFeedEntry:
    link = _text(entry.get("link"))
    if link is None:
        # Atom entries may only carry <link rel="alternate">
        for candidate in entry.get("links", []):
            if candidate.get("rel", "alternate") == "alternate" and candidate.get("href"):
                link = candidate["href"].strip()
                break

    return RawFeedEntry(
        title=_text(entry.get("title")),
        link=link,
        published_at=_parse_published_date(entry),
        summary=_text(entry.get("summary")),
    )


def parse_feed(content: bytes, feed_link: str) -> list[RawFeedEntry]:
    feed = feedparser.parse(content)

    if not feed.entries and not feed.get("version"):
        reason = feed.get("bozo_exception") or "not an RSS or Atom document"
        raise FeedParseError(f"Could not parse feed {feed_link}: {reason}")

    entries: list[RawFeedEntry] = []
    for entry in feed.entries:
        try:
            entries.append(_parse_entry(entry))
        except Exception as e:
            logger.warning("Failed to parse entry in %s: %s", feed_link, e)
            continue
    return entries


class FeedService:
    def __init__(self, http: HttpService) -> None:
        self._http = http

    async def retrieve_articles_from_feed(self, feed_link: str) -> list[RawFeedEntry]:
        try:
            fetched = await self._http.fetch_article(feed_link)
        except FetchError as exc:
            raise FeedParseError(f"Feed unreachable {feed_link}: {exc}") from exc

        entries = parse_feed(fetched.body, feed_link)
        logger.info("Found %d entries in %s", len(entries), feed_link)
        return entries


feed_service = FeedService(http_service)
