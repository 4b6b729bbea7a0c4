import asyncio
import json
import logging
import re
from datetime import datetime
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from pydantic import ValidationError as SchemaValidationError

from article_ingest.errors import MetadataError
from article_ingest.modules.cache.contracts import CacheContract
from article_ingest.modules.cache.service import cache_service
from article_ingest.modules.metadata.schemas import (
    ArticleHints,
    ArticleMetadata,
    ScrapedMetadata,
)
from article_ingest.utils.dates import parse_datetime, utc_now
from article_ingest.utils.links import normalize_link, site_name_from_link

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"

ARTICLE_LD_TYPES = frozenset(
    {"article", "newsarticle", "blogposting", "reportage", "report", "webpage", "techarticle"}
)

_TITLE_META = (
    ("property", "og:title"),
    ("name", "twitter:title"),
    ("name", "title"),
)
_SITE_NAME_META = (
    ("property", "og:site_name"),
    ("name", "application-name"),
)
_PUBLISHED_META = (
    ("property", "article:published_time"),
    ("property", "og:published_time"),
    ("name", "pubdate"),
    ("name", "publishdate"),
    ("name", "publish-date"),
    ("name", "date"),
    ("name", "dc.date"),
    ("name", "dc.date.issued"),
    ("itemprop", "datePublished"),
)
_EXCERPT_META = (
    ("property", "og:description"),
    ("name", "twitter:description"),
    ("name", "description"),
)
_IMAGE_META = (
    ("property", "og:image:secure_url"),
    ("property", "og:image"),
    ("name", "twitter:image"),
    ("name", "twitter:image:src"),
)
_AUTHOR_META = (
    ("name", "author"),
    ("property", "article:author"),
    ("name", "dc.creator"),
)


def _cache_key(link: str) -> str:
    return f"metadata:{normalize_link(link)}"


def _clean(value) -> str | None:
    if not isinstance(value, str):
        return None
    value = re.sub(r"\s+", " ", value).strip()
    return value or None


def _meta_content(soup: BeautifulSoup, candidates: tuple[tuple[str, str], ...]) -> str | None:
    for attr, name in candidates:
        tag = soup.find("meta", attrs={attr: re.compile(f"^{re.escape(name)}$", re.I)})
        if tag is not None:
            value = _clean(tag.get("content"))
            if value:
                return value
    return None


def _ld_objects(soup: BeautifulSoup) -> list[dict]:
    objects: list[dict] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or "")
        except (json.JSONDecodeError, TypeError):
            continue
        stack = data if isinstance(data, list) else [data]
        while stack:
            item = stack.pop(0)
            if not isinstance(item, dict):
                continue
            objects.append(item)
            graph = item.get("@graph")
            if isinstance(graph, list):
                stack.extend(graph)
    return objects


def _ld_article(soup: BeautifulSoup) -> dict:
    for item in _ld_objects(soup):
        types = item.get("@type")
        if isinstance(types, str):
            types = [types]
        if isinstance(types, list) and any(
            isinstance(t, str) and t.lower() in ARTICLE_LD_TYPES for t in types
        ):
            return item
    return {}


def _ld_name(value) -> str | None:
    if isinstance(value, list):
        names = [name for name in (_ld_name(v) for v in value) if name]
        return ", ".join(names) or None
    if isinstance(value, dict):
        return _clean(value.get("name"))
    return _clean(value)


def _ld_image(value) -> str | None:
    if isinstance(value, list):
        return _ld_image(value[0]) if value else None
    if isinstance(value, dict):
        return _clean(value.get("url") or value.get("contentUrl"))
    return _clean(value)


def _time_element(soup: BeautifulSoup) -> str | None:
    element = soup.find("time", attrs={"datetime": True})
    return _clean(element.get("datetime")) if element else None


def scrape_metadata(html: str, link: str) -> ScrapedMetadata:
    """Collect descriptive fields from meta tags and structured data."""
    soup = BeautifulSoup(html, "lxml")
    ld = _ld_article(soup)
    publisher = ld.get("publisher")

    title = _meta_content(soup, _TITLE_META) or _clean(ld.get("headline"))
    if not title and soup.title is not None:
        title = _clean(soup.title.get_text())

    published_raw = (
        _meta_content(soup, _PUBLISHED_META)
        or _clean(ld.get("datePublished"))
        or _time_element(soup)
    )

    image = _meta_content(soup, _IMAGE_META) or _ld_image(ld.get("image"))
    if image:
        image = urljoin(link, image)

    return ScrapedMetadata(
        title=title,
        site_name=_meta_content(soup, _SITE_NAME_META)
        or (_ld_name(publisher) if isinstance(publisher, dict) else None),
        published_at=parse_datetime(published_raw),
        excerpt=_meta_content(soup, _EXCERPT_META) or _clean(ld.get("description")),
        cover_image=image,
        author=_meta_content(soup, _AUTHOR_META) or _ld_name(ld.get("author")),
    )


def default_article_metadata(
    title: str | None, link: str, published_at: datetime | None = None
) -> ArticleMetadata:
    """Record used when an article cannot be processed."""
    return ArticleMetadata(
        title=title or UNTITLED,
        link=link,
        readable=False,
        published_at=published_at or utc_now(),
        site_name=site_name_from_link(link),
    )


class ArticleMetadataService:
    def __init__(self, cache: CacheContract) -> None:
        self._cache = cache

    async def retrieve_article_metadata(
        self, html: str, hints: ArticleHints, is_readable: bool
    ) -> ArticleMetadata:
        try:
            scraped = await asyncio.to_thread(scrape_metadata, html, hints.link)
        except Exception as exc:
            raise MetadataError(f"Could not derive metadata for {hints.link}: {exc}") from exc

        return ArticleMetadata(
            title=hints.title or scraped.title or UNTITLED,
            link=hints.link,
            readable=is_readable,
            published_at=scraped.published_at or hints.published_at or utc_now(),
            site_name=scraped.site_name or site_name_from_link(hints.link),
            excerpt=scraped.excerpt,
            cover_image=scraped.cover_image,
            author=scraped.author,
        )

    async def retrieve_cached_article_metadata(self, link: str) -> ArticleMetadata | None:
        cached = await self._cache.get(_cache_key(link))
        if cached is None:
            return None
        try:
            return ArticleMetadata.model_validate_json(cached)
        except SchemaValidationError:
            logger.warning("Discarding malformed cached metadata for %s", link)
            return None

    async def create_article_metadata_cache(self, metadata: ArticleMetadata) -> None:
        await self._cache.set(_cache_key(metadata.link), metadata.model_dump_json())


article_metadata_service = ArticleMetadataService(cache_service)
