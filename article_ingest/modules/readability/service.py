import asyncio
import logging
import re

from bs4 import BeautifulSoup
from lxml import html as lxml_html
from lxml.etree import ParserError
from pydantic import ValidationError as SchemaValidationError
from readability import Document
from readability.readability import Unparseable

from article_ingest.errors import CacheError, ExtractError
from article_ingest.modules.cache.contracts import CacheContract
from article_ingest.modules.cache.service import cache_service
from article_ingest.modules.readability.schemas import ReadableArticle
from article_ingest.utils.links import normalize_link

logger = logging.getLogger(__name__)

# Distilled text shorter than this is not treated as an article
MIN_READABLE_LENGTH = 500
EXCERPT_LENGTH = 300

_BYLINE_SELECTORS = (
    '[rel="author"]',
    '[itemprop="author"]',
    ".byline",
    ".author",
)


def _cache_key(url: str) -> str:
    return f"readable:{normalize_link(url)}"


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _truncate(text: str, limit: int = EXCERPT_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rsplit(" ", 1)[0] + "…"


def _find_byline(soup: BeautifulSoup) -> str | None:
    meta = soup.find("meta", attrs={"name": "author"})
    if meta and meta.get("content", "").strip():
        return meta["content"].strip()
    for selector in _BYLINE_SELECTORS:
        element = soup.select_one(selector)
        if element:
            text = _collapse(element.get_text(" "))
            if text and len(text) < 100:
                return text
    return None


def _find_excerpt(soup: BeautifulSoup, content_tree) -> str | None:
    meta = soup.find("meta", property="og:description") or soup.find(
        "meta", attrs={"name": "description"}
    )
    if meta and meta.get("content", "").strip():
        return _collapse(meta["content"])
    for paragraph in content_tree.iter("p"):
        text = _collapse(paragraph.text_content())
        if text:
            return _truncate(text)
    return None


def extract_readable_article(url: str, html: str) -> ReadableArticle | None:
    """Distil the main content of ``html``.

    Returns None when no dominant content block with enough text is found.
    Raises ExtractError when the document cannot be parsed at all.
    """
    if not html or not html.strip():
        raise ExtractError(f"Empty document for {url}")

    try:
        doc = Document(html, url=url)
        content = doc.summary(html_partial=True)
        title = doc.short_title() or doc.title()
    except (Unparseable, ParserError) as exc:
        raise ExtractError(f"Unparseable HTML for {url}: {exc}") from exc

    if not content or not content.strip():
        return None

    try:
        content_tree = lxml_html.fromstring(content)
    except ParserError:
        return None

    text = _collapse(content_tree.text_content())
    if len(text) < MIN_READABLE_LENGTH:
        logger.debug("Distilled text too short for %s (%d chars)", url, len(text))
        return None

    soup = BeautifulSoup(html, "lxml")
    return ReadableArticle(
        title=_collapse(title or ""),
        content=content,
        excerpt=_find_excerpt(soup, content_tree),
        byline=_find_byline(soup),
        length=len(text),
    )


class ReadableArticleService:
    def __init__(self, cache: CacheContract) -> None:
        self._cache = cache

    async def retrieve_cached_readable_article(self, url: str) -> ReadableArticle | None:
        cached = await self._cache.get(_cache_key(url))
        if cached is None:
            return None
        try:
            return ReadableArticle.model_validate_json(cached)
        except SchemaValidationError:
            logger.warning("Discarding malformed cached readable article for %s", url)
            return None

    async def retrieve_readable_article(self, url: str, html: str) -> ReadableArticle | None:
        try:
            cached = await self.retrieve_cached_readable_article(url)
        except CacheError as exc:
            logger.warning("Readable cache lookup failed for %s: %s", url, exc)
            cached = None
        if cached is not None:
            logger.debug("Readable cache hit for %s", url)
            return cached

        return await asyncio.to_thread(extract_readable_article, url, html)

    async def create_readable_article_cache(self, url: str, article: ReadableArticle) -> None:
        await self._cache.set(_cache_key(url), article.model_dump_json())


readable_article_service = ReadableArticleService(cache_service)
