"""Shared fixtures: sample documents, caches and response builders."""

import pytest

from article_ingest.errors import CacheError
from article_ingest.modules.cache.service import InMemoryCache
from article_ingest.modules.http.schemas import FetchedArticle

PARAGRAPHS = [
    "City officials announced on Tuesday that the riverside park, closed for nearly two years, "
    "will reopen to the public next month after an extensive restoration of its walking paths, "
    "playgrounds, and flood barriers, a project that residents had long campaigned for.",
    "The restoration, funded jointly by the municipal budget and a regional environmental grant, "
    "replaced more than three kilometres of damaged walkway, planted over four hundred native "
    "trees, and rebuilt the pedestrian bridge that connects the park to the old market district.",
    "Engineers working on the project said the new flood barriers were designed to withstand "
    "water levels well above those recorded during the storms that forced the closure, and that "
    "sensors installed along the bank will give early warning when the river begins to rise.",
    "Local business owners welcomed the news, saying that the closure had reduced foot traffic "
    "in the neighbourhood, and several cafes near the main entrance have already announced plans "
    "to extend their opening hours once the park is open again to visitors and families.",
    "The council will host an opening ceremony on the first Saturday of the month, with guided "
    "walks, a small market, and performances from local schools, and officials encouraged "
    "residents to share their memories of the park for a community exhibition planned for autumn.",
]

ARTICLE_BODY = "\n".join(f"<p>{paragraph}</p>" for paragraph in PARAGRAPHS)

ARTICLE_HTML = f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Riverside park to reopen | City Times</title>
  <meta property="og:title" content="Riverside park to reopen next month">
  <meta property="og:description" content="The restored park reopens after two years.">
  <meta property="og:image" content="/images/park.jpg">
  <meta property="article:published_time" content="2024-03-01T12:30:00Z">
  <meta name="author" content="Jane Reporter">
</head>
<body>
  <nav><a href="/">Home</a> | <a href="/city">City</a> | <a href="/about">About</a></nav>
  <article>
    <h1>Riverside park to reopen next month</h1>
    {ARTICLE_BODY}
  </article>
  <footer><a href="/privacy">Privacy</a> | Copyright City Times</footer>
</body>
</html>
"""

SHORT_HTML = """<html><head><title>Sign in</title></head>
<body><p>Please sign in to continue.</p></body></html>
"""

BARE_HTML = """<html><head></head><body><div>Nothing to see here.</div></body></html>"""


class FailingCache(InMemoryCache):
    """Cache whose writes always fail."""

    async def set(self, key: str, value: str) -> None:
        raise CacheError(f"write refused for {key}")


@pytest.fixture
def article_html() -> str:
    return ARTICLE_HTML


@pytest.fixture
def short_html() -> str:
    return SHORT_HTML


@pytest.fixture
def bare_html() -> str:
    return BARE_HTML


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def failing_cache() -> FailingCache:
    return FailingCache()


@pytest.fixture
def make_fetched():
    def _make(
        html: str,
        url: str = "https://example.com/a",
        mime_type: str = "text/html",
    ) -> FetchedArticle:
        return FetchedArticle(
            url=url,
            status_code=200,
            mime_type=mime_type,
            charset="utf-8",
            body=html.encode("utf-8"),
        )

    return _make
