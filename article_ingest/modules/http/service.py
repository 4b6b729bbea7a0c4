import logging

import httpx

from article_ingest.config.settings import settings
from article_ingest.errors import FetchError
from article_ingest.modules.http.schemas import FetchedArticle

logger = logging.getLogger(__name__)

HTML_MIME_TYPES = frozenset({"text/html", "application/xhtml+xml"})

_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def parse_content_type(header: str | None) -> tuple[str, str | None]:
    """Split a Content-Type header into (mime type, charset)."""
    if not header:
        return "", None
    mime, _, params = header.partition(";")
    charset = None
    for param in params.split(";"):
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            charset = value.strip().strip("\"'").lower()
    return mime.strip().lower(), charset


def is_html_mime_type(mime_type: str | None) -> bool:
    mime, _ = parse_content_type(mime_type)
    return mime in HTML_MIME_TYPES


class HttpService:
    """Fetches article documents over HTTP.

    Timeout, headers and redirect following are sent with every request. The
    redirect cap is a client setting, so an injected ``client`` keeps its own
    ``max_redirects`` and ``max_redirects`` here only applies to the client
    built on first use.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = settings.http_timeout,
        max_redirects: int = settings.http_max_redirects,
        max_body_bytes: int = settings.http_max_body_bytes,
        user_agent: str = settings.http_user_agent,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._max_redirects = max_redirects
        self._max_body_bytes = max_body_bytes
        self._headers = {"User-Agent": user_agent, "Accept": _ACCEPT}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self._headers,
                timeout=self._timeout,
                follow_redirects=True,
                max_redirects=self._max_redirects,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_article(self, url: str) -> FetchedArticle:
        client = self._get_client()
        try:
            async with client.stream(
                "GET",
                url,
                headers=self._headers,
                timeout=self._timeout,
                follow_redirects=True,
            ) as response:
                if not response.is_success:
                    raise FetchError(
                        f"HTTP {response.status_code} fetching {url}",
                        url=url,
                        status_code=response.status_code,
                    )
                body = await self._read_body(url, response)
                mime_type, charset = parse_content_type(response.headers.get("content-type"))
                logger.debug("Fetched %s (%s, %d bytes)", url, mime_type or "unknown", len(body))
                return FetchedArticle(
                    url=str(response.url),
                    status_code=response.status_code,
                    mime_type=mime_type,
                    charset=charset or response.charset_encoding,
                    body=body,
                )
        except httpx.TimeoutException as exc:
            raise FetchError(f"Timeout fetching {url}", url=url) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Error fetching {url}: {exc}", url=url) from exc

    async def _read_body(self, url: str, response: httpx.Response) -> bytes:
        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self._max_body_bytes:
            raise FetchError(
                f"Response body too large for {url} ({declared} bytes)",
                url=url,
                status_code=response.status_code,
            )

        chunks: list[bytes] = []
        size = 0
        async for chunk in response.aiter_bytes():
            size += len(chunk)
            if size > self._max_body_bytes:
                raise FetchError(
                    f"Response body for {url} exceeds {self._max_body_bytes} bytes",
                    url=url,
                    status_code=response.status_code,
                )
            chunks.append(chunk)
        return b"".join(chunks)


http_service = HttpService()
