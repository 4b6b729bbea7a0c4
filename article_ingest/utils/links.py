"""Link validation and normalization."""

import re
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

ALLOWED_SCHEMES = frozenset({"http", "https"})

TRACKING_QUERY_PARAMS = frozenset(
    {
        "fbclid",
        "gclid",
        "igshid",
        "mc_cid",
        "mc_eid",
        "mkt_tok",
        "ref_src",
        "spm",
    }
)

_WHITESPACE = re.compile(r"\s")


def is_valid_link(candidate: object) -> bool:
    """Return True for absolute http(s) URLs with a host. Never raises."""
    if not isinstance(candidate, str) or not candidate:
        return False
    if _WHITESPACE.search(candidate):
        return False
    try:
        parsed = urlparse(candidate)
        # Accessing .port validates it (raises ValueError when out of range)
        parsed.port
    except ValueError:
        return False
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return False
    return bool(parsed.hostname)


def normalize_link(link: str) -> str:
    """Canonical form of a link, used as the cache key."""
    parsed = urlparse(link.strip())
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()

    port = parsed.port
    netloc = host
    is_default_port = (scheme == "http" and port == 80) or (scheme == "https" and port == 443)
    if port is not None and not is_default_port:
        netloc = f"{host}:{port}"

    path = re.sub(r"/{2,}", "/", parsed.path or "/")
    if path != "/":
        path = path.rstrip("/") or "/"

    kept_query: list[tuple[str, str]] = []
    for key, value in parse_qsl(parsed.query, keep_blank_values=True):
        lowered = key.lower()
        if lowered.startswith("utm_") or lowered in TRACKING_QUERY_PARAMS:
            continue
        kept_query.append((key, value))
    kept_query.sort()

    return urlunparse((scheme, netloc, path, "", urlencode(kept_query), ""))


def site_name_from_link(link: str) -> str:
    host = urlparse(link).hostname or ""
    return host.removeprefix("www.")
