"""Hashing and URL normalisation utilities."""

import hashlib
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

QUERY_ALLOWLIST_DOMAINS = ("youtube.com", "youtu.be", "vimeo.com")
KEPT_QUERY_PARAMS = ("v", "id", "q")


def normalize_url(url: str) -> str:
    """Canonicalise an article URL for deduplication.

    Drops the fragment and every query parameter (video hosts keep only
    their identifying params), lowercases the host and removes a trailing
    slash.
    """
    if not url:
        return ""
    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.netloc:
        return url.strip()

    host = parts.netloc.lower()
    query = ""
    if any(domain in host for domain in QUERY_ALLOWLIST_DOMAINS):
        params = dict(parse_qsl(parts.query))
        query = urlencode([(k, params[k]) for k in KEPT_QUERY_PARAMS if k in params])

    normalized = urlunsplit((parts.scheme.lower(), host, parts.path, query, ""))
    return normalized.rstrip("/")


def generate_url_hash(url: str) -> str:
    """Generate the article identity hash from its normalised URL."""
    return hashlib.sha256(normalize_url(url).encode()).hexdigest()
