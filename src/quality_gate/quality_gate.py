"""Clean, score, filter and deduplicate a batch of raw articles."""

import logging
import re
from dataclasses import dataclass, replace
from urllib.parse import urlsplit

from common.config import QualityGateConfig
from common.hashing import normalize_url
from fetch_articles.models import RawArticle
from quality_gate.constants import (
    BLOCKED_DOMAINS,
    BLOCKED_SOURCE_NAMES,
    CLICKBAIT_PATTERNS,
    JUNK_KEYWORDS,
    PAYWALL_INDICATORS,
    TRUSTED_SOURCES,
)
from quality_gate.similarity import dice_coefficient

logger = logging.getLogger(__name__)

_JUNK_RE = re.compile(r"\b(?:" + "|".join(re.escape(k) for k in JUNK_KEYWORDS) + r")\b")
_CLICKBAIT_RES = tuple(re.compile(p, re.IGNORECASE) for p in CLICKBAIT_PATTERNS)
_CHAR_COUNT_MARKER = re.compile(r"\[\+\d+\s?chars\]")
_BRACKETED = re.compile(r"\[.*?\]")
_HEADLINE_SOURCE_SUFFIX = re.compile(r"\s+[-|–—]\s+[A-Z][\w.&']*(?: [\w.&']+){0,3}$")

PAYWALL_SCAN_CHARS = 500


def clean_text(text: str | None) -> str:
    """Strip HTML, truncation markers and bracketed fragments, collapse whitespace."""
    if not text:
        return ""
    text = re.sub(r"<[^>]*>?", " ", text)
    text = _CHAR_COUNT_MARKER.sub("", text)
    text = _BRACKETED.sub("", text)
    return re.sub(r"\s+", " ", text).strip()


def format_headline(title: str | None) -> str:
    """Clean a headline and drop a trailing `` - Source`` attribution."""
    title = clean_text(title)
    title = _HEADLINE_SOURCE_SUFFIX.sub("", title)
    if title:
        title = title[0].upper() + title[1:]
    return title


def is_trusted_source(source: str | None) -> bool:
    source = (source or "").lower()
    return any(trusted in source for trusted in TRUSTED_SOURCES)


def has_junk_keyword(text: str | None) -> bool:
    return bool(_JUNK_RE.search((text or "").lower()))


def is_clickbait(title: str | None) -> bool:
    return any(pattern.search(title or "") for pattern in _CLICKBAIT_RES)


def is_paywalled(text: str | None) -> bool:
    head = (text or "")[:PAYWALL_SCAN_CHARS].lower()
    return any(indicator in head for indicator in PAYWALL_INDICATORS)


def is_allowed_source(url: str, source_name: str | None) -> bool:
    """Reject press-release wires, social/video platforms, shops and tabloids."""
    if not url:
        return False
    host = urlsplit(url.lower()).hostname or ""
    if any(host == domain or host.endswith("." + domain) for domain in BLOCKED_DOMAINS):
        return False
    source = (source_name or "").lower()
    return not any(blocked in source for blocked in BLOCKED_SOURCE_NAMES)


def calculate_score(article: RawArticle) -> int:
    """Signed quality score; anything below the cutoff is dropped."""
    score = 0
    trusted = is_trusted_source(article.source)

    if article.image_url and article.image_url.startswith("http"):
        score += 2
    elif trusted:
        score -= 2
    else:
        score -= 10

    if article.title and len(article.title) > 40:
        score += 1
    if trusted:
        score += 5
    if has_junk_keyword(article.title):
        score -= 20
    return score


def rejection_reason(article: RawArticle, config: QualityGateConfig) -> str | None:
    """Return why a cleaned article fails the static filters, or None if it passes."""
    if not is_allowed_source(article.url, article.source):
        return "blocked source"
    if len(article.title) < config.min_title_length:
        return "title too short"
    if len(article.description) < config.min_description_length:
        return "description too short"
    if len(f"{article.title} {article.description}".split()) < config.min_words:
        return "too few words"
    if has_junk_keyword(article.title):
        return "junk keyword"
    if is_clickbait(article.title):
        return "clickbait"
    if is_paywalled(article.description):
        return "paywall"
    return None


@dataclass
class ScoredArticle:
    article: RawArticle
    score: int


class QualityGate:
    """Keeps the best article of each near-duplicate group in a batch."""

    def __init__(self, config: QualityGateConfig | None = None):
        self.config = config or QualityGateConfig()

    def is_fuzzy_duplicate(self, title: str, accepted_titles: list[str]) -> bool:
        for existing in accepted_titles:
            if abs(len(title) - len(existing)) > self.config.max_title_length_diff:
                continue
            if dice_coefficient(title, existing) >= self.config.fuzzy_threshold:
                return True
        return False

    def filter_batch(self, articles: list[RawArticle]) -> list[RawArticle]:
        """Score, clean, filter and dedupe ``articles``.

        Higher scores are considered first, so of two near-identical
        headlines the better-scoring one survives. The result is ordered
        newest first.
        """
        scored = [ScoredArticle(article, calculate_score(article)) for article in articles]
        scored.sort(key=lambda item: item.score, reverse=True)

        accepted: list[RawArticle] = []
        seen_urls: set[str] = set()
        accepted_titles: list[str] = []
        rejected: dict[str, int] = {}

        for item in scored:
            if item.score < self.config.score_cutoff:
                rejected["low score"] = rejected.get("low score", 0) + 1
                continue

            article = replace(
                item.article,
                title=format_headline(item.article.title),
                description=clean_text(item.article.description),
            )

            reason = rejection_reason(article, self.config)
            if reason is None:
                url = normalize_url(article.url)
                if url in seen_urls:
                    reason = "duplicate url"
                elif self.is_fuzzy_duplicate(article.title, accepted_titles):
                    reason = "duplicate headline"

            if reason is not None:
                rejected[reason] = rejected.get(reason, 0) + 1
                logger.debug("Rejected %s: %s", article.url, reason)
                continue

            seen_urls.add(url)
            accepted_titles.append(article.title)
            accepted.append(article)

        logger.info(
            "Quality gate kept %d of %d articles (rejected: %s)",
            len(accepted),
            len(articles),
            rejected or "none",
        )
        accepted.sort(key=lambda a: a.published_at, reverse=True)
        return accepted
