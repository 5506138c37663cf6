"""HTTP clients for the GNews and NewsAPI top-headlines endpoints."""

import logging
from datetime import datetime

import requests
from pydantic import ValidationError

from common.config import FetchConfig
from common.datetime import parse_datetime, utc_now
from common.utils import mask_key
from fetch_articles.fetch_cycles import FetchCycle
from fetch_articles.models import GNewsResponse, NewsApiResponse, RawArticle

logger = logging.getLogger(__name__)

USER_AGENT = "news-clustering/1.0 (headline fetcher)"
REMOVED_MARKER = "[Removed]"


def _parse_published_at(value: str | None) -> datetime:
    if not value:
        return utc_now()
    try:
        return parse_datetime(value)
    except ValueError:
        logger.debug("Unparseable publish date %r, using now", value)
        return utc_now()


class GNewsProvider:
    name = "GNEWS"
    url = "https://gnews.io/api/v4/top-headlines"

    def __init__(self, config: FetchConfig | None = None, session: requests.Session | None = None):
        self.config = config or FetchConfig()
        self.session = session or requests.Session()

    def fetch(self, cycle: FetchCycle, api_key: str) -> list[RawArticle]:
        """Fetch one page of headlines for ``cycle``.

        Raises:
            requests.HTTPError: Non-2xx response; a 429 marks the key rate limited.
        """
        params = {
            "lang": self.config.language,
            "sortby": "publishedAt",
            "max": self.config.gnews_max_results,
            **cycle.gnews_params,
            "apikey": api_key,
        }
        logger.debug("Fetching GNews %s with key %s", cycle.name, mask_key(api_key))
        response = self.session.get(
            self.url,
            params=params,
            headers={"User-Agent": USER_AGENT},
            timeout=self.config.request_timeout,
        )
        response.raise_for_status()
        return self.normalize(response.json(), cycle)

    def normalize(self, data, cycle: FetchCycle) -> list[RawArticle]:
        try:
            parsed = GNewsResponse.model_validate(data)
        except ValidationError as e:
            logger.error("GNews schema mismatch: %s", e)
            return []

        articles = []
        for item in parsed.articles:
            articles.append(
                RawArticle(
                    title=item.title or "",
                    description=item.description or item.content or "",
                    url=item.url,
                    source=(item.source.name if item.source else None) or "GNews",
                    published_at=_parse_published_at(item.published_at),
                    image_url=item.image or None,
                    content=item.content,
                    category=cycle.category,
                    country=cycle.country,
                )
            )
        return articles


class NewsApiProvider:
    name = "NEWS_API"
    url = "https://newsapi.org/v2/top-headlines"

    def __init__(self, config: FetchConfig | None = None, session: requests.Session | None = None):
        self.config = config or FetchConfig()
        self.session = session or requests.Session()

    def fetch(self, cycle: FetchCycle, api_key: str) -> list[RawArticle]:
        params = {
            "pageSize": self.config.newsapi_page_size,
            **cycle.newsapi_params,
        }
        if "country" not in params:
            params["language"] = self.config.language
        logger.debug("Fetching NewsAPI %s with key %s", cycle.name, mask_key(api_key))
        response = self.session.get(
            self.url,
            params=params,
            headers={"User-Agent": USER_AGENT, "X-Api-Key": api_key},
            timeout=self.config.request_timeout,
        )
        response.raise_for_status()
        return self.normalize(response.json(), cycle)

    def normalize(self, data, cycle: FetchCycle) -> list[RawArticle]:
        try:
            parsed = NewsApiResponse.model_validate(data)
        except ValidationError as e:
            logger.error("NewsAPI schema mismatch: %s", e)
            return []

        articles = []
        for item in parsed.articles:
            if item.title == REMOVED_MARKER:
                continue
            articles.append(
                RawArticle(
                    title=item.title or "",
                    description=item.description or "",
                    url=item.url,
                    source=(item.source.name if item.source else None) or "NewsAPI",
                    published_at=_parse_published_at(item.published_at),
                    image_url=item.url_to_image or None,
                    content=item.content,
                    category=cycle.category,
                    country=cycle.country,
                )
            )
        return articles
