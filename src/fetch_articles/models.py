"""Data models for the fetch_articles stage."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field

from common.hashing import generate_url_hash


@dataclass
class RawArticle:
    """Article as returned by a feed provider, before any filtering."""

    title: str
    description: str
    url: str
    source: str
    published_at: datetime
    image_url: str | None = None
    content: str | None = None
    category: str = "General"
    country: str = "Global"

    @property
    def url_hash(self) -> str:
        return generate_url_hash(self.url)


class FeedSource(BaseModel):
    id: str | None = None
    name: str | None = None
    url: str | None = None


class GNewsArticle(BaseModel):
    title: str | None = None
    description: str | None = None
    content: str | None = None
    url: str
    image: str | None = None
    published_at: str | None = Field(default=None, alias="publishedAt")
    source: FeedSource | None = None


class GNewsResponse(BaseModel):
    total_articles: int | None = Field(default=None, alias="totalArticles")
    articles: list[GNewsArticle] = Field(default_factory=list)


class NewsApiArticle(BaseModel):
    title: str | None = None
    description: str | None = None
    content: str | None = None
    url: str
    url_to_image: str | None = Field(default=None, alias="urlToImage")
    published_at: str | None = Field(default=None, alias="publishedAt")
    source: FeedSource | None = None


class NewsApiResponse(BaseModel):
    status: str
    total_results: int | None = Field(default=None, alias="totalResults")
    articles: list[NewsApiArticle] = Field(default_factory=list)
