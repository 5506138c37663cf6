"""Data models for the analyze_articles stage."""

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, Field

Sentiment = Literal["Positive", "Negative", "Neutral"]

NEUTRAL_SENTIMENT = "Neutral"
NEUTRAL_LEAN = "Center"
NEUTRAL_TRUST_SCORE = 50


class FullAnalysisResponse(BaseModel):
    summary: str
    category: str
    political_lean: str
    sentiment: Sentiment
    trust_score: int = Field(ge=0, le=100)
    key_findings: list[str]
    cluster_topic: str = ""
    country: str = ""


class BasicAnalysisResponse(BaseModel):
    summary: str
    category: str
    sentiment: Sentiment


@dataclass
class ArticleAnalysis:
    """Analysis fields stored on an article.

    ``mode`` records where they came from: ``full``, ``basic``,
    ``fallback`` (neutral defaults) or ``reused`` (copied from a
    semantic duplicate).
    """

    summary: str
    category: str
    sentiment: str = NEUTRAL_SENTIMENT
    political_lean: str = NEUTRAL_LEAN
    trust_score: int = NEUTRAL_TRUST_SCORE
    key_findings: list[str] = field(default_factory=list)
    cluster_topic: str = ""
    country: str = "Global"
    mode: str = "fallback"
