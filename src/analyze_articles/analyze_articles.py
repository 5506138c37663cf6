"""AI analysis of single articles with graceful degradation."""

import logging

from pydantic import BaseModel, ValidationError

from analyze_articles.instructions import BASIC_ANALYSIS_INSTRUCTIONS, FULL_ANALYSIS_INSTRUCTIONS
from analyze_articles.models import ArticleAnalysis, BasicAnalysisResponse, FullAnalysisResponse
from common.llm import ChatCompletionClient
from fetch_articles.models import RawArticle
from rds_postgres.models import Article
from resilience.errors import MalformedResponseError, ProviderUnavailableError

logger = logging.getLogger(__name__)


def _format_article_for_prompt(article: RawArticle) -> str:
    lines = [
        f"Source: {article.source}",
        f"Headline: {article.title}",
        f"Description: {article.description}",
    ]
    if article.country and article.country != "Global":
        lines.append(f"Region hint: {article.country}")
    return "\n".join(lines)


def _validate(model: type[BaseModel], data: dict):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(f"{model.__name__} validation failed: {e}") from e


def fallback_analysis(article: RawArticle) -> ArticleAnalysis:
    """Neutral defaults used when the AI provider cannot be used."""
    return ArticleAnalysis(
        summary=article.description,
        category=article.category,
        country=article.country,
        mode="fallback",
    )


def reuse_analysis(duplicate: Article, article: RawArticle) -> ArticleAnalysis:
    """Copy the analysis of a stored semantic duplicate."""
    return ArticleAnalysis(
        summary=duplicate.summary or article.description,
        category=duplicate.category or article.category,
        sentiment=duplicate.sentiment or "Neutral",
        political_lean=duplicate.political_lean or "Center",
        trust_score=duplicate.trust_score if duplicate.trust_score is not None else 50,
        key_findings=list(duplicate.key_findings or []),
        cluster_topic=duplicate.cluster_topic or "",
        country=duplicate.country or article.country,
        mode="reused",
    )


class ArticleAnalyzer:
    """Runs full analysis, then basic analysis, then neutral defaults."""

    def __init__(self, chat: ChatCompletionClient):
        self.chat = chat

    def _full(self, article: RawArticle) -> ArticleAnalysis:
        data = self.chat.complete_json(FULL_ANALYSIS_INSTRUCTIONS, _format_article_for_prompt(article))
        parsed = _validate(FullAnalysisResponse, data)
        return ArticleAnalysis(
            summary=parsed.summary,
            category=parsed.category,
            sentiment=parsed.sentiment,
            political_lean=parsed.political_lean,
            trust_score=parsed.trust_score,
            key_findings=parsed.key_findings,
            cluster_topic=parsed.cluster_topic.strip(),
            country=parsed.country.strip() or article.country,
            mode="full",
        )

    def _basic(self, article: RawArticle) -> ArticleAnalysis:
        data = self.chat.complete_json(BASIC_ANALYSIS_INSTRUCTIONS, _format_article_for_prompt(article))
        parsed = _validate(BasicAnalysisResponse, data)
        return ArticleAnalysis(
            summary=parsed.summary,
            category=parsed.category,
            sentiment=parsed.sentiment,
            country=article.country,
            mode="basic",
        )

    def analyze(self, article: RawArticle) -> ArticleAnalysis:
        try:
            return self._full(article)
        except MalformedResponseError as e:
            logger.warning("Full analysis malformed for %s, trying basic: %s", article.url, e)
        except ProviderUnavailableError as e:
            logger.warning("Analysis provider unavailable for %s: %s", article.url, e)
            return fallback_analysis(article)

        try:
            return self._basic(article)
        except (MalformedResponseError, ProviderUnavailableError) as e:
            logger.warning("Basic analysis failed for %s, using defaults: %s", article.url, e)
            return fallback_analysis(article)
