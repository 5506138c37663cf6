"""Synthesize a cross-source narrative for clusters that qualify."""

import logging
from datetime import datetime, timedelta
from typing import Callable

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from common.config import NarrativeConfig
from common.datetime import ensure_utc, utc_now
from common.llm import ChatCompletionClient
from generate_narratives.instructions import NARRATIVE_INSTRUCTIONS
from generate_narratives.models import NarrativeSynthesis
from rds_postgres.models import Article, Narrative
from resilience.errors import MalformedResponseError, ProviderUnavailableError

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
SKIPPED_FRESH = "fresh"
SKIPPED_FEW_ARTICLES = "too few articles"
SKIPPED_FEW_SOURCES = "too few sources"
SKIPPED_UNAVAILABLE = "provider unavailable"
SKIPPED_MALFORMED = "malformed response"


def _format_cluster_for_prompt(articles: list[Article]) -> str:
    """Format a cluster of articles into a text block for the LLM prompt."""
    lines = []
    for i, article in enumerate(articles, 1):
        lines.append(f"Article {i}:")
        lines.append(f"  Source: {article.source}")
        lines.append(f"  Headline: {article.headline}")
        if article.summary:
            lines.append(f"  Summary: {article.summary}")
        lines.append("")
    return "\n".join(lines)


def _distinct_sources(articles: list[Article]) -> list[str]:
    sources = []
    for article in articles:
        if article.source not in sources:
            sources.append(article.source)
    return sources


class NarrativeTrigger:
    def __init__(
        self,
        chat: ChatCompletionClient,
        config: NarrativeConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.chat = chat
        self.config = config or NarrativeConfig()
        self._clock = clock

    def _is_fresh(self, narrative: Narrative | None) -> bool:
        if narrative is None:
            return False
        age = self._clock() - ensure_utc(narrative.last_updated)
        return age < timedelta(hours=self.config.refresh_hours)

    def _synthesize(self, articles: list[Article]) -> NarrativeSynthesis:
        data = self.chat.complete_json(NARRATIVE_INSTRUCTIONS, _format_cluster_for_prompt(articles))
        try:
            return NarrativeSynthesis.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(f"Narrative validation failed: {e}") from e

    def process_cluster(self, session: Session, cluster_id: int) -> str:
        """Create or refresh the cluster's narrative when it qualifies.

        Requires ``min_articles`` stored articles from ``min_sources``
        distinct outlets, and no narrative younger than ``refresh_hours``.

        Returns:
            ``created``, ``updated``, or the reason the cluster was skipped.
        """
        if self._is_fresh(session.get(Narrative, cluster_id)):
            return SKIPPED_FRESH

        articles = (
            session.query(Article)
            .filter(Article.cluster_id == cluster_id)
            .order_by(Article.published_at.desc(), Article.id.desc())
            .limit(self.config.max_articles)
            .all()
        )
        if len(articles) < self.config.min_articles:
            return SKIPPED_FEW_ARTICLES

        sources = _distinct_sources(articles)
        if len(sources) < self.config.min_sources:
            return SKIPPED_FEW_SOURCES

        logger.info(
            "Synthesizing narrative for cluster %d (%d articles, %d sources)",
            cluster_id,
            len(articles),
            len(sources),
        )
        try:
            synthesis = self._synthesize(articles)
        except ProviderUnavailableError as e:
            logger.warning("Narrative skipped for cluster %d: %s", cluster_id, e)
            return SKIPPED_UNAVAILABLE
        except MalformedResponseError as e:
            logger.warning("Narrative for cluster %d malformed: %s", cluster_id, e)
            return SKIPPED_MALFORMED

        return self._upsert(session, cluster_id, synthesis, articles, sources)

    def _upsert(
        self,
        session: Session,
        cluster_id: int,
        synthesis: NarrativeSynthesis,
        articles: list[Article],
        sources: list[str],
    ) -> str:
        values = {
            "master_headline": synthesis.master_headline,
            "executive_summary": synthesis.executive_summary,
            "consensus_points": list(synthesis.consensus_points),
            "divergence_points": [point.model_dump() for point in synthesis.divergence_points],
            "source_count": len(articles),
            "sources": sources,
            "category": articles[0].category,
            "country": articles[0].country,
            "last_updated": self._clock(),
        }

        narrative = session.get(Narrative, cluster_id)
        if narrative is None:
            session.add(Narrative(cluster_id=cluster_id, **values))
            try:
                session.commit()
                logger.info("Created narrative for cluster %d", cluster_id)
                return CREATED
            except IntegrityError:
                session.rollback()
                logger.info("Narrative for cluster %d created concurrently, updating", cluster_id)
                narrative = session.get(Narrative, cluster_id)

        for field, value in values.items():
            setattr(narrative, field, value)
        session.commit()
        logger.info("Updated narrative for cluster %d", cluster_id)
        return UPDATED
