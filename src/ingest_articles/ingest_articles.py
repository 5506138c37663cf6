"""Fetch, filter, analyze, cluster and store one batch of news articles."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from analyze_articles.analyze_articles import reuse_analysis
from common.hashing import normalize_url
from compute_embeddings.compute_embeddings import build_text_to_embed
from feed_visibility.optimize_feed import optimize_cluster_feed
from fetch_articles.models import RawArticle
from ingest_articles.models import DUPLICATE, FAILED, PERSISTED, CycleReport, ProcessedArticle
from ingest_articles.services import PipelineServices
from rds_postgres.connection import get_session
from rds_postgres.models import Article
from resilience.errors import ConfigurationError, MalformedResponseError, ProviderUnavailableError

logger = logging.getLogger(__name__)


def _outcome(article: RawArticle, status: str, **kwargs) -> ProcessedArticle:
    return ProcessedArticle(
        url_hash=article.url_hash,
        url=article.url,
        headline=article.title,
        source=article.source,
        published_at=article.published_at,
        status=status,
        **kwargs,
    )


class IngestionPipeline:
    def __init__(self, services: PipelineServices):
        self.services = services
        self.config = services.config

    def _text_to_embed(self, article: RawArticle) -> str:
        return build_text_to_embed(article, self.config.embedding.max_description_chars)

    def _embed_fallback(self, article: RawArticle) -> list[float] | None:
        try:
            return self.services.embedder.embed_one(self._text_to_embed(article))
        except (ProviderUnavailableError, MalformedResponseError) as e:
            logger.warning("No embedding for %s, clustering by metadata: %s", article.url, e)
            return None

    def run_cycle(self, cycles: int | None = None) -> CycleReport:
        """Run one ingestion pass over the next fetch cycles."""
        services = self.services
        raw_articles = services.fetcher.fetch(cycles)
        report = CycleReport(fetched=len(raw_articles))
        if not raw_articles:
            return report

        accepted = services.quality_gate.filter_batch(raw_articles)
        report.accepted = len(accepted)
        if not accepted:
            return report

        with get_session(services.session_factory) as session:
            fresh = services.seen_filter.filter(session, accepted)
            report.fresh = len(fresh)
            if not fresh:
                logger.info("No new articles this cycle")
                return report

            embeddings = services.embedder.embed_batch([self._text_to_embed(a) for a in fresh])
            for article, embedding in zip(fresh, embeddings):
                report.records.append(self.process_article(session, article, embedding))

        logger.info(
            "Cycle complete: %d fetched, %d accepted, %d new, %d persisted, %d duplicate, %d failed",
            report.fetched,
            report.accepted,
            report.fresh,
            report.persisted,
            report.count(DUPLICATE),
            report.count(FAILED),
        )
        return report

    def process_article(
        self,
        session: Session,
        article: RawArticle,
        embedding: list[float] | None = None,
    ) -> ProcessedArticle:
        """Analyze, cluster and persist one claimed article.

        Failures are logged and the claim released so another worker can
        retry; they do not stop the batch.
        """
        try:
            outcome = self._persist(session, article, embedding)
        except ConfigurationError:
            self.services.seen_filter.release(article.url_hash)
            raise
        except Exception:
            session.rollback()
            self.services.seen_filter.release(article.url_hash)
            logger.exception("Failed to process %s", article.url)
            return _outcome(article, FAILED)

        if outcome.status == PERSISTED:
            self._after_persist(article, outcome.cluster_id)
        return outcome

    def _after_persist(self, article: RawArticle, cluster_id: int) -> None:
        """Steps that run once the article row is committed and must not undo it."""
        self.services.seen_filter.commit(article.url_hash)
        try:
            self.services.narrative_scheduler.schedule(cluster_id)
        except RuntimeError as e:
            logger.error("Could not queue narrative check for cluster %d: %s", cluster_id, e)

    def _persist(
        self,
        session: Session,
        article: RawArticle,
        embedding: list[float] | None,
    ) -> ProcessedArticle:
        services = self.services
        if embedding is None:
            embedding = self._embed_fallback(article)

        duplicate = services.assigner.find_semantic_duplicate(session, embedding, article.country)
        if duplicate is not None:
            analysis = reuse_analysis(duplicate, article)
        else:
            analysis = services.analyzer.analyze(article)

        match = services.assigner.assign(
            session,
            embedding=embedding,
            category=analysis.category,
            country=analysis.country,
            cluster_topic=analysis.cluster_topic,
        )

        session.add(
            Article(
                url_hash=article.url_hash,
                url=normalize_url(article.url),
                source=article.source,
                headline=article.title,
                summary=analysis.summary,
                image_url=article.image_url,
                category=analysis.category,
                country=analysis.country,
                political_lean=analysis.political_lean,
                sentiment=analysis.sentiment,
                trust_score=analysis.trust_score,
                key_findings=analysis.key_findings,
                analysis_mode=analysis.mode,
                embedding=embedding,
                cluster_id=match.cluster_id,
                cluster_topic=analysis.cluster_topic or None,
                is_latest=True,
                published_at=article.published_at,
            )
        )
        try:
            session.flush()
        except IntegrityError:
            session.rollback()
            logger.info("Article %s stored by another worker, skipping", article.url)
            services.seen_filter.commit(article.url_hash)
            return _outcome(article, DUPLICATE)

        # The new row and the cluster's visibility flags commit together.
        optimize_cluster_feed(session, match.cluster_id, commit=False)
        session.commit()

        return _outcome(
            article,
            PERSISTED,
            cluster_id=match.cluster_id,
            cluster_tier=match.tier,
            analysis_mode=analysis.mode,
            has_embedding=embedding is not None,
        )
