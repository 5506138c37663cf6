"""Tests for ingest_articles.ingest_articles module."""

import math
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import func
from sqlalchemy.exc import OperationalError

from common.config import EmbeddingConfig, PipelineConfig
from common.hashing import generate_url_hash
from fakes import (
    HEADLINES,
    LONG_DESCRIPTION,
    FakeCompletions,
    FakeEmbeddings,
    FakeOpenAI,
    unit_vector,
)
from ingest_articles.ingest_articles import IngestionPipeline
from ingest_articles.models import DUPLICATE, FAILED, PERSISTED
from ingest_articles.services import build_services
from rds_postgres.models import Article
from resilience.errors import ConfigurationError
from seen_filter.seen_filter import SEEN, SeenFilter

NEAR_DUPLICATE = HEADLINES[1] + " data"
JUNK_HEADLINE = "Weekly horoscope predicts big changes for every zodiac sign"
TOPIC_HEADLINES = (HEADLINES[5], HEADLINES[7])

VECTORS = {
    HEADLINES[1]: unit_vector(1.0),
    HEADLINES[2]: unit_vector(0.85, math.sqrt(1 - 0.85**2)),
    HEADLINES[3]: unit_vector(0.0, 1.0),
    HEADLINES[4]: unit_vector(0.0, 0.0, 1.0),
    HEADLINES[5]: unit_vector(0.0, 0.0, 0.0, 1.0),
    HEADLINES[6]: unit_vector(0.0, 1.0),
}


def _gnews_item(i: int, title: str, now: datetime) -> dict:
    return {
        "title": title,
        "description": LONG_DESCRIPTION,
        "url": f"https://www.reuters.com/world/item-{i}",
        "image": f"https://img.reuters.com/{i}.jpg",
        "publishedAt": (now - timedelta(minutes=i + 1)).isoformat(),
        "source": {"name": "Reuters"},
    }


def _payload(now: datetime) -> dict:
    titles = list(HEADLINES[:8]) + [NEAR_DUPLICATE, JUNK_HEADLINE]
    return {"articles": [_gnews_item(i, title, now) for i, title in enumerate(titles)]}


def _vector_for(text: str) -> list[float] | None:
    for headline, vector in VECTORS.items():
        if text.startswith(headline):
            return vector
    return None


def _analysis_reply(kwargs: dict) -> dict:
    content = kwargs["messages"][1]["content"]
    shares_topic = any(headline in content for headline in TOPIC_HEADLINES)
    return {
        "summary": "A neutral summary of the reported events.",
        "category": "Business" if shares_topic else "World",
        "political_lean": "Center",
        "sentiment": "Neutral",
        "trust_score": 75,
        "key_findings": ["Finding one", "Finding two"],
        "cluster_topic": "Trade disruption" if shares_topic else "",
        "country": "Global",
    }


def _services(fake_redis, session_factory, payload=None, completions=None, embeddings=None):
    config = PipelineConfig(
        embedding=EmbeddingConfig(chunk_delay_seconds=0),
        gnews_api_keys=["gnews-key"],
        openai_api_keys=["sk-test"],
    )
    http_session = MagicMock()
    http_session.get.return_value.json.return_value = payload or {"articles": []}
    fake_openai = FakeOpenAI(
        embeddings=embeddings or FakeEmbeddings(_vector_for, fail_single=True),
        completions=completions or FakeCompletions(_analysis_reply),
    )
    services = build_services(
        config,
        redis_client=fake_redis,
        session_factory=session_factory,
        openai_client_factory=lambda key: fake_openai,
        http_session=http_session,
    )
    services.narrative_scheduler.shutdown()
    services.narrative_scheduler = MagicMock()
    return services, fake_openai


class TestRunCycle:
    def test_end_to_end_cycle(self, fake_redis, session_factory, session, article_factory) -> None:
        now = datetime.now(timezone.utc)
        payload = _payload(now)
        stored_url = payload["articles"][0]["url"]
        article_factory(url_hash=generate_url_hash(stored_url), url=stored_url, cluster_id=1)
        services, fake_openai = _services(fake_redis, session_factory, payload)

        report = IngestionPipeline(services).run_cycle(1)

        assert report.fetched == 10
        assert report.accepted == 8
        assert report.fresh == 7
        assert report.persisted == 7

        by_headline = {record.headline: record for record in report.records}
        assert set(by_headline) == set(HEADLINES[1:8])
        assert by_headline[HEADLINES[1]].cluster_tier == "new"
        assert by_headline[HEADLINES[2]].cluster_tier == "vector"
        assert by_headline[HEADLINES[2]].cluster_id == by_headline[HEADLINES[1]].cluster_id
        assert by_headline[HEADLINES[6]].analysis_mode == "reused"
        assert by_headline[HEADLINES[6]].cluster_id == by_headline[HEADLINES[3]].cluster_id
        assert by_headline[HEADLINES[7]].has_embedding is False
        assert by_headline[HEADLINES[7]].cluster_tier == "metadata"
        assert by_headline[HEADLINES[7]].cluster_id == by_headline[HEADLINES[5]].cluster_id
        assert len(report.cluster_ids) == 4
        assert 1 not in report.cluster_ids

        assert len(fake_openai.chat.completions.calls) == 6
        assert services.narrative_scheduler.schedule.call_count == 7

        session.expire_all()
        assert session.query(Article).count() == 8
        for cluster_id in report.cluster_ids:
            latest = (
                session.query(func.count(Article.id))
                .filter(Article.cluster_id == cluster_id, Article.is_latest.is_(True))
                .scalar()
            )
            assert latest == 1
        latest_headline = (
            session.query(Article.headline)
            .filter(Article.cluster_id == by_headline[HEADLINES[1]].cluster_id, Article.is_latest.is_(True))
            .scalar()
        )
        assert latest_headline == HEADLINES[1]

        for record in report.records:
            assert fake_redis.get(SeenFilter.key(record.url_hash)) == SEEN

    def test_second_run_skips_seen_articles(self, fake_redis, session_factory) -> None:
        payload = _payload(datetime.now(timezone.utc))
        services, fake_openai = _services(fake_redis, session_factory, payload)
        pipeline = IngestionPipeline(services)
        pipeline.run_cycle(1)
        calls = len(fake_openai.chat.completions.calls)

        report = pipeline.run_cycle(1)

        assert report.accepted == 8
        assert report.fresh == 0
        assert report.records == []
        assert len(fake_openai.chat.completions.calls) == calls

    def test_nothing_fetched(self, fake_redis, session_factory) -> None:
        services, _ = _services(fake_redis, session_factory)
        report = IngestionPipeline(services).run_cycle(1)
        assert report.fetched == 0
        assert report.records == []


class TestProcessArticle:
    def test_persists_with_fallback_analysis(self, fake_redis, session_factory, session, raw_article_factory) -> None:
        fake_redis.set("breaker:open:OPENAI", "1", ex=1800)
        services, _ = _services(fake_redis, session_factory)
        article = raw_article_factory()

        record = IngestionPipeline(services).process_article(session, article)

        assert record.status == PERSISTED
        assert record.analysis_mode == "fallback"
        assert record.cluster_tier == "new"
        stored = session.query(Article).filter(Article.url_hash == article.url_hash).one()
        assert stored.trust_score == 50
        assert stored.embedding is None
        assert stored.is_latest is True

    def test_already_stored_is_duplicate(self, fake_redis, session_factory, session, article_factory, raw_article_factory) -> None:
        services, _ = _services(fake_redis, session_factory)
        article = raw_article_factory()
        article_factory(url_hash=article.url_hash)

        record = IngestionPipeline(services).process_article(session, article, unit_vector(1.0))

        assert record.status == DUPLICATE
        assert fake_redis.get(SeenFilter.key(article.url_hash)) == SEEN
        assert session.query(Article).count() == 1
        services.narrative_scheduler.schedule.assert_not_called()

    def test_unexpected_error_releases_claim(self, fake_redis, session_factory, session, raw_article_factory) -> None:
        services, _ = _services(fake_redis, session_factory)
        services.analyzer = MagicMock()
        services.analyzer.analyze.side_effect = RuntimeError("boom")
        article = raw_article_factory()
        services.seen_filter.claim([article])

        record = IngestionPipeline(services).process_article(session, article, unit_vector(1.0))

        assert record.status == FAILED
        assert fake_redis.get(SeenFilter.key(article.url_hash)) is None
        assert session.query(Article).count() == 0

    def test_configuration_error_propagates(self, fake_redis, session_factory, session, raw_article_factory) -> None:
        services, _ = _services(fake_redis, session_factory)
        services.analyzer = MagicMock()
        services.analyzer.analyze.side_effect = ConfigurationError("No API keys configured for OPENAI")
        article = raw_article_factory()
        services.seen_filter.claim([article])

        with pytest.raises(ConfigurationError):
            IngestionPipeline(services).process_article(session, article, unit_vector(1.0))
        assert fake_redis.get(SeenFilter.key(article.url_hash)) is None

    @patch("ingest_articles.ingest_articles.optimize_cluster_feed")
    def test_failed_visibility_update_rolls_back_article(
        self, mock_optimize, fake_redis, session_factory, session, article_factory, raw_article_factory
    ) -> None:
        mock_optimize.side_effect = OperationalError("update", {}, Exception("db down"))
        stored = article_factory(cluster_id=7, embedding=unit_vector(1.0))
        services, _ = _services(fake_redis, session_factory)
        article = raw_article_factory()
        services.seen_filter.claim([article])

        record = IngestionPipeline(services).process_article(session, article, unit_vector(1.0))

        assert record.status == FAILED
        assert fake_redis.get(SeenFilter.key(article.url_hash)) is None
        session.expire_all()
        assert session.query(Article).filter(Article.url_hash == article.url_hash).count() == 0
        latest = session.query(Article.id).filter(Article.cluster_id == 7, Article.is_latest.is_(True)).all()
        assert [row.id for row in latest] == [stored.id]
        services.narrative_scheduler.schedule.assert_not_called()

    def test_new_article_replaces_latest_in_cluster(
        self, fake_redis, session_factory, session, article_factory, raw_article_factory
    ) -> None:
        stored = article_factory(cluster_id=7, embedding=unit_vector(1.0))
        services, _ = _services(fake_redis, session_factory)
        article = raw_article_factory()

        record = IngestionPipeline(services).process_article(session, article, unit_vector(1.0))

        assert record.status == PERSISTED
        assert record.cluster_id == 7
        session.expire_all()
        assert session.get(Article, stored.id).is_latest is False
        latest = session.query(Article.url_hash).filter(Article.cluster_id == 7, Article.is_latest.is_(True)).all()
        assert [row.url_hash for row in latest] == [article.url_hash]

    def test_scheduler_error_keeps_persisted_article(
        self, fake_redis, session_factory, session, raw_article_factory
    ) -> None:
        services, _ = _services(fake_redis, session_factory)
        services.narrative_scheduler.schedule.side_effect = RuntimeError("cannot schedule new futures after shutdown")
        article = raw_article_factory()
        services.seen_filter.claim([article])

        record = IngestionPipeline(services).process_article(session, article, unit_vector(1.0))

        assert record.status == PERSISTED
        assert fake_redis.get(SeenFilter.key(article.url_hash)) == SEEN
        assert session.query(Article).filter(Article.url_hash == article.url_hash).count() == 1
