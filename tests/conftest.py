"""Shared fixtures: fake Redis, in-memory database and article factories."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fakes import HEADLINES, LONG_DESCRIPTION, FakeClock, FakeRedis
from fetch_articles.models import RawArticle
from rds_postgres.models import Article, Base


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock(start=1_000_000.0)


@pytest.fixture
def fake_redis(fake_clock: FakeClock) -> FakeRedis:
    return FakeRedis(clock=fake_clock)


@pytest.fixture
def failing_redis() -> FakeRedis:
    return FakeRedis(fail=True)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def article_factory(session):
    """Insert stored articles with sensible defaults."""
    counter = {"n": 0}

    def create(**overrides) -> Article:
        counter["n"] += 1
        n = counter["n"]
        values = {
            "url_hash": f"hash-{n}",
            "url": f"https://news.example.com/story-{n}",
            "source": f"Source {n}",
            "headline": f"Stored headline number {n}",
            "summary": "Stored summary.",
            "category": "World",
            "country": "Global",
            "sentiment": "Neutral",
            "political_lean": "Center",
            "trust_score": 70,
            "key_findings": [],
            "analysis_mode": "full",
            "embedding": None,
            "cluster_id": 1,
            "cluster_topic": None,
            "is_latest": True,
            "published_at": datetime.now(timezone.utc) - timedelta(hours=1),
        }
        values.update(overrides)
        article = Article(**values)
        session.add(article)
        session.commit()
        return article

    return create


@pytest.fixture
def raw_article_factory():
    """Build RawArticle objects that pass the quality gate by default."""
    counter = {"n": 0}

    def create(**overrides) -> RawArticle:
        n = counter["n"]
        counter["n"] += 1
        values = {
            "title": HEADLINES[n % len(HEADLINES)],
            "description": LONG_DESCRIPTION,
            "url": f"https://www.reuters.com/world/story-{n}",
            "source": "Reuters",
            "published_at": datetime.now(timezone.utc) - timedelta(minutes=n + 1),
            "image_url": f"https://img.example.com/{n}.jpg",
            "category": "World",
            "country": "Global",
        }
        values.update(overrides)
        return RawArticle(**values)

    return create
