"""Tests for rds_postgres.connection module."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from rds_postgres.connection import create_db_engine, create_session_factory, get_session, init_db
from rds_postgres.models import Article


def _article(url_hash: str) -> Article:
    return Article(
        url_hash=url_hash,
        url="https://www.reuters.com/a",
        source="Reuters",
        headline="Headline",
        published_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )


class TestConnection:
    def test_init_db_creates_tables(self) -> None:
        engine = create_db_engine("sqlite://")
        init_db(engine)
        assert {"articles", "narratives", "counters"} <= set(inspect(engine).get_table_names())
        engine.dispose()

    def test_get_session_rolls_back_on_error(self, session_factory) -> None:
        with pytest.raises(ValueError):
            with get_session(session_factory) as session:
                session.add(_article("abc"))
                session.flush()
                raise ValueError("boom")

        with get_session(session_factory) as session:
            assert session.query(Article).count() == 0

    def test_url_hash_is_unique(self, session_factory) -> None:
        with get_session(session_factory) as session:
            session.add(_article("abc"))
            session.commit()
            session.add(_article("abc"))
            with pytest.raises(IntegrityError):
                session.commit()

    def test_defaults_applied(self, engine) -> None:
        with get_session(create_session_factory(engine)) as session:
            article = _article("def")
            session.add(article)
            session.commit()
            assert article.is_latest is True
            assert article.country == "Global"
            assert article.created_at is not None
