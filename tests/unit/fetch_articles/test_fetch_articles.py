"""Tests for fetch_articles.fetch_articles module."""

from unittest.mock import MagicMock

import pytest

from common.config import FetchConfig
from fakes import HttpError
from fetch_articles.fetch_articles import ArticleFetcher
from fetch_articles.fetch_cycles import FETCH_CYCLES, FetchCycleManager
from resilience.circuit_breaker import CircuitBreaker
from resilience.key_manager import KeyManager


def _provider(name: str, result=None, error: Exception | None = None) -> MagicMock:
    provider = MagicMock()
    provider.name = name
    if error is not None:
        provider.fetch.side_effect = error
    else:
        provider.fetch.return_value = result or []
    return provider


@pytest.fixture
def key_manager(fake_redis) -> KeyManager:
    km = KeyManager(fake_redis)
    km.register_provider_keys("GNEWS", ["g1"])
    km.register_provider_keys("NEWS_API", ["n1"])
    return km


def _fetcher(fake_redis, key_manager, primary, fallback=None) -> ArticleFetcher:
    return ArticleFetcher(
        FetchCycleManager(fake_redis),
        key_manager,
        CircuitBreaker(fake_redis),
        primary,
        fallback,
        FetchConfig(min_primary_articles=2),
    )


class TestArticleFetcher:
    def test_primary_only_when_yield_is_enough(self, fake_redis, key_manager, raw_article_factory) -> None:
        primary = _provider("GNEWS", [raw_article_factory() for _ in range(5)])
        fallback = _provider("NEWS_API", [raw_article_factory()])
        fetcher = _fetcher(fake_redis, key_manager, primary, fallback)

        articles = fetcher.fetch_cycle(FETCH_CYCLES[0])

        assert len(articles) == 5
        fallback.fetch.assert_not_called()
        primary.fetch.assert_called_once_with(FETCH_CYCLES[0], "g1")

    def test_low_yield_adds_fallback_articles(self, fake_redis, key_manager, raw_article_factory) -> None:
        primary = _provider("GNEWS", [raw_article_factory()])
        fallback = _provider("NEWS_API", [raw_article_factory(), raw_article_factory()])
        fetcher = _fetcher(fake_redis, key_manager, primary, fallback)

        assert len(fetcher.fetch_cycle(FETCH_CYCLES[1])) == 3
        fallback.fetch.assert_called_once_with(FETCH_CYCLES[1], "n1")

    def test_small_cycle_adds_fallback_articles(self, fake_redis, key_manager, raw_article_factory) -> None:
        primary = _provider("GNEWS", [raw_article_factory() for _ in range(3)])
        fallback = _provider("NEWS_API", [raw_article_factory(), raw_article_factory()])
        fetcher = _fetcher(fake_redis, key_manager, primary, fallback)

        assert len(fetcher.fetch_cycle(FETCH_CYCLES[2])) == 5
        fallback.fetch.assert_called_once_with(FETCH_CYCLES[2], "n1")

    def test_primary_failure_uses_fallback(self, fake_redis, key_manager, raw_article_factory) -> None:
        primary = _provider("GNEWS", error=HttpError(500))
        fallback = _provider("NEWS_API", [raw_article_factory()])
        fetcher = _fetcher(fake_redis, key_manager, primary, fallback)

        assert len(fetcher.fetch_cycle(FETCH_CYCLES[0])) == 1
        assert fake_redis.get("breaker:fail:GNEWS") == "1"

    def test_both_failing_returns_empty(self, fake_redis, key_manager) -> None:
        primary = _provider("GNEWS", error=HttpError(500))
        fallback = _provider("NEWS_API", error=HttpError(429))
        fetcher = _fetcher(fake_redis, key_manager, primary, fallback)

        assert fetcher.fetch_cycle(FETCH_CYCLES[0]) == []

    def test_open_circuit_skips_primary(self, fake_redis, key_manager, raw_article_factory) -> None:
        fake_redis.set("breaker:open:GNEWS", "1", ex=1800)
        primary = _provider("GNEWS", [raw_article_factory()])
        fallback = _provider("NEWS_API", [raw_article_factory()])
        fetcher = _fetcher(fake_redis, key_manager, primary, fallback)

        assert len(fetcher.fetch_cycle(FETCH_CYCLES[0])) == 1
        primary.fetch.assert_not_called()

    def test_missing_keys_skip_provider(self, fake_redis, raw_article_factory) -> None:
        km = KeyManager(fake_redis)
        km.register_provider_keys("NEWS_API", ["n1"])
        primary = _provider("GNEWS", [raw_article_factory()])
        fallback = _provider("NEWS_API", [raw_article_factory()])
        fetcher = _fetcher(fake_redis, km, primary, fallback)

        assert len(fetcher.fetch_cycle(FETCH_CYCLES[0])) == 1
        primary.fetch.assert_not_called()

    def test_fetch_advances_cycles(self, fake_redis, key_manager, raw_article_factory) -> None:
        primary = _provider("GNEWS", [raw_article_factory(), raw_article_factory()])
        fetcher = _fetcher(fake_redis, key_manager, primary)

        articles = fetcher.fetch(cycles=2)

        assert len(articles) == 4
        cycles = [call.args[0] for call in primary.fetch.call_args_list]
        assert cycles == [FETCH_CYCLES[0], FETCH_CYCLES[1]]

    def test_fetch_defaults_to_configured_cycles(self, fake_redis, key_manager) -> None:
        primary = _provider("GNEWS", [])
        fetcher = _fetcher(fake_redis, key_manager, primary)

        assert fetcher.fetch() == []
        assert primary.fetch.call_count == 2
