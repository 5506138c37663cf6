"""Fetch raw articles for the next feed cycles with provider fallback."""

import logging

from common.config import FetchConfig
from fetch_articles.fetch_cycles import FetchCycle, FetchCycleManager
from fetch_articles.models import RawArticle
from resilience.circuit_breaker import CircuitBreaker
from resilience.errors import ConfigurationError, ProviderUnavailableError
from resilience.guard import guarded_call
from resilience.key_manager import KeyManager

logger = logging.getLogger(__name__)


class ArticleFetcher:
    """Fetches headlines from a primary provider, falling back to a secondary.

    The fallback is used when the primary fails, returns fewer than
    ``min_primary_articles`` articles, or leaves the cycle with fewer than
    ``min_cycle_articles``.
    """

    def __init__(
        self,
        cycle_manager: FetchCycleManager,
        key_manager: KeyManager,
        breaker: CircuitBreaker,
        primary,
        fallback=None,
        config: FetchConfig | None = None,
    ):
        self.cycle_manager = cycle_manager
        self.key_manager = key_manager
        self.breaker = breaker
        self.primary = primary
        self.fallback = fallback
        self.config = config or FetchConfig()

    def _fetch_from(self, provider, cycle: FetchCycle) -> list[RawArticle] | None:
        """Return the provider's articles, or None when it could not be used."""
        try:
            return guarded_call(
                self.key_manager,
                self.breaker,
                provider.name,
                lambda key: provider.fetch(cycle, key),
            )
        except ConfigurationError as e:
            logger.warning("%s skipped: %s", provider.name, e)
        except ProviderUnavailableError as e:
            logger.error("%s failed for cycle %s: %s", provider.name, cycle.name, e)
        return None

    def fetch_cycle(self, cycle: FetchCycle) -> list[RawArticle]:
        articles: list[RawArticle] = []

        primary_articles = self._fetch_from(self.primary, cycle)
        needs_fallback = primary_articles is None
        if primary_articles is not None:
            articles.extend(primary_articles)
            if len(primary_articles) < self.config.min_primary_articles:
                logger.warning(
                    "%s returned low yield (%d) for %s",
                    self.primary.name,
                    len(primary_articles),
                    cycle.name,
                )
                needs_fallback = True

        if len(articles) < self.config.min_cycle_articles:
            needs_fallback = True

        if needs_fallback and self.fallback is not None:
            logger.info("Engaging %s fallback for %s", self.fallback.name, cycle.name)
            fallback_articles = self._fetch_from(self.fallback, cycle)
            if fallback_articles:
                articles.extend(fallback_articles)

        return articles

    def fetch(self, cycles: int | None = None) -> list[RawArticle]:
        """Advance the cycle counter ``cycles`` times and collect every article."""
        cycles = cycles if cycles is not None else self.config.cycles_per_run
        articles: list[RawArticle] = []
        for i in range(cycles):
            cycle = self.cycle_manager.next_cycle()
            logger.info("News cycle (%d/%d): %s", i + 1, cycles, cycle.name)
            articles.extend(self.fetch_cycle(cycle))

        if not articles:
            logger.warning("No articles fetched in this run")
        else:
            logger.info("Fetched %d raw articles", len(articles))
        return articles
