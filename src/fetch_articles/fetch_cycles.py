"""Round-robin rotation over the fixed set of feed queries."""

import logging
import random
from dataclasses import dataclass, field

from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

CYCLE_INDEX_KEY = "SYSTEM:NEWS_CYCLE_INDEX"
CYCLE_INDEX_RESET_AFTER = 10000


@dataclass(frozen=True)
class FetchCycle:
    """One feed query: GNews params, the NewsAPI equivalent, and labels."""

    name: str
    gnews_params: dict[str, str] = field(default_factory=dict)
    newsapi_params: dict[str, str] = field(default_factory=dict)
    category: str = "General"
    country: str = "Global"


FETCH_CYCLES: tuple[FetchCycle, ...] = (
    FetchCycle(
        name="General & World",
        gnews_params={"topic": "breaking-news"},
        newsapi_params={"category": "general"},
        category="World",
    ),
    FetchCycle(
        name="Technology & Science",
        gnews_params={"topic": "technology"},
        newsapi_params={"category": "technology"},
        category="Technology",
    ),
    FetchCycle(
        name="Business & Economy",
        gnews_params={"topic": "business"},
        newsapi_params={"category": "business"},
        category="Business",
    ),
    FetchCycle(
        name="Nation (India)",
        gnews_params={"country": "in"},
        newsapi_params={"country": "in"},
        category="Politics",
        country="India",
    ),
    FetchCycle(
        name="Entertainment",
        gnews_params={"topic": "entertainment"},
        newsapi_params={"category": "entertainment"},
        category="Entertainment",
    ),
)


class FetchCycleManager:
    """Picks the next fetch cycle using a shared Redis counter.

    INCR is atomic, so concurrent workers each get a distinct slot and the
    cycles are visited fairly. Without Redis a random cycle is chosen.
    """

    def __init__(self, redis_client, cycles=FETCH_CYCLES, rng: random.Random | None = None):
        if not cycles:
            raise ValueError("At least one fetch cycle is required")
        self.redis = redis_client
        self.cycles = tuple(cycles)
        self._rng = rng or random.Random()

    def next_index(self) -> int:
        try:
            value = self.redis.incr(CYCLE_INDEX_KEY)
            if value > CYCLE_INDEX_RESET_AFTER:
                self.redis.set(CYCLE_INDEX_KEY, 0)
            return (value - 1) % len(self.cycles)
        except RedisError as e:
            logger.warning("Cycle counter unavailable, picking a random cycle: %s", e)
            return self._rng.randrange(len(self.cycles))

    def next_cycle(self) -> FetchCycle:
        return self.cycles[self.next_index()]
