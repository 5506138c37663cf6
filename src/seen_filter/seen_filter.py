"""Cross-worker deduplication: Redis claim, store check, then seen marker."""

import logging
from collections.abc import Iterable

from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from common.config import SeenFilterConfig
from fetch_articles.models import RawArticle
from rds_postgres.models import Article

logger = logging.getLogger(__name__)

SEEN_PREFIX = "NEWS:SEEN:"
PROCESSING = "processing"
SEEN = "1"


class SeenFilter:
    """Makes sure each URL is processed by at most one worker at a time.

    1. ``claim`` sets a short-lived ``processing`` marker with SET NX. Only
       the worker that wins the SET keeps the article.
    2. ``filter_existing`` drops claimed articles already in the store.
    3. ``commit`` swaps the claim for a long-lived ``seen`` marker once the
       article is persisted.

    A worker that dies between claim and commit leaves only the short
    marker, which expires and lets another worker retry.
    """

    def __init__(self, redis_client, config: SeenFilterConfig | None = None):
        self.redis = redis_client
        self.config = config or SeenFilterConfig()

    @staticmethod
    def key(url_hash: str) -> str:
        return f"{SEEN_PREFIX}{url_hash}"

    def claim(self, articles: list[RawArticle]) -> list[RawArticle]:
        claimed = []
        for article in articles:
            try:
                acquired = self.redis.set(
                    self.key(article.url_hash),
                    PROCESSING,
                    nx=True,
                    ex=self.config.claim_ttl_seconds,
                )
            except RedisError as e:
                # The store check and the url_hash unique constraint still apply.
                logger.warning("Seen marker unavailable for %s, keeping it: %s", article.url, e)
                claimed.append(article)
                continue
            if acquired:
                claimed.append(article)
            else:
                logger.debug("Already claimed or seen: %s", article.url)

        logger.info("Claimed %d of %d articles", len(claimed), len(articles))
        return claimed

    def filter_existing(self, session: Session, articles: list[RawArticle]) -> list[RawArticle]:
        """Drop articles whose url_hash is already stored, in one query."""
        if not articles:
            return []
        hashes = [article.url_hash for article in articles]
        existing = {
            row.url_hash
            for row in session.query(Article.url_hash).filter(Article.url_hash.in_(hashes)).all()
        }
        if existing:
            logger.info("Dropping %d articles already in the store", len(existing))
            self.commit_many(existing)
        return [article for article in articles if article.url_hash not in existing]

    def filter(self, session: Session, articles: list[RawArticle]) -> list[RawArticle]:
        return self.filter_existing(session, self.claim(articles))

    def commit(self, url_hash: str) -> None:
        try:
            self.redis.set(self.key(url_hash), SEEN, ex=self.config.seen_ttl_seconds)
        except RedisError as e:
            logger.warning("Could not mark %s as seen: %s", url_hash, e)

    def commit_many(self, url_hashes: Iterable[str]) -> None:
        try:
            pipe = self.redis.pipeline()
            for url_hash in url_hashes:
                pipe.set(self.key(url_hash), SEEN, ex=self.config.seen_ttl_seconds)
            pipe.execute()
        except RedisError as e:
            logger.warning("Could not mark articles as seen: %s", e)

    def release(self, url_hash: str) -> None:
        """Drop a claim so another worker can retry the article straight away."""
        try:
            self.redis.delete(self.key(url_hash))
        except RedisError as e:
            logger.warning("Could not release claim on %s: %s", url_hash, e)
