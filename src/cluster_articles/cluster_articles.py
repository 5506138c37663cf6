"""Assign incoming articles to story clusters."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import numpy as np
from redis.exceptions import RedisError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cluster_articles.models import ClusterMatch, MetadataMatch, NewCluster, VectorMatch
from common.config import ClusteringConfig
from common.datetime import utc_now
from rds_postgres.models import Article, Counter

logger = logging.getLogger(__name__)

CLUSTER_COUNTER_KEY = "GLOBAL_CLUSTER_ID"


def _coerce_embedding(value: Any) -> list[float] | None:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return None
        if isinstance(parsed, list):
            return [float(v) for v in parsed]
        return None
    if hasattr(value, "tolist"):
        try:
            return [float(v) for v in value.tolist()]
        except TypeError:
            return None
    if isinstance(value, (list, tuple)):
        return [float(v) for v in value]
    return None


def _prepare_embeddings(articles: list[Article], dimensions: int) -> tuple[np.ndarray, list[Article]]:
    """Stack candidate embeddings, skipping empty or wrong-sized vectors."""
    vectors = []
    kept = []
    for article in articles:
        embedding = _coerce_embedding(article.embedding)
        if not embedding or len(embedding) != dimensions:
            continue
        vectors.append(embedding)
        kept.append(article)

    if not vectors:
        return np.empty((0, dimensions), dtype="float32"), []

    return np.asarray(vectors, dtype="float32"), kept


def _cosine_similarities(vector: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(vector)
    dots = matrix @ vector
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)


class ClusterAssigner:
    """Places an article in an existing cluster or mints a new cluster id.

    Tiers, first hit wins:
      1. nearest stored article in the same country within the window, if
         cosine similarity reaches ``vector_threshold``;
      2. latest article in the window with the same cluster topic,
         category and country;
      3. a new id from the Redis counter (advanced past the store's max id
         after a wipe and past ids the durable counter row issued during an
         outage), else the durable counter row, else the wall clock.
    """

    def __init__(
        self,
        redis_client,
        config: ClusteringConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.redis = redis_client
        self.config = config or ClusteringConfig()
        self._clock = clock

    def _nearest(
        self,
        session: Session,
        embedding: list[float],
        country: str,
        since: datetime,
    ) -> tuple[Article, float] | None:
        candidates = (
            session.query(Article)
            .filter(
                Article.country == country,
                Article.published_at >= since,
                Article.embedding.isnot(None),
                Article.cluster_id.isnot(None),
            )
            .order_by(Article.published_at.desc())
            .limit(self.config.max_candidates)
            .all()
        )
        matrix, kept = _prepare_embeddings(candidates, len(embedding))
        if not kept:
            return None

        similarities = _cosine_similarities(np.asarray(embedding, dtype="float32"), matrix)
        best = int(np.argmax(similarities))
        return kept[best], float(similarities[best])

    def find_vector_match(
        self,
        session: Session,
        embedding: list[float],
        country: str,
    ) -> VectorMatch | None:
        since = self._clock() - timedelta(days=self.config.window_days)
        nearest = self._nearest(session, embedding, country, since)
        if nearest is None:
            return None
        article, similarity = nearest
        if similarity < self.config.vector_threshold:
            logger.debug("Nearest article %d too far (%.3f)", article.id, similarity)
            return None
        return VectorMatch(cluster_id=article.cluster_id, article_id=article.id, similarity=similarity)

    def find_semantic_duplicate(
        self,
        session: Session,
        embedding: list[float] | None,
        country: str,
    ) -> Article | None:
        """Return a stored article from the last day that says the same thing."""
        if not embedding:
            return None
        since = self._clock() - timedelta(hours=self.config.duplicate_window_hours)
        nearest = self._nearest(session, embedding, country, since)
        if nearest is None:
            return None
        article, similarity = nearest
        if similarity < self.config.duplicate_threshold:
            return None
        logger.info("Semantic duplicate of article %d (%.3f)", article.id, similarity)
        return article

    def find_metadata_match(
        self,
        session: Session,
        cluster_topic: str,
        category: str,
        country: str,
    ) -> MetadataMatch | None:
        since = self._clock() - timedelta(days=self.config.window_days)
        article = (
            session.query(Article)
            .filter(
                Article.cluster_topic == cluster_topic,
                Article.category == category,
                Article.country == country,
                Article.published_at >= since,
                Article.cluster_id.isnot(None),
            )
            .order_by(Article.published_at.desc(), Article.id.desc())
            .first()
        )
        if article is None:
            return None
        return MetadataMatch(cluster_id=article.cluster_id, article_id=article.id)

    @staticmethod
    def _store_max(session: Session) -> int:
        return session.query(func.max(Article.cluster_id)).scalar() or 0

    @staticmethod
    def _durable_value(session: Session) -> int:
        return (
            session.query(Counter.value).filter(Counter.name == CLUSTER_COUNTER_KEY).scalar() or 0
        )

    def _allocate_durable(self, session: Session) -> NewCluster:
        """Mint an id from the counters table, past anything already stored."""
        try:
            store_max = self._store_max(session)
            counter = session.get(Counter, CLUSTER_COUNTER_KEY, with_for_update=True)
            if counter is None:
                counter = Counter(name=CLUSTER_COUNTER_KEY, value=0)
                session.add(counter)
            counter.value = max(counter.value or 0, store_max) + 1
            session.commit()
            return NewCluster(cluster_id=counter.value, source="durable")
        except SQLAlchemyError as e:
            session.rollback()
            cluster_id = int(self._clock().timestamp())
            logger.error("Durable cluster counter failed, using clock id %d: %s", cluster_id, e)
            return NewCluster(cluster_id=cluster_id, source="clock")

    def allocate_cluster_id(self, session: Session) -> NewCluster:
        try:
            cluster_id = int(self.redis.incr(CLUSTER_COUNTER_KEY))
        except RedisError as e:
            logger.warning("Cluster counter unavailable, using durable counter: %s", e)
            return self._allocate_durable(session)

        # Ids minted by the durable counter during a Redis outage sit above
        # the Redis value; a wiped counter sits below the stored max.
        issued_max = self._durable_value(session)
        if cluster_id < self.config.gap_recovery_floor:
            issued_max = max(issued_max, self._store_max(session))
        if issued_max < cluster_id:
            return NewCluster(cluster_id=cluster_id, source="counter")

        # INCRBY keeps concurrent recoveries from handing out the same id.
        try:
            recovered = int(self.redis.incrby(CLUSTER_COUNTER_KEY, issued_max + 1 - cluster_id))
        except RedisError as e:
            logger.warning("Cluster counter lost during recovery, using durable counter: %s", e)
            return self._allocate_durable(session)
        logger.warning(
            "Cluster counter at %d behind issued max %d, advanced to %d",
            cluster_id,
            issued_max,
            recovered,
        )
        return NewCluster(cluster_id=recovered, source="recovered")

    def assign(
        self,
        session: Session,
        *,
        embedding: list[float] | None,
        category: str,
        country: str,
        cluster_topic: str | None,
    ) -> ClusterMatch:
        if embedding:
            match = self.find_vector_match(session, embedding, country)
            if match is not None:
                logger.info("Vector match: cluster %d (%.3f)", match.cluster_id, match.similarity)
                return match

        if cluster_topic:
            match = self.find_metadata_match(session, cluster_topic, category, country)
            if match is not None:
                logger.info("Metadata match: cluster %d (%s)", match.cluster_id, cluster_topic)
                return match

        new_cluster = self.allocate_cluster_id(session)
        logger.info("New cluster %d (%s)", new_cluster.cluster_id, new_cluster.source)
        return new_cluster
