"""Construction of the pipeline's shared clients and components."""

import logging
from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from analyze_articles.analyze_articles import ArticleAnalyzer
from cluster_articles.cluster_articles import ClusterAssigner
from common.cache import create_redis_client
from common.config import PipelineConfig
from common.llm import PROVIDER as OPENAI, ChatCompletionClient
from compute_embeddings.compute_embeddings import BatchEmbeddingGenerator
from fetch_articles.fetch_articles import ArticleFetcher
from fetch_articles.fetch_cycles import FetchCycleManager
from fetch_articles.providers import GNewsProvider, NewsApiProvider
from generate_narratives.generate_narratives import NarrativeTrigger
from generate_narratives.scheduler import NarrativeScheduler
from quality_gate.quality_gate import QualityGate
from rds_postgres.connection import create_db_engine, create_session_factory
from resilience.circuit_breaker import CircuitBreaker
from resilience.errors import ConfigurationError
from resilience.key_manager import KeyManager
from seen_filter.seen_filter import SeenFilter

logger = logging.getLogger(__name__)


@dataclass
class PipelineServices:
    config: PipelineConfig
    redis: object
    session_factory: sessionmaker[Session]
    key_manager: KeyManager
    breaker: CircuitBreaker
    fetcher: ArticleFetcher
    quality_gate: QualityGate
    seen_filter: SeenFilter
    embedder: BatchEmbeddingGenerator
    analyzer: ArticleAnalyzer
    assigner: ClusterAssigner
    narrative_trigger: NarrativeTrigger
    narrative_scheduler: NarrativeScheduler
    engine: Engine | None = None


def _validate(config: PipelineConfig, has_redis: bool, has_db: bool) -> None:
    if not has_db and not config.database_url:
        raise ConfigurationError("DATABASE_URL is not set")
    if not has_redis and not config.redis_url:
        raise ConfigurationError("REDIS_URL is not set")
    if not config.openai_api_keys:
        raise ConfigurationError("OPENAI_API_KEYS is not set")
    if not config.gnews_api_keys and not config.newsapi_api_keys:
        raise ConfigurationError("Neither GNEWS_API_KEYS nor NEWSAPI_API_KEYS is set")


def build_services(
    config: PipelineConfig,
    redis_client=None,
    session_factory: sessionmaker[Session] | None = None,
    openai_client_factory=None,
    http_session=None,
) -> PipelineServices:
    """Wire every component from ``config``.

    ``redis_client``, ``session_factory``, ``openai_client_factory`` and
    ``http_session`` replace the real connections when given.

    Raises:
        ConfigurationError: A required connection string or key set is missing.
    """
    _validate(config, redis_client is not None, session_factory is not None)

    engine = None
    if session_factory is None:
        engine = create_db_engine(config.database_url)
        session_factory = create_session_factory(engine)
    if redis_client is None:
        redis_client = create_redis_client(config.redis_url)

    key_manager = KeyManager(redis_client, config.resilience)
    breaker = CircuitBreaker(redis_client, config.resilience)

    gnews = GNewsProvider(config.fetch, http_session)
    newsapi = NewsApiProvider(config.fetch, http_session)
    key_manager.register_provider_keys(gnews.name, config.gnews_api_keys)
    key_manager.register_provider_keys(newsapi.name, config.newsapi_api_keys)
    key_manager.register_provider_keys(OPENAI, config.openai_api_keys)

    primary, fallback = gnews, newsapi
    if not config.gnews_api_keys:
        primary, fallback = newsapi, None
    elif not config.newsapi_api_keys:
        fallback = None

    fetcher = ArticleFetcher(
        FetchCycleManager(redis_client),
        key_manager,
        breaker,
        primary,
        fallback,
        config.fetch,
    )
    analysis_chat = ChatCompletionClient(
        key_manager,
        breaker,
        model=config.analysis.model,
        timeout=config.analysis.request_timeout,
        client_factory=openai_client_factory,
    )
    narrative_chat = ChatCompletionClient(
        key_manager,
        breaker,
        model=config.narrative.model,
        timeout=config.narrative.request_timeout,
        client_factory=openai_client_factory,
    )
    narrative_trigger = NarrativeTrigger(narrative_chat, config.narrative)

    return PipelineServices(
        config=config,
        redis=redis_client,
        session_factory=session_factory,
        key_manager=key_manager,
        breaker=breaker,
        fetcher=fetcher,
        quality_gate=QualityGate(config.quality_gate),
        seen_filter=SeenFilter(redis_client, config.seen_filter),
        embedder=BatchEmbeddingGenerator(
            key_manager,
            breaker,
            config.embedding,
            client_factory=openai_client_factory,
        ),
        analyzer=ArticleAnalyzer(analysis_chat),
        assigner=ClusterAssigner(redis_client, config.clustering),
        narrative_trigger=narrative_trigger,
        narrative_scheduler=NarrativeScheduler(
            narrative_trigger,
            session_factory,
            delay_seconds=config.narrative.delay_seconds,
            max_workers=config.narrative.max_workers,
        ),
        engine=engine,
    )
