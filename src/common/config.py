"""Configuration loader for the ingestion pipeline.

Tunables come from ``configs/<name>.yaml``; credentials and connection
strings come from the environment (a ``.env`` file is honoured by the CLI).
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from common.utils import split_csv

CONFIG_DIR = Path(__file__).resolve().parents[2] / "configs"


@dataclass
class ResilienceConfig:
    key_cooldown_seconds: int = 600
    max_key_errors: int = 5
    key_error_window_seconds: int = 3600
    max_attempts: int = 3
    breaker_failure_threshold: int = 3
    breaker_failure_window_seconds: int = 600
    breaker_cooldown_seconds: int = 1800


@dataclass
class FetchConfig:
    cycles_per_run: int = 2
    min_primary_articles: int = 2
    min_cycle_articles: int = 5
    request_timeout: int = 30
    gnews_max_results: int = 10
    newsapi_page_size: int = 20
    language: str = "en"


@dataclass
class QualityGateConfig:
    min_title_length: int = 20
    min_description_length: int = 30
    min_words: int = 40
    score_cutoff: int = 0
    fuzzy_threshold: float = 0.8
    max_title_length_diff: int = 20


@dataclass
class SeenFilterConfig:
    claim_ttl_seconds: int = 180
    seen_ttl_seconds: int = 172800


@dataclass
class EmbeddingConfig:
    model: str = "text-embedding-3-small"
    batch_size: int = 100
    chunk_delay_seconds: float = 1.0
    max_description_chars: int = 1000


@dataclass
class AnalysisConfig:
    model: str = "gpt-4o-mini"
    request_timeout: int = 60


@dataclass
class ClusteringConfig:
    vector_threshold: float = 0.82
    duplicate_threshold: float = 0.92
    window_days: int = 7
    duplicate_window_hours: int = 24
    max_candidates: int = 500
    gap_recovery_floor: int = 100


@dataclass
class NarrativeConfig:
    model: str = "gpt-4o-mini"
    min_articles: int = 3
    min_sources: int = 3
    max_articles: int = 10
    refresh_hours: int = 12
    delay_seconds: float = 5.0
    max_workers: int = 2
    request_timeout: int = 60


@dataclass
class PipelineConfig:
    resilience: ResilienceConfig = field(default_factory=ResilienceConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    quality_gate: QualityGateConfig = field(default_factory=QualityGateConfig)
    seen_filter: SeenFilterConfig = field(default_factory=SeenFilterConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    narrative: NarrativeConfig = field(default_factory=NarrativeConfig)
    database_url: str | None = None
    redis_url: str | None = None
    gnews_api_keys: list[str] = field(default_factory=list)
    newsapi_api_keys: list[str] = field(default_factory=list)
    openai_api_keys: list[str] = field(default_factory=list)


def find_config_path(
    config_name: str | None,
    config_dir: Path = CONFIG_DIR,
    default_name: str = "prod",
    env_var: str | None = "CONFIG_ENV",
) -> Path:
    """Find config file path, checking env var and defaults.

    Raises:
        FileNotFoundError: If config file doesn't exist
    """
    if config_name is None:
        config_name = os.environ.get(env_var, default_name) if env_var else default_name

    config_path = config_dir / f"{config_name}.yaml"
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return config_path


def load_yaml(path: Path) -> dict:
    """Load YAML file and return dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(config_name: str | None = None, config_dir: Path = CONFIG_DIR) -> PipelineConfig:
    """Load configuration from YAML plus environment secrets.

    Args:
        config_name: Name of config file (without .yaml extension).
                    If None, uses CONFIG_ENV env var or "prod".
        config_dir: Directory holding the YAML files.
    """
    data = load_yaml(find_config_path(config_name, config_dir))
    return _parse_config(data, os.environ)


def _section(cls, data: dict | None):
    """Build a config dataclass from a YAML mapping, ignoring unknown keys."""
    data = data or {}
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


def _parse_config(data: dict, env) -> PipelineConfig:
    """Parse config dictionary and environment into a PipelineConfig."""
    return PipelineConfig(
        resilience=_section(ResilienceConfig, data.get("resilience")),
        fetch=_section(FetchConfig, data.get("fetch")),
        quality_gate=_section(QualityGateConfig, data.get("quality_gate")),
        seen_filter=_section(SeenFilterConfig, data.get("seen_filter")),
        embedding=_section(EmbeddingConfig, data.get("embedding")),
        analysis=_section(AnalysisConfig, data.get("analysis")),
        clustering=_section(ClusteringConfig, data.get("clustering")),
        narrative=_section(NarrativeConfig, data.get("narrative")),
        database_url=env.get("DATABASE_URL"),
        redis_url=env.get("REDIS_URL"),
        gnews_api_keys=split_csv(env.get("GNEWS_API_KEYS")),
        newsapi_api_keys=split_csv(env.get("NEWSAPI_API_KEYS")),
        openai_api_keys=split_csv(env.get("OPENAI_API_KEYS")),
    )
