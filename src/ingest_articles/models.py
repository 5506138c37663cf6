"""Data models for ingest_articles pipeline stage."""

from dataclasses import dataclass, field
from datetime import datetime

PERSISTED = "persisted"
DUPLICATE = "duplicate"
FAILED = "failed"


@dataclass
class ProcessedArticle:
    """Outcome of running one article through the pipeline."""

    url_hash: str
    url: str
    headline: str
    source: str
    published_at: datetime
    status: str
    cluster_id: int | None = None
    cluster_tier: str | None = None
    analysis_mode: str | None = None
    has_embedding: bool = False


@dataclass
class CycleReport:
    fetched: int = 0
    accepted: int = 0
    fresh: int = 0
    records: list[ProcessedArticle] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for record in self.records if record.status == status)

    @property
    def persisted(self) -> int:
        return self.count(PERSISTED)

    @property
    def cluster_ids(self) -> set[int]:
        return {
            record.cluster_id
            for record in self.records
            if record.status == PERSISTED and record.cluster_id is not None
        }
