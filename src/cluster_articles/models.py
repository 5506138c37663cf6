"""Data models for cluster_articles pipeline stage."""

from dataclasses import dataclass
from typing import ClassVar, Union


@dataclass(frozen=True)
class VectorMatch:
    """Joined the cluster of the nearest stored article."""

    tier: ClassVar[str] = "vector"

    cluster_id: int
    article_id: int
    similarity: float


@dataclass(frozen=True)
class MetadataMatch:
    """Joined the cluster of the latest article with the same topic, category and country."""

    tier: ClassVar[str] = "metadata"

    cluster_id: int
    article_id: int


@dataclass(frozen=True)
class NewCluster:
    """Started a new cluster. ``source`` says which allocator minted the id."""

    tier: ClassVar[str] = "new"

    cluster_id: int
    source: str


ClusterMatch = Union[VectorMatch, MetadataMatch, NewCluster]
