"""SQLAlchemy models for articles, narratives and durable counters."""

from datetime import datetime

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from common.datetime import utc_now


class Base(DeclarativeBase):
    pass


class Article(Base):
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(String(255), nullable=False)
    headline: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text)
    image_url: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(64))
    country: Mapped[str] = mapped_column(String(64), nullable=False, default="Global")
    political_lean: Mapped[str | None] = mapped_column(String(32))
    sentiment: Mapped[str | None] = mapped_column(String(32))
    trust_score: Mapped[int | None] = mapped_column(Integer)
    key_findings: Mapped[list | None] = mapped_column(JSON)
    analysis_mode: Mapped[str | None] = mapped_column(String(16))
    embedding: Mapped[list | None] = mapped_column(JSON(none_as_null=True))
    cluster_id: Mapped[int | None] = mapped_column(BigInteger, index=True)
    cluster_topic: Mapped[str | None] = mapped_column(String(255))
    is_latest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("ix_articles_country_published_at", "country", "published_at"),
        Index("ix_articles_cluster_published_at", "cluster_id", "published_at"),
    )

    def __repr__(self) -> str:
        return f"Article(id={self.id!r}, cluster_id={self.cluster_id!r}, headline={self.headline!r})"


class Narrative(Base):
    __tablename__ = "narratives"

    cluster_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    master_headline: Mapped[str] = mapped_column(Text, nullable=False)
    executive_summary: Mapped[str] = mapped_column(Text, nullable=False)
    consensus_points: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    divergence_points: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    source_count: Mapped[int] = mapped_column(Integer, nullable=False)
    sources: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    category: Mapped[str | None] = mapped_column(String(64))
    country: Mapped[str | None] = mapped_column(String(64))
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)


class Counter(Base):
    """Durable named counter, the fallback source of cluster ids."""

    __tablename__ = "counters"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
