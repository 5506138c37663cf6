"""Data models for narrative synthesis."""

from pydantic import BaseModel, Field


class Perspective(BaseModel):
    source: str
    stance: str


class DivergencePoint(BaseModel):
    point: str
    perspectives: list[Perspective] = Field(default_factory=list)


class NarrativeSynthesis(BaseModel):
    master_headline: str
    executive_summary: str
    consensus_points: list[str] = Field(default_factory=list)
    divergence_points: list[DivergencePoint] = Field(default_factory=list)
