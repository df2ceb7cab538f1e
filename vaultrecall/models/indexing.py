"""
Indexing run models.
"""

from pydantic import BaseModel, Field


class IndexingFailure(BaseModel):
    """A source that could not be indexed; the walk continued without it."""

    source_id: str
    error: str


class IndexingSummary(BaseModel):
    """Outcome of a full indexing run across all configured sources."""

    passages: int = Field(default=0, description="Passages written across all sources")
    failures: list[IndexingFailure] = Field(default_factory=list)
    vectors: bool = Field(default=True, description="False when only local indexes were updated")
