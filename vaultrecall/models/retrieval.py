"""
Retrieval result models returned by hybrid search and auto-recall.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from vaultrecall.models.passage import Provenance


class VectorHit(BaseModel):
    """Raw vector store match."""

    id: str
    score: float
    payload: dict[str, Any] = Field(default_factory=dict)


class LexicalHit(BaseModel):
    """Raw lexical index match with its unnormalized BM25 score."""

    id: str
    source_id: str
    start_line: int
    end_line: int
    text: str
    score: float
    provenance: Provenance


class RetrievalResult(BaseModel):
    """
    Ranked retrieval result.

    score is a unit-less fused relevance value (higher is better).
    related_sources is display-only metadata from the knowledge graph.
    """

    id: str = Field(..., description="Passage or capture ID")
    source_id: str = Field(..., description="Source note ID")
    start_line: int = Field(default=1, ge=1)
    end_line: int = Field(default=1, ge=1)
    snippet: str = Field(default="", description="Truncated passage text")
    score: float = Field(default=0.0, description="Fused relevance score")
    provenance: Provenance = Field(default=Provenance.WORKSPACE)
    related_sources: list[str] | None = Field(
        default=None, description="Up to 3 linked sources (links first, then backlinks)"
    )
    captured_at: datetime | None = Field(default=None, description="Capture time, if captured")


class SearchResponse(BaseModel):
    """
    Hybrid search outcome.

    Collaborator failures never propagate past search; they are reported
    through hybrid, fallback_mode and error instead.
    """

    results: list[RetrievalResult] = Field(default_factory=list)
    hybrid: bool = Field(default=True, description="False when vector search failed")
    fallback_mode: str | None = Field(default=None, description="'lexical-only' when degraded")
    error: str | None = Field(default=None, description="Vector search failure message")


class Snippet(BaseModel):
    """Line range read back from an indexed source."""

    path: str
    from_line: int = 1
    lines: int = 0
    text: str = ""
    note: str | None = None
