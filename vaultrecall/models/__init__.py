"""
Data models for VaultRecall.

- Passage, Provenance: indexed slices of source notes
- VectorHit, LexicalHit, RetrievalResult, SearchResponse, Snippet: retrieval
- CaptureRecord, CaptureCategory, DuplicateCheck, CapturedPage,
  CaptureOutcome, CaptureReason: captured memories
- GraphNode, RelatedSources, OrganizeReport: wiki-link graph
- IndexingSummary, IndexingFailure: indexing runs
"""

from vaultrecall.models.capture import (
    CAPTURE_CATEGORIES,
    CapturedPage,
    CaptureCategory,
    CaptureOutcome,
    CaptureReason,
    CaptureRecord,
    DuplicateCheck,
)
from vaultrecall.models.graph import GraphNode, OrganizeReport, RelatedSources
from vaultrecall.models.indexing import IndexingFailure, IndexingSummary
from vaultrecall.models.passage import Passage, Provenance, provenance_for
from vaultrecall.models.retrieval import (
    LexicalHit,
    RetrievalResult,
    SearchResponse,
    Snippet,
    VectorHit,
)

__all__ = [
    # Passages
    "Passage",
    "Provenance",
    "provenance_for",
    # Retrieval
    "VectorHit",
    "LexicalHit",
    "RetrievalResult",
    "SearchResponse",
    "Snippet",
    # Captures
    "CAPTURE_CATEGORIES",
    "CaptureCategory",
    "CaptureRecord",
    "CapturedPage",
    "CaptureOutcome",
    "CaptureReason",
    "DuplicateCheck",
    # Graph
    "GraphNode",
    "RelatedSources",
    "OrganizeReport",
    # Indexing
    "IndexingFailure",
    "IndexingSummary",
]
