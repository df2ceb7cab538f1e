"""
Passage model: the unit of indexing and retrieval.

Passages are contiguous, possibly overlapping slices of a source note.
Their IDs derive from the source ID and line range, so re-indexing an
unchanged region reproduces the same ID.
"""

from enum import Enum

from pydantic import BaseModel, Field


class Provenance(str, Enum):
    """Coarse origin of a passage or retrieval result."""

    VAULT = "vault"
    WORKSPACE = "workspace"
    CAPTURED = "captured"


def provenance_for(source_id: str) -> Provenance:
    """Derive provenance from the source ID path prefix."""
    if source_id.startswith("vault/"):
        return Provenance.VAULT
    if source_id.startswith("captured/"):
        return Provenance.CAPTURED
    return Provenance.WORKSPACE


class Passage(BaseModel):
    """
    Indexed slice of a source note.

    The chunker fills text and line range; the indexing pipeline assigns
    id, source_id and content_hash.
    """

    id: str = Field(default="", description="Deterministic passage ID (psg_xxx)")
    source_id: str = Field(default="", description="Source note ID (e.g. vault/Foo.md)")
    start_line: int = Field(..., ge=1, description="First line, 1-based")
    end_line: int = Field(..., ge=1, description="Last line, inclusive")
    text: str = Field(..., description="Passage text")
    content_hash: str = Field(default="", description="SHA256 of text")

    @property
    def provenance(self) -> Provenance:
        """Origin category derived from source_id."""
        return provenance_for(self.source_id)
