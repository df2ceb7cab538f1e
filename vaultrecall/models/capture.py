"""
Capture models: durable memories extracted from conversational text.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class CaptureCategory(str, Enum):
    """Capture categories, in detection priority order."""

    PREFERENCE = "preference"
    PROJECT = "project"
    PERSONAL = "personal"
    OTHER = "other"


CAPTURE_CATEGORIES: tuple[CaptureCategory, ...] = tuple(CaptureCategory)


class CaptureRecord(BaseModel):
    """
    Captured memory. Immutable once written: an update is a new record
    with a new ID.
    """

    id: str = Field(..., description="Capture ID (cap_xxx)")
    text: str = Field(..., description="Captured text")
    category: CaptureCategory = Field(default=CaptureCategory.OTHER)
    captured_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Capture timestamp"
    )
    conversation_key: str | None = Field(default=None, description="Originating conversation")

    @property
    def source_id(self) -> str:
        """Pseudo source ID used in payloads and retrieval results."""
        return f"captured/{self.category.value}"


class DuplicateCheck(BaseModel):
    """
    Nearest captured neighbor lookup.

    error is set (and exists is False) when the store could not be queried.
    """

    exists: bool = False
    score: float = 0.0
    text: str | None = None
    error: str | None = None


class CapturedPage(BaseModel):
    """One page of captured memories."""

    items: list[CaptureRecord] = Field(default_factory=list)
    next_cursor: str | None = None


class CaptureReason(str, Enum):
    """Why a capture attempt did not produce a record."""

    NOT_CAPTURABLE = "not_capturable"
    RATE_LIMITED = "rate_limited"
    DUPLICATE = "duplicate"
    EMBEDDING_FAILED = "embedding_failed"
    STORE_FAILED = "store_failed"
    UNAVAILABLE = "unavailable"


class CaptureOutcome(BaseModel):
    """Result of one capture attempt."""

    captured: bool = False
    record: CaptureRecord | None = None
    reason: CaptureReason | None = None
    warning: str | None = Field(default=None, description="Non-fatal problem, e.g. duplicate check failed")
