"""
Tests for all model classes in VaultRecall.

Test Organization:
1. Passage and provenance
2. Retrieval models
3. Capture models
4. Graph and indexing models
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from vaultrecall.models import (
    CAPTURE_CATEGORIES,
    CaptureCategory,
    CaptureOutcome,
    CaptureRecord,
    DuplicateCheck,
    GraphNode,
    IndexingSummary,
    OrganizeReport,
    Passage,
    Provenance,
    RetrievalResult,
    SearchResponse,
    provenance_for,
)


class TestPassage:
    """Tests for Passage model."""

    def test_creation_minimal(self):
        passage = Passage(start_line=1, end_line=3, text="hello")

        assert passage.id == ""
        assert passage.source_id == ""
        assert passage.content_hash == ""

    def test_line_numbers_are_one_based(self):
        with pytest.raises(ValidationError):
            Passage(start_line=0, end_line=1, text="x")

    @pytest.mark.parametrize(
        "source_id,expected",
        [
            ("vault/Projects/Alpha.md", Provenance.VAULT),
            ("captured/preference", Provenance.CAPTURED),
            ("MEMORY.md", Provenance.WORKSPACE),
            ("memory/2026-01-01.md", Provenance.WORKSPACE),
            ("extra/0/notes.md", Provenance.WORKSPACE),
        ],
    )
    def test_provenance(self, source_id, expected):
        assert provenance_for(source_id) == expected
        assert Passage(source_id=source_id, start_line=1, end_line=1, text="x").provenance == expected


class TestRetrievalModels:
    def test_result_defaults(self):
        result = RetrievalResult(id="psg_1", source_id="vault/a.md")

        assert result.related_sources is None
        assert result.captured_at is None
        assert result.provenance == Provenance.WORKSPACE

    def test_search_response_defaults(self):
        response = SearchResponse()

        assert response.results == []
        assert response.hybrid is True
        assert response.fallback_mode is None
        assert response.error is None


class TestCaptureModels:
    def test_record_source_id(self):
        record = CaptureRecord(id="cap_1", text="I like tea", category=CaptureCategory.PREFERENCE)

        assert record.source_id == "captured/preference"
        assert record.captured_at.tzinfo is not None

    def test_categories_in_priority_order(self):
        assert [c.value for c in CAPTURE_CATEGORIES] == [
            "preference",
            "project",
            "personal",
            "other",
        ]

    def test_serialization(self):
        record = CaptureRecord(
            id="cap_1",
            text="I like tea",
            captured_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )

        data = record.model_dump(mode="json")

        assert data["category"] == "other"
        assert data["captured_at"].startswith("2026-01-01T00:00:00")

    def test_defaults(self):
        assert DuplicateCheck().exists is False
        outcome = CaptureOutcome()
        assert outcome.captured is False
        assert outcome.record is None


class TestGraphAndIndexingModels:
    def test_ghost(self):
        assert GraphNode(source_id="x", backlinks=["a"]).is_ghost is True
        assert GraphNode(source_id="x", links=["b"], backlinks=["a"]).is_ghost is False
        assert GraphNode(source_id="x").is_ghost is False

    def test_organize_report_note(self):
        report = OrganizeReport(orphans=["vault/a.md"], count=1)
        assert report.note.startswith("These files have no incoming links")

    def test_indexing_summary_defaults(self):
        summary = IndexingSummary()

        assert summary.passages == 0
        assert summary.failures == []
        assert summary.vectors is True
