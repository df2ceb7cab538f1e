"""
Tests for ID generation utilities.

Tests cover:
1. Passage ID generation (deterministic)
2. Capture ID generation (unique)
3. Content hashes and snippet truncation
"""

from vaultrecall.utils import (
    compute_content_hash,
    generate_capture_id,
    generate_passage_id,
    truncate_snippet,
)


class TestGeneratePassageId:
    """Tests for Passage ID generation."""

    def test_format(self):
        """Test Passage ID format: psg_xxx (16 hex chars)."""
        passage_id = generate_passage_id("vault/a.md", 1, 10)

        assert passage_id.startswith("psg_")
        assert len(passage_id) == 20
        int(passage_id[4:], 16)

    def test_deterministic(self):
        assert generate_passage_id("vault/a.md", 1, 10) == generate_passage_id("vault/a.md", 1, 10)

    def test_varies_with_source_and_range(self):
        ids = {
            generate_passage_id("vault/a.md", 1, 10),
            generate_passage_id("vault/b.md", 1, 10),
            generate_passage_id("vault/a.md", 2, 10),
            generate_passage_id("vault/a.md", 1, 11),
        }
        assert len(ids) == 4

    def test_ordinal_separates_shared_line_range(self):
        first = generate_passage_id("vault/a.md", 1, 1)

        assert generate_passage_id("vault/a.md", 1, 1, ordinal=0) == first
        assert generate_passage_id("vault/a.md", 1, 1, ordinal=1) != first
        assert generate_passage_id("vault/a.md", 1, 1, ordinal=1) == generate_passage_id(
            "vault/a.md", 1, 1, ordinal=1
        )


class TestGenerateCaptureId:
    """Tests for Capture ID generation."""

    def test_format(self):
        """Test Capture ID format: cap_xxx (12 hex chars)."""
        capture_id = generate_capture_id()

        assert capture_id.startswith("cap_")
        assert len(capture_id) == 16
        assert capture_id[4:].isalnum()

    def test_uniqueness(self):
        """Test that generated Capture IDs are unique."""
        ids = [generate_capture_id() for _ in range(1000)]
        assert len(ids) == len(set(ids))


class TestContentHelpers:
    def test_content_hash(self):
        assert compute_content_hash("abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_truncate_snippet(self):
        assert truncate_snippet("short", 10) == "short"
        assert truncate_snippet("x" * 12, 10) == "x" * 10 + "..."
        assert truncate_snippet("x" * 700) == "x" * 700
