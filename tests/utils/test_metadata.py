"""
Tests for note metadata extraction.
"""

import pytest

from vaultrecall.utils.metadata import extract_headers, infer_category, parse_frontmatter


class TestParseFrontmatter:
    def test_tags_and_metadata(self):
        text = "---\ntags: [work, planning]\nstatus: active\ncreated: 2026-01-05\n---\nBody"

        tags, metadata = parse_frontmatter(text)

        assert tags == ["work", "planning"]
        assert metadata["status"] == "active"
        # YAML dates are stringified so payloads stay JSON serializable
        assert metadata["created"] == "2026-01-05"

    def test_comma_separated_tags(self):
        tags, _ = parse_frontmatter("---\ntags: alpha, 'beta'\n---\n")
        assert tags == ["alpha", "beta"]

    def test_no_frontmatter(self):
        assert parse_frontmatter("# Title\nbody") == ([], {})

    def test_invalid_yaml(self):
        assert parse_frontmatter("---\ntags: [unclosed\n---\n") == ([], {})

    def test_non_mapping(self):
        assert parse_frontmatter("---\n- a\n- b\n---\n") == ([], {})


class TestExtractHeaders:
    def test_normalized(self):
        text = "# Project Alpha!\nbody\n## Next Steps (Q1)\n#not-a-header"
        assert extract_headers(text) == ["project alpha", "next steps q1"]


class TestInferCategory:
    @pytest.mark.parametrize(
        "source_id,expected",
        [
            ("vault/01 Journal/2026-01-01.md", "journal"),
            ("vault/Projects/Alpha.md", "project"),
            ("vault/Topics/Rust.md", "knowledge"),
            ("vault/People/Ana.md", "person"),
            ("vault/Inbox.md", "knowledge"),
            ("memory/2026-01-01.md", "session"),
            ("MEMORY.md", "core"),
            ("extra/0/notes.md", "other"),
        ],
    )
    def test_category(self, source_id, expected):
        assert infer_category(source_id) == expected
