"""
Tests for the in-process lexical index.
"""

import json

import pytest

from vaultrecall.core.lexical import LexicalIndex, bounded_edit_distance, tokenize
from vaultrecall.models.passage import Provenance


@pytest.mark.unit
class TestTokenize:
    def test_lowercases_and_splits_on_non_word(self):
        assert tokenize("Vault/Projects/Foo.md: Deploy-Plan") == [
            "vault",
            "projects",
            "foo",
            "md",
            "deploy",
            "plan",
        ]


@pytest.mark.unit
class TestBoundedEditDistance:
    def test_identical(self):
        assert bounded_edit_distance("abc", "abc", 0) == 0

    def test_within_bound(self):
        assert bounded_edit_distance("kitten", "sitting", 3) == 3

    def test_exceeds_bound(self):
        assert bounded_edit_distance("abc", "xyz", 1) == 2

    def test_length_gap_exceeds_bound(self):
        assert bounded_edit_distance("a", "abcdef", 2) == 3


@pytest.mark.unit
class TestLexicalIndexSearch:
    """Test BM25F ranking and fuzzy expansion."""

    def test_finds_matching_passage(self, lexical_index, passage_factory):
        lexical_index.add(
            [
                passage_factory("vault/a.md", "deployment checklist for the release"),
                passage_factory("vault/b.md", "grocery list with apples"),
            ]
        )

        hits = lexical_index.search("deployment")

        assert [hit.source_id for hit in hits] == ["vault/a.md"]
        assert hits[0].score > 0
        assert hits[0].provenance == Provenance.VAULT

    def test_more_relevant_passage_ranks_first(self, lexical_index, passage_factory):
        lexical_index.add(
            [
                passage_factory("memory/x.md", "kubernetes mentioned once among many other words here"),
                passage_factory("memory/y.md", "kubernetes kubernetes kubernetes cluster"),
            ]
        )

        hits = lexical_index.search("kubernetes")

        assert hits[0].source_id == "memory/y.md"
        assert hits[0].score > hits[1].score

    def test_source_path_is_searchable(self, lexical_index, passage_factory):
        lexical_index.add([passage_factory("vault/Projects/Alpha.md", "nothing relevant")])

        hits = lexical_index.search("projects")

        assert len(hits) == 1

    def test_fuzzy_match(self, lexical_index, passage_factory):
        lexical_index.add([passage_factory("vault/a.md", "deployment notes")])

        assert len(lexical_index.search("deploymnt")) == 1

    def test_fuzzy_disabled(self, tmp_path, passage_factory):
        index = LexicalIndex(fuzzy=0.0)
        index.add([passage_factory("vault/a.md", "deployment notes")])

        assert index.search("deploymnt") == []

    def test_exact_match_outranks_fuzzy(self, lexical_index, passage_factory):
        lexical_index.add(
            [
                passage_factory("vault/a.md", "release"),
                passage_factory("vault/b.md", "releases"),
            ]
        )

        hits = lexical_index.search("release")

        assert hits[0].source_id == "vault/a.md"

    def test_limit(self, lexical_index, passage_factory):
        lexical_index.add(
            [passage_factory(f"vault/{i}.md", "shared term") for i in range(5)]
        )

        assert len(lexical_index.search("shared", limit=2)) == 2

    def test_empty_query_or_index(self, lexical_index, passage_factory):
        assert lexical_index.search("anything") == []
        lexical_index.add([passage_factory("vault/a.md", "text")])
        assert lexical_index.search("   ") == []


@pytest.mark.unit
class TestLexicalIndexMutation:
    def test_add_replaces_same_id(self, lexical_index, passage_factory):
        lexical_index.add([passage_factory("vault/a.md", "old words")])
        lexical_index.add([passage_factory("vault/a.md", "new words")])

        assert len(lexical_index) == 1
        assert lexical_index.search("old") == []
        assert len(lexical_index.search("new")) == 1

    def test_remove_by_source(self, lexical_index, passage_factory):
        lexical_index.add(
            [
                passage_factory("vault/a.md", "alpha", 1, 1),
                passage_factory("vault/a.md", "alpha beta", 2, 3),
                passage_factory("vault/b.md", "alpha", 1, 1),
            ]
        )

        removed = lexical_index.remove_by_source("vault/a.md")

        assert removed == 2
        assert lexical_index.source_ids() == ["vault/b.md"]
        assert [hit.source_id for hit in lexical_index.search("alpha")] == ["vault/b.md"]
        assert lexical_index.remove_by_source("vault/missing.md") == 0

    def test_passages_for_sorted_by_line(self, lexical_index, passage_factory):
        lexical_index.add(
            [
                passage_factory("vault/a.md", "second", 5, 9),
                passage_factory("vault/a.md", "first", 1, 4),
            ]
        )

        assert [p.start_line for p in lexical_index.passages_for("vault/a.md")] == [1, 5]


@pytest.mark.unit
class TestLexicalIndexPersistence:
    def test_save_and_load(self, lexical_index, passage_factory):
        lexical_index.add([passage_factory("vault/a.md", "persistent passage")])
        lexical_index.save()

        restored = LexicalIndex(lexical_index.index_path)
        restored.load()

        assert len(restored) == 1
        assert restored.search("persistent")[0].source_id == "vault/a.md"

    def test_save_only_when_dirty(self, lexical_index):
        lexical_index.save()
        assert not lexical_index.index_path.exists()

    def test_missing_file_loads_empty(self, lexical_index):
        lexical_index.load()
        assert len(lexical_index) == 0

    def test_corrupt_file_loads_empty(self, lexical_index):
        lexical_index.index_path.parent.mkdir(parents=True)
        lexical_index.index_path.write_text("{not json")

        lexical_index.load()

        assert len(lexical_index) == 0

    def test_unknown_version_loads_empty(self, lexical_index):
        lexical_index.index_path.parent.mkdir(parents=True)
        lexical_index.index_path.write_text(json.dumps({"version": 99, "documents": []}))

        lexical_index.load()

        assert len(lexical_index) == 0
