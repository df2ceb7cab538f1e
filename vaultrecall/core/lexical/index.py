"""
In-process lexical index over passages.

BM25F over two fields (passage text boosted 2x, source path 1x) with
fuzzy term expansion: a query term also matches vocabulary terms within an
edit distance of round(len(term) * fuzzy), at a reduced weight.

The index is a cache of derivable facts. It persists only the stored
passages and rebuilds postings on load; a missing or corrupt file yields an
empty index.
"""

import json
import math
import os
import re
from collections import Counter
from pathlib import Path

from vaultrecall.models.passage import Passage, provenance_for
from vaultrecall.models.retrieval import LexicalHit
from vaultrecall.utils.logger import get_logger

logger = get_logger(__name__)

INDEX_VERSION = 1
FIELD_BOOSTS = {"text": 2.0, "source_id": 1.0}
FUZZY_WEIGHT = 0.45
BM25_K1 = 1.2
BM25_B = 0.75

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def tokenize(text: str) -> list[str]:
    """Lower-cased word tokens."""
    return _TOKEN_RE.findall(text.lower())


def bounded_edit_distance(a: str, b: str, max_dist: int) -> int:
    """Levenshtein distance, or max_dist + 1 once it is known to exceed max_dist."""
    if a == b:
        return 0
    if abs(len(a) - len(b)) > max_dist or not a or not b:
        return max_dist + 1
    if len(a) > len(b):
        a, b = b, a
    prev = list(range(len(a) + 1))
    for i, cb in enumerate(b, start=1):
        cur = [i]
        min_row = i
        for j, ca in enumerate(a, start=1):
            cost = 0 if ca == cb else 1
            val = min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + cost)
            cur.append(val)
            min_row = min(min_row, val)
        prev = cur
        if min_row > max_dist:
            return max_dist + 1
    return prev[-1]


class LexicalIndex:
    """
    Inverted index with BM25F scoring.

    Usage:
        index = LexicalIndex(Path(".vaultrecall/index.json"))
        index.load()
        index.remove_by_source("vault/Foo.md")
        index.add(passages)
        hits = index.search("deployment plan", limit=20)
        index.save()
    """

    def __init__(self, index_path: Path | None = None, fuzzy: float = 0.2):
        """
        Initialize an empty index.

        Args:
            index_path: JSON file used by load() and save()
            fuzzy: Edit distance allowance as a fraction of query term length
        """
        self.index_path = Path(index_path) if index_path else None
        self.fuzzy = fuzzy
        self.dirty = False
        self._reset()

    def _reset(self) -> None:
        self._docs: dict[str, Passage] = {}
        self._by_source: dict[str, set[str]] = {}
        self._doc_terms: dict[str, dict[str, Counter]] = {}
        self._field_lengths: dict[str, dict[str, int]] = {field: {} for field in FIELD_BOOSTS}
        self._postings: dict[str, dict[str, dict[str, int]]] = {field: {} for field in FIELD_BOOSTS}

    def __len__(self) -> int:
        return len(self._docs)

    def __contains__(self, passage_id: str) -> bool:
        return passage_id in self._docs

    def source_ids(self) -> list[str]:
        """Sources with at least one indexed passage."""
        return sorted(self._by_source)

    def passages_for(self, source_id: str) -> list[Passage]:
        """Indexed passages of a source, ordered by start line."""
        ids = self._by_source.get(source_id, set())
        return sorted((self._docs[i] for i in ids), key=lambda p: p.start_line)

    # Mutation

    def add(self, passages: list[Passage]) -> None:
        """Add passages; a passage whose ID is already indexed is replaced."""
        for passage in passages:
            if passage.id in self._docs:
                self._remove_doc(passage.id)
            self._add_doc(passage)
        if passages:
            self.dirty = True

    def remove_by_source(self, source_id: str) -> int:
        """
        Remove every passage of a source.

        Returns:
            Number of passages removed
        """
        ids = list(self._by_source.get(source_id, ()))
        for passage_id in ids:
            self._remove_doc(passage_id)
        if ids:
            self.dirty = True
        return len(ids)

    def _add_doc(self, passage: Passage) -> None:
        self._docs[passage.id] = passage
        self._by_source.setdefault(passage.source_id, set()).add(passage.id)

        terms: dict[str, Counter] = {}
        for field, value in (("text", passage.text), ("source_id", passage.source_id)):
            counts = Counter(tokenize(value))
            terms[field] = counts
            self._field_lengths[field][passage.id] = sum(counts.values())
            postings = self._postings[field]
            for term, tf in counts.items():
                postings.setdefault(term, {})[passage.id] = tf
        self._doc_terms[passage.id] = terms

    def _remove_doc(self, passage_id: str) -> None:
        passage = self._docs.pop(passage_id)
        source_docs = self._by_source.get(passage.source_id)
        if source_docs is not None:
            source_docs.discard(passage_id)
            if not source_docs:
                del self._by_source[passage.source_id]

        for field, counts in self._doc_terms.pop(passage_id, {}).items():
            postings = self._postings[field]
            for term in counts:
                docs = postings.get(term)
                if docs is None:
                    continue
                docs.pop(passage_id, None)
                if not docs:
                    del postings[term]
            self._field_lengths[field].pop(passage_id, None)

    # Search

    def _expand_term(self, term: str, vocabulary: set[str]) -> list[tuple[str, float]]:
        """Exact and fuzzy vocabulary matches for a query term, with weights."""
        matches = [(term, 1.0)] if term in vocabulary else []
        max_dist = round(len(term) * self.fuzzy)
        if max_dist < 1:
            return matches
        for candidate in vocabulary:
            if candidate == term:
                continue
            distance = bounded_edit_distance(term, candidate, max_dist)
            if distance <= max_dist:
                weight = FUZZY_WEIGHT * len(term) / (len(term) + distance)
                matches.append((candidate, weight))
        return matches

    def search(self, query: str, limit: int = 10) -> list[LexicalHit]:
        """
        Rank passages against a query (terms combined with OR).

        Args:
            query: Free-text query
            limit: Maximum hits

        Returns:
            Hits sorted by descending raw BM25F score (unnormalized)
        """
        query_terms = list(dict.fromkeys(tokenize(query)))
        total = len(self._docs)
        if not query_terms or total == 0 or limit <= 0:
            return []

        vocabulary: set[str] = set()
        for postings in self._postings.values():
            vocabulary.update(postings)

        avg_lengths = {
            field: (sum(lengths.values()) / total) or 1.0
            for field, lengths in self._field_lengths.items()
        }

        scores: dict[str, float] = {}
        for query_term in query_terms:
            for term, weight in self._expand_term(query_term, vocabulary):
                for field, boost in FIELD_BOOSTS.items():
                    docs = self._postings[field].get(term)
                    if not docs:
                        continue
                    df = len(docs)
                    idf = math.log(1 + (total - df + 0.5) / (df + 0.5))
                    lengths = self._field_lengths[field]
                    for passage_id, tf in docs.items():
                        norm = 1 - BM25_B + BM25_B * lengths[passage_id] / avg_lengths[field]
                        tf_part = tf * (BM25_K1 + 1) / (tf + BM25_K1 * norm)
                        scores[passage_id] = scores.get(passage_id, 0.0) + (
                            boost * weight * idf * tf_part
                        )

        ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)[:limit]
        hits = []
        for passage_id, score in ranked:
            passage = self._docs[passage_id]
            hits.append(
                LexicalHit(
                    id=passage.id,
                    source_id=passage.source_id,
                    start_line=passage.start_line,
                    end_line=passage.end_line,
                    text=passage.text,
                    score=score,
                    provenance=provenance_for(passage.source_id),
                )
            )
        return hits

    # Persistence

    def load(self) -> None:
        """Load stored passages; a missing or corrupt file leaves the index empty."""
        self._reset()
        self.dirty = False
        if self.index_path is None or not self.index_path.exists():
            return

        try:
            data = json.loads(self.index_path.read_text(encoding="utf-8"))
            if data.get("version") != INDEX_VERSION:
                raise ValueError(f"unsupported index version: {data.get('version')}")
            passages = [Passage(**doc) for doc in data["documents"]]
        except Exception as e:
            logger.warning(f"Discarding unreadable lexical index {self.index_path}: {e}")
            self._reset()
            return

        for passage in passages:
            if passage.id in self._docs:
                self._remove_doc(passage.id)
            self._add_doc(passage)
        logger.debug(f"Loaded lexical index with {len(self._docs)} passages")

    def save(self) -> None:
        """Write stored passages if anything changed since the last load/save."""
        if not self.dirty or self.index_path is None:
            return

        data = {
            "version": INDEX_VERSION,
            "documents": [passage.model_dump() for passage in self._docs.values()],
        }
        self.index_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.index_path.with_suffix(self.index_path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data), encoding="utf-8")
        os.replace(tmp_path, self.index_path)
        self.dirty = False
