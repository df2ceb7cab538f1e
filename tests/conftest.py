"""
Shared test fixtures.

Collaborators are replaced by in-memory fakes:
- FakeEmbedder: deterministic bag-of-words vectors (identical text -> identical vector)
- InMemoryVectorStore: cosine search over a dict of points
"""

import asyncio
import hashlib
import math
import re
from datetime import datetime, timezone

import pytest

from vaultrecall.config import Config
from vaultrecall.core.embeddings.base import Embedder
from vaultrecall.core.graph import KnowledgeGraph
from vaultrecall.core.lexical import LexicalIndex
from vaultrecall.core.vector_store.base import VectorStore
from vaultrecall.models.capture import CapturedPage, CaptureCategory, CaptureRecord, DuplicateCheck
from vaultrecall.models.passage import Passage, Provenance
from vaultrecall.models.retrieval import VectorHit
from vaultrecall.utils.exceptions import EmbeddingError, VectorStoreError

FAKE_DIMENSION = 32


class FakeEmbedder(Embedder):
    """Deterministic embedder for tests."""

    def __init__(self, fail: bool = False, delay: float = 0.0, healthy: bool = True):
        self.fail = fail
        self.delay = delay
        self.healthy = healthy
        self.calls: list[str] = []
        self.closed = False

    async def embed(self, text: str, **kwargs) -> list[float]:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise EmbeddingError("embedder down")
        vector = [0.0] * FAKE_DIMENSION
        for token in re.findall(r"\w+", text.lower()):
            index = int(hashlib.md5(token.encode()).hexdigest(), 16) % FAKE_DIMENSION
            vector[index] += 1.0
        norm = math.sqrt(sum(v * v for v in vector)) or 1.0
        return [v / norm for v in vector]

    async def get_dimension(self) -> int:
        return FAKE_DIMENSION

    async def health_check(self) -> None:
        if not self.healthy:
            raise EmbeddingError("model not found")

    async def close(self):
        self.closed = True


class InMemoryVectorStore(VectorStore):
    """Vector store keeping points in a dict; cosine similarity on normalized vectors."""

    def __init__(self, healthy: bool = True, fail_duplicate_check: bool = False):
        self.healthy = healthy
        self.fail_duplicate_check = fail_duplicate_check
        self.points: dict[str, tuple[list[float], dict]] = {}
        self.vector_size: int | None = None
        self.replace_calls: list[str] = []
        self.closed = False

    async def ensure_collection(self, vector_size: int) -> None:
        self.vector_size = vector_size

    async def delete_by_source(self, source_id: str) -> None:
        for point_id in [k for k, (_, p) in self.points.items() if p["source_id"] == source_id]:
            del self.points[point_id]

    async def upsert(self, passages, vectors, links=None) -> None:
        for passage, vector in zip(passages, vectors):
            self.points[passage.id] = (
                vector,
                {
                    "source_id": passage.source_id,
                    "start_line": passage.start_line,
                    "end_line": passage.end_line,
                    "text": passage.text,
                    "content_hash": passage.content_hash,
                    "provenance": passage.provenance.value,
                    "links": list(links or []),
                },
            )

    async def batch_replace(self, source_id, passages, vectors, links=None) -> None:
        self.replace_calls.append(source_id)
        await self.delete_by_source(source_id)
        await self.upsert(passages, vectors, links)

    async def search(self, vector, limit=10, min_score=0.0) -> list[VectorHit]:
        scored = [
            (sum(a * b for a, b in zip(vector, stored)), point_id, payload)
            for point_id, (stored, payload) in self.points.items()
        ]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [
            VectorHit(id=point_id, score=score, payload=payload)
            for score, point_id, payload in scored
            if score >= min_score
        ][:limit]

    async def upsert_captured(self, record: CaptureRecord, vector) -> None:
        self.points[record.id] = (
            vector,
            {
                "source_id": record.source_id,
                "start_line": 1,
                "end_line": 1,
                "text": record.text,
                "category": record.category.value,
                "captured_at": int(record.captured_at.timestamp() * 1000),
                "conversation_key": record.conversation_key,
                "provenance": Provenance.CAPTURED.value,
            },
        )

    def _captured(self, category: CaptureCategory | None = None):
        return [
            (point_id, payload)
            for point_id, (_, payload) in self.points.items()
            if payload.get("provenance") == Provenance.CAPTURED.value
            and (category is None or payload.get("category") == category.value)
        ]

    async def list_captured(self, category=None, limit=20, cursor=None) -> CapturedPage:
        captured = self._captured(category)
        start = int(cursor) if cursor else 0
        page = captured[start : start + limit]
        items = [
            CaptureRecord(
                id=point_id,
                text=payload["text"],
                category=CaptureCategory(payload["category"]),
                captured_at=datetime.fromtimestamp(payload["captured_at"] / 1000, tz=timezone.utc),
                conversation_key=payload.get("conversation_key"),
            )
            for point_id, payload in page
        ]
        next_cursor = str(start + limit) if start + limit < len(captured) else None
        return CapturedPage(items=items, next_cursor=next_cursor)

    async def delete_captured(self, capture_id: str) -> None:
        self.points.pop(capture_id, None)

    async def find_nearest_captured(self, vector, min_score) -> DuplicateCheck:
        if self.fail_duplicate_check:
            return DuplicateCheck(error="qdrant unreachable")
        best = None
        for point_id, payload in self._captured():
            stored = self.points[point_id][0]
            score = sum(a * b for a, b in zip(vector, stored))
            if best is None or score > best[0]:
                best = (score, payload["text"])
        if best is None or best[0] < min_score:
            return DuplicateCheck()
        return DuplicateCheck(exists=True, score=best[0], text=best[1])

    async def health_check(self) -> None:
        if not self.healthy:
            raise VectorStoreError("qdrant unreachable")

    async def close(self) -> None:
        self.closed = True


def make_passage(source_id: str, text: str, start: int = 1, end: int | None = None) -> Passage:
    """Passage with a readable ID for tests."""
    end = end if end is not None else start
    return Passage(
        id=f"{source_id}#{start}-{end}",
        source_id=source_id,
        start_line=start,
        end_line=end,
        text=text,
    )


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()


@pytest.fixture
def lexical_index(tmp_path):
    return LexicalIndex(tmp_path / "state" / "lexical-index.json")


@pytest.fixture
def graph(tmp_path):
    return KnowledgeGraph(tmp_path / "state" / "knowledge-graph.json")


@pytest.fixture
def passage_factory():
    return make_passage


@pytest.fixture
def vault_config(tmp_path):
    """Config with a vault, workspace and state dir under tmp_path."""
    vault = tmp_path / "vault"
    workspace = tmp_path / "workspace"
    vault.mkdir()
    workspace.mkdir()
    config = Config()
    config.indexing.vault_path = str(vault)
    config.indexing.workspace_path = str(workspace)
    config.indexing.state_dir = str(tmp_path / "state")
    return config


@pytest.fixture
def make_embedder():
    """FakeEmbedder class, for tests needing failing or slow embedders."""
    return FakeEmbedder


@pytest.fixture
def make_vector_store():
    """InMemoryVectorStore class, for tests needing an unhealthy store."""
    return InMemoryVectorStore
