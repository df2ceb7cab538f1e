"""
Hybrid retrieval: vector search fused with lexical search.

Per query:
1. Vector search (embed + nearest neighbors); a failure switches the query
   to lexical-only mode instead of aborting it
2. Lexical search, over-fetched
3. Lexical scores normalized by the best lexical score
4. Weighted fusion by passage ID (0.7 / 0.3, or 0 / 1 in lexical-only mode)
5. Recency decay blended into scores of captured memories
6. Related sources from the knowledge graph attached (display only)
7. Sort and truncate
"""

import asyncio
import math
from datetime import datetime, timezone
from typing import Any

from vaultrecall.config import RecallConfig, RecencyConfig, SearchConfig
from vaultrecall.core.embeddings.base import Embedder
from vaultrecall.core.graph import KnowledgeGraph
from vaultrecall.core.lexical import LexicalIndex
from vaultrecall.core.vector_store.base import VectorStore
from vaultrecall.models.passage import Provenance, provenance_for
from vaultrecall.models.retrieval import LexicalHit, RetrievalResult, SearchResponse, VectorHit
from vaultrecall.utils.id_generator import truncate_snippet
from vaultrecall.utils.logger import get_logger

logger = get_logger(__name__)

RECALL_MARKER = "<relevant-memories>"
RECALL_SNIPPET_CHARS = 200
LEXICAL_ONLY = "lexical-only"
MS_PER_DAY = 24 * 60 * 60 * 1000


def normalize_lexical_scores(hits: list[LexicalHit]) -> dict[str, float]:
    """Scale lexical scores into [0, 1] by the best score of the result set."""
    best = max((hit.score for hit in hits), default=0.0) or 1.0
    return {hit.id: hit.score / best for hit in hits}


def fuse_scores(
    vector_scores: dict[str, float],
    lexical_scores: dict[str, float],
    vector_weight: float,
    lexical_weight: float,
) -> dict[str, float]:
    """
    Weighted sum of vector and lexical scores keyed by result ID.

    An ID missing from one side contributes 0 for that side.
    """
    fused = {}
    for result_id in {**vector_scores, **lexical_scores}:
        fused[result_id] = (
            vector_scores.get(result_id, 0.0) * vector_weight
            + lexical_scores.get(result_id, 0.0) * lexical_weight
        )
    return fused


def recency_decay(captured_at: datetime, now: datetime, half_life_days: float) -> float:
    """exp(-ln 2 * age / half_life): 1.0 when fresh, 0.5 after one half-life."""
    age_days = (now - captured_at).total_seconds() * 1000 / MS_PER_DAY
    return math.exp(-math.log(2) * age_days / half_life_days)


def apply_recency(score: float, decay: float, weight: float) -> float:
    """Blend a decay factor into a fused score."""
    return score * (1 - weight) + decay * weight


def _captured_at(payload: dict[str, Any]) -> datetime | None:
    captured_ms = payload.get("captured_at")
    if not captured_ms:
        return None
    return datetime.fromtimestamp(captured_ms / 1000, tz=timezone.utc)


def format_recall_context(results: list[RetrievalResult]) -> str:
    """
    Render results as a context block to prepend to a prompt.

    Returns:
        The block, or an empty string when there are no results
    """
    if not results:
        return ""

    lines = []
    for result in results:
        snippet = result.snippet
        if len(snippet) > RECALL_SNIPPET_CHARS:
            snippet = snippet[:RECALL_SNIPPET_CHARS] + "..."
        lines.append(f"- [{result.provenance.value}/{result.source_id}] {snippet}")

    memory_context = "\n".join(lines)
    return (
        f"{RECALL_MARKER}\n"
        "The following memories may be relevant:\n"
        f"{memory_context}\n"
        "</relevant-memories>\n\n"
    )


class HybridRetriever:
    """
    Ranks passages and captured memories for a query.

    Usage:
        retriever = HybridRetriever(embedder, vector_store, lexical_index, graph)
        response = await retriever.search("release checklist")
        for result in response.results:
            print(result.source_id, result.score)
    """

    def __init__(
        self,
        embedder: Embedder | None,
        vector_store: VectorStore | None,
        lexical_index: LexicalIndex,
        graph: KnowledgeGraph,
        search_config: SearchConfig | None = None,
        recency_config: RecencyConfig | None = None,
        recall_config: RecallConfig | None = None,
    ):
        self.embedder = embedder
        self.vector_store = vector_store
        self.lexical_index = lexical_index
        self.graph = graph
        self.search_config = search_config or SearchConfig()
        self.recency_config = recency_config or RecencyConfig()
        self.recall_config = recall_config or RecallConfig()
        self.vectors_enabled = embedder is not None and vector_store is not None

    async def _vector_search(
        self, query: str, limit: int, min_score: float
    ) -> list[VectorHit]:
        if not self.vectors_enabled:
            raise RuntimeError("vector search unavailable")
        vector = await self.embedder.embed(query)
        return await self.vector_store.search(vector, limit, min_score)

    def _result_from_vector_hit(self, hit: VectorHit) -> RetrievalResult:
        payload = hit.payload
        source_id = payload.get("source_id", "")
        provenance = payload.get("provenance")
        return RetrievalResult(
            id=hit.id,
            source_id=source_id,
            start_line=payload.get("start_line") or 1,
            end_line=payload.get("end_line") or 1,
            snippet=truncate_snippet(payload.get("text", ""), self.search_config.snippet_chars),
            score=hit.score,
            provenance=Provenance(provenance) if provenance else provenance_for(source_id),
            captured_at=_captured_at(payload),
        )

    def _result_from_lexical_hit(self, hit: LexicalHit) -> RetrievalResult:
        return RetrievalResult(
            id=hit.id,
            source_id=hit.source_id,
            start_line=hit.start_line,
            end_line=hit.end_line,
            snippet=truncate_snippet(hit.text, self.search_config.snippet_chars),
            score=hit.score,
            provenance=hit.provenance,
        )

    def _related_sources(self, source_id: str) -> list[str] | None:
        related = self.graph.get_related(source_id)
        combined = (related.links + related.backlinks)[: self.search_config.related_limit]
        return combined or None

    async def search(
        self,
        query: str,
        max_results: int | None = None,
        min_score: float | None = None,
        now: datetime | None = None,
    ) -> SearchResponse:
        """
        Hybrid search over passages and captured memories.

        Collaborator failures never escape; the response reports them through
        hybrid, fallback_mode and error.

        Args:
            query: Free-text query
            max_results: Maximum results (default from SearchConfig)
            min_score: Vector similarity threshold (default from SearchConfig)
            now: Reference time for recency decay (default: current UTC time)

        Returns:
            SearchResponse with results sorted by descending fused score
        """
        config = self.search_config
        max_results = config.max_results if max_results is None else max_results
        min_score = config.min_score if min_score is None else min_score
        now = now or datetime.now(timezone.utc)

        # 1. Vector search
        vector_error = None
        vector_hits: list[VectorHit] = []
        try:
            vector_hits = await self._vector_search(query, max_results, min_score)
        except Exception as e:
            vector_error = str(e)
            logger.warning(f"Vector search failed, falling back to lexical-only: {e}")

        # 2. Lexical search, over-fetched
        lexical_limit = max(max_results * config.lexical_overfetch, config.lexical_min_candidates)
        lexical_hits = self.lexical_index.search(query, lexical_limit)

        # 3-4. Normalize and fuse
        if vector_error is None:
            vector_weight, lexical_weight = config.vector_weight, config.lexical_weight
        else:
            vector_weight, lexical_weight = 0.0, 1.0

        vector_scores = {hit.id: hit.score for hit in vector_hits}
        fused = fuse_scores(
            vector_scores,
            normalize_lexical_scores(lexical_hits),
            vector_weight,
            lexical_weight,
        )

        candidates: dict[str, RetrievalResult] = {}
        for hit in vector_hits:
            candidates[hit.id] = self._result_from_vector_hit(hit)
        for hit in lexical_hits:
            candidates.setdefault(hit.id, self._result_from_lexical_hit(hit))

        # 5-6. Recency and graph enrichment
        recency = self.recency_config
        results = []
        for result_id, candidate in candidates.items():
            score = fused[result_id]
            if recency.enabled and candidate.captured_at is not None:
                decay = recency_decay(candidate.captured_at, now, recency.half_life_days)
                score = apply_recency(score, decay, recency.weight)
            results.append(
                candidate.model_copy(
                    update={
                        "score": score,
                        "related_sources": self._related_sources(candidate.source_id),
                    }
                )
            )

        # 7. Rank
        results.sort(key=lambda result: result.score, reverse=True)

        return SearchResponse(
            results=results[:max_results],
            hybrid=vector_error is None,
            fallback_mode=LEXICAL_ONLY if vector_error else None,
            error=vector_error,
        )

    async def recall(self, prompt: str) -> list[RetrievalResult]:
        """
        Time-boxed vector lookup for prompt context injection.

        Returns an empty list for short prompts, prompts that already carry
        recalled memories, timeouts and failures. On timeout the in-flight
        lookup is cancelled and its result discarded.
        """
        config = self.recall_config
        if not prompt or len(prompt) < config.min_prompt_chars or RECALL_MARKER in prompt:
            return []

        try:
            hits = await asyncio.wait_for(
                self._vector_search(prompt, config.limit, config.min_score),
                timeout=config.timeout,
            )
        except asyncio.TimeoutError:
            logger.info("Auto-recall timed out, proceeding without memories")
            return []
        except Exception as e:
            logger.warning(f"Auto-recall failed: {e}")
            return []

        results = [self._result_from_vector_hit(hit) for hit in hits]
        if results:
            logger.debug(f"Auto-recall found {len(results)} memories")
        return results
