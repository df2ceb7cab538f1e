"""
Qdrant vector store implementation.

Holds two kinds of points in one collection: note passages (keyed by
source_id) and captured memories (provenance "captured").
"""

from datetime import datetime, timezone
from typing import Any
from uuid import NAMESPACE_DNS, UUID, uuid5

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    DeleteOperation,
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    HnswConfigDiff,
    MatchValue,
    OptimizersConfigDiff,
    PayloadSchemaType,
    PointIdsList,
    PointStruct,
    PointsList,
    ScalarQuantization,
    ScalarQuantizationConfig,
    ScalarType,
    UpsertOperation,
    VectorParams,
)

from vaultrecall.core.vector_store.base import VectorStore
from vaultrecall.models.capture import CapturedPage, CaptureCategory, CaptureRecord, DuplicateCheck
from vaultrecall.models.passage import Passage, Provenance
from vaultrecall.models.retrieval import VectorHit
from vaultrecall.utils.exceptions import ValidationError, VectorStoreError
from vaultrecall.utils.id_generator import compute_content_hash
from vaultrecall.utils.logger import get_logger
from vaultrecall.utils.metadata import extract_headers, infer_category, parse_frontmatter

logger = get_logger(__name__)

KEYWORD_INDEXES = ("source_id", "category", "provenance")


class QdrantStore(VectorStore):
    """
    Qdrant vector store for passages and captured memories.

    Features:
    - HNSW indexing for fast search
    - Optional int8 quantization
    - Atomic per-source replace via batch_update_points
    - Payload indexing for source, category and capture time filters
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6333,
        collection_name: str = "vaultrecall-memory",
        use_grpc: bool = False,
        use_quantization: bool = True,
        hnsw_m: int = 16,
        hnsw_ef_construct: int = 100,
        on_disk: bool = False,
        timeout: int = 30,
    ):
        """
        Initialize Qdrant store.

        Args:
            host: Qdrant host
            port: Qdrant port (6333 for HTTP, 6334 for gRPC)
            collection_name: Collection name
            use_grpc: Use gRPC connection
            use_quantization: Use int8 scalar quantization
            hnsw_m: HNSW M parameter (connections per node)
            hnsw_ef_construct: HNSW ef_construct parameter
            on_disk: Store vectors on disk (reduces RAM usage)
            timeout: Request timeout in seconds
        """
        self.host = host
        self.port = port
        self.collection_name = collection_name
        self.use_grpc = use_grpc
        self.use_quantization = use_quantization
        self.hnsw_m = hnsw_m
        self.hnsw_ef_construct = hnsw_ef_construct
        self.on_disk = on_disk
        self.timeout = timeout
        self.vector_size: int | None = None
        self.client: AsyncQdrantClient | None = None

    def _to_uuid(self, id_str: str) -> str:
        """
        Convert string ID to UUID format consistently.

        Args:
            id_str: String identifier

        Returns:
            UUID string
        """
        try:
            UUID(id_str)
            return id_str
        except ValueError:
            return str(uuid5(NAMESPACE_DNS, id_str))

    async def connect(self) -> None:
        """
        Establish connection to Qdrant.

        Raises:
            VectorStoreError: If connection fails
        """
        if self.client is None:
            try:
                self.client = AsyncQdrantClient(
                    host=self.host,
                    port=self.port,
                    prefer_grpc=self.use_grpc,
                    timeout=self.timeout,
                )
            except Exception as e:
                logger.bind(
                    host=self.host, port=self.port, error=str(e)
                ).error(f"Failed to connect to Qdrant: {e}")
                raise VectorStoreError(f"Failed to connect to Qdrant: {e}") from e

    async def ensure_collection(self, vector_size: int) -> None:
        """
        Create the collection when absent and make sure payload indexes exist.

        Raises:
            VectorStoreError: If initialization fails
        """
        try:
            await self.connect()
            self.vector_size = vector_size

            collections = await self.client.get_collections()
            collection_names = [col.name for col in collections.collections]

            if self.collection_name not in collection_names:
                vectors_config = VectorParams(
                    size=vector_size,
                    distance=Distance.COSINE,
                    hnsw_config=HnswConfigDiff(
                        m=self.hnsw_m,
                        ef_construct=self.hnsw_ef_construct,
                        full_scan_threshold=10000,
                    ),
                    on_disk=self.on_disk,
                )

                if self.use_quantization:
                    vectors_config.quantization_config = ScalarQuantization(
                        scalar=ScalarQuantizationConfig(
                            type=ScalarType.INT8,
                            quantile=0.99,
                            always_ram=True,
                        )
                    )

                await self.client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config=vectors_config,
                    optimizers_config=OptimizersConfigDiff(indexing_threshold=20000),
                )
                logger.info(
                    f"Created Qdrant collection {self.collection_name} (dim={vector_size})"
                )

            # Index creation is idempotent on the server side
            for field_name in KEYWORD_INDEXES:
                await self.client.create_payload_index(
                    collection_name=self.collection_name,
                    field_name=field_name,
                    field_schema=PayloadSchemaType.KEYWORD,
                )
            await self.client.create_payload_index(
                collection_name=self.collection_name,
                field_name="captured_at",
                field_schema=PayloadSchemaType.INTEGER,
            )
        except Exception as e:
            logger.bind(
                collection=self.collection_name, error=str(e)
            ).error(f"Failed to initialize Qdrant collection: {e}")
            raise VectorStoreError(f"Failed to initialize Qdrant collection: {e}") from e

    # Payloads

    def _passage_payload(self, passage: Passage, links: list[str]) -> dict[str, Any]:
        """
        Convert Passage to Qdrant payload.

        Tags merge frontmatter tags and markdown headers found in the passage.
        """
        frontmatter_tags, frontmatter_meta = parse_frontmatter(passage.text)
        tags = list(dict.fromkeys(frontmatter_tags + extract_headers(passage.text)))
        return {
            "original_id": passage.id,
            "source_id": passage.source_id,
            "start_line": passage.start_line,
            "end_line": passage.end_line,
            "text": passage.text,
            "content_hash": passage.content_hash,
            "provenance": passage.provenance.value,
            "tags": tags,
            "links": links,
            "category": infer_category(passage.source_id),
            "metadata": frontmatter_meta,
        }

    def _captured_payload(self, record: CaptureRecord) -> dict[str, Any]:
        """Convert CaptureRecord to Qdrant payload (captured_at in epoch ms)."""
        return {
            "original_id": record.id,
            "source_id": record.source_id,
            "start_line": 1,
            "end_line": 1,
            "text": record.text,
            "content_hash": compute_content_hash(record.text),
            "category": record.category.value,
            "captured_at": int(record.captured_at.timestamp() * 1000),
            "conversation_key": record.conversation_key,
            "provenance": Provenance.CAPTURED.value,
        }

    def _payload_to_capture(self, point_id: Any, payload: dict[str, Any]) -> CaptureRecord:
        """Convert Qdrant payload to CaptureRecord."""
        try:
            category = CaptureCategory(payload.get("category", "other"))
        except ValueError:
            category = CaptureCategory.OTHER
        captured_ms = payload.get("captured_at") or 0
        return CaptureRecord(
            id=payload.get("original_id") or str(point_id),
            text=payload.get("text", ""),
            category=category,
            captured_at=datetime.fromtimestamp(captured_ms / 1000, tz=timezone.utc),
            conversation_key=payload.get("conversation_key"),
        )

    def _passage_points(
        self, passages: list[Passage], vectors: list[list[float]], links: list[str] | None
    ) -> list[PointStruct]:
        if len(passages) != len(vectors):
            raise ValidationError(
                f"Got {len(vectors)} vectors for {len(passages)} passages",
                context={"passages": len(passages), "vectors": len(vectors)},
            )
        return [
            PointStruct(
                id=self._to_uuid(passage.id),
                vector=vector,
                payload=self._passage_payload(passage, list(links or [])),
            )
            for passage, vector in zip(passages, vectors)
        ]

    @staticmethod
    def _source_filter(source_id: str) -> Filter:
        return Filter(must=[FieldCondition(key="source_id", match=MatchValue(value=source_id))])

    @staticmethod
    def _captured_filter(category: CaptureCategory | None = None) -> Filter:
        conditions = [
            FieldCondition(key="provenance", match=MatchValue(value=Provenance.CAPTURED.value))
        ]
        if category is not None:
            conditions.append(
                FieldCondition(key="category", match=MatchValue(value=category.value))
            )
        return Filter(must=conditions)

    # Passages

    async def delete_by_source(self, source_id: str) -> None:
        try:
            await self.connect()
            await self.client.delete(
                collection_name=self.collection_name,
                points_selector=FilterSelector(filter=self._source_filter(source_id)),
                wait=True,
            )
        except Exception as e:
            logger.bind(
                source_id=source_id, error=str(e)
            ).error(f"Failed to delete passages of {source_id}: {e}")
            raise VectorStoreError(f"Failed to delete passages: {e}") from e

    async def upsert(
        self,
        passages: list[Passage],
        vectors: list[list[float]],
        links: list[str] | None = None,
    ) -> None:
        if not passages:
            return
        points = self._passage_points(passages, vectors, links)

        try:
            await self.connect()
            await self.client.upsert(
                collection_name=self.collection_name,
                points=points,
                wait=True,
            )
        except Exception as e:
            logger.bind(
                count=len(points), error=str(e)
            ).error(f"Failed to upsert {len(points)} passages: {e}")
            raise VectorStoreError(f"Failed to upsert passages: {e}") from e

    async def batch_replace(
        self,
        source_id: str,
        passages: list[Passage],
        vectors: list[list[float]],
        links: list[str] | None = None,
    ) -> None:
        points = self._passage_points(passages, vectors, links)

        operations = [
            DeleteOperation(delete=FilterSelector(filter=self._source_filter(source_id)))
        ]
        if points:
            operations.append(UpsertOperation(upsert=PointsList(points=points)))

        try:
            await self.connect()
            await self.client.batch_update_points(
                collection_name=self.collection_name,
                update_operations=operations,
                wait=True,
            )
        except Exception as e:
            logger.bind(
                source_id=source_id, count=len(points), error=str(e)
            ).error(f"Failed to replace passages of {source_id}: {e}")
            raise VectorStoreError(f"Failed to replace passages: {e}") from e

    async def search(
        self, vector: list[float], limit: int = 10, min_score: float = 0.0
    ) -> list[VectorHit]:
        try:
            await self.connect()
            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=vector,
                limit=limit,
                score_threshold=min_score,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            logger.bind(
                collection=self.collection_name, error=str(e)
            ).error(f"Qdrant search failed: {e}")
            raise VectorStoreError(f"Qdrant search failed: {e}") from e

        hits = []
        for point in response.points:
            payload = point.payload or {}
            hits.append(
                VectorHit(
                    id=payload.get("original_id") or str(point.id),
                    score=point.score,
                    payload=payload,
                )
            )
        return hits

    # Captured memories

    async def upsert_captured(self, record: CaptureRecord, vector: list[float]) -> None:
        point = PointStruct(
            id=self._to_uuid(record.id),
            vector=vector,
            payload=self._captured_payload(record),
        )

        try:
            await self.connect()
            await self.client.upsert(
                collection_name=self.collection_name,
                points=[point],
                wait=True,
            )
        except Exception as e:
            logger.bind(
                capture_id=record.id, error=str(e)
            ).error(f"Failed to store capture {record.id}: {e}")
            raise VectorStoreError(f"Failed to store capture: {e}") from e

    async def list_captured(
        self,
        category: CaptureCategory | None = None,
        limit: int = 20,
        cursor: str | None = None,
    ) -> CapturedPage:
        try:
            await self.connect()
            points, next_offset = await self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=self._captured_filter(category),
                limit=limit,
                offset=cursor,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            logger.bind(
                category=category.value if category else None, error=str(e)
            ).error(f"Failed to list captured memories: {e}")
            raise VectorStoreError(f"Failed to list captured memories: {e}") from e

        items = [
            self._payload_to_capture(point.id, point.payload or {})
            for point in points
            if (point.payload or {}).get("text")
        ]
        return CapturedPage(
            items=items,
            next_cursor=str(next_offset) if next_offset is not None else None,
        )

    async def delete_captured(self, capture_id: str) -> None:
        if not capture_id or not capture_id.strip():
            raise ValidationError("Capture ID cannot be empty")

        try:
            await self.connect()
            await self.client.delete(
                collection_name=self.collection_name,
                points_selector=PointIdsList(points=[self._to_uuid(capture_id)]),
                wait=True,
            )
        except Exception as e:
            logger.bind(
                capture_id=capture_id, error=str(e)
            ).error(f"Failed to delete capture {capture_id}: {e}")
            raise VectorStoreError(f"Failed to delete capture: {e}") from e

    async def find_nearest_captured(
        self, vector: list[float], min_score: float
    ) -> DuplicateCheck:
        try:
            await self.connect()
            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=vector,
                query_filter=self._captured_filter(),
                limit=1,
                score_threshold=min_score,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            logger.warning(f"Duplicate check failed: {e}")
            return DuplicateCheck(error=str(e))

        if not response.points:
            return DuplicateCheck()

        nearest = response.points[0]
        return DuplicateCheck(
            exists=nearest.score >= min_score,
            score=nearest.score,
            text=(nearest.payload or {}).get("text"),
        )

    async def health_check(self) -> None:
        try:
            await self.connect()
            await self.client.get_collections()
        except Exception as e:
            raise VectorStoreError(
                f"Qdrant not reachable at {self.host}:{self.port}: {e}",
                context={"host": self.host, "port": self.port},
            ) from e

    async def close(self) -> None:
        """Close the connection to Qdrant."""
        if self.client is not None:
            await self.client.close()
            self.client = None
