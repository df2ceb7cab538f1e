"""
Services for VaultRecall.

High-level services:
- MemoryEngine: Unified interface for all memory operations
- IndexingPipeline: Per-source replace across all indexes
- HybridRetriever: Vector + lexical fusion with recency decay
- CaptureService: Auto-capture with rate limiting and deduplication
"""

from vaultrecall.services.capture import (
    CaptureService,
    RateLimiter,
    detect_category,
    should_capture,
)
from vaultrecall.services.indexing import IndexingPipeline, find_markdown_files
from vaultrecall.services.memory_engine import MemoryEngine
from vaultrecall.services.organizer import organize_report
from vaultrecall.services.retrieval import HybridRetriever, format_recall_context

__all__ = [
    "MemoryEngine",
    "IndexingPipeline",
    "find_markdown_files",
    "HybridRetriever",
    "format_recall_context",
    "CaptureService",
    "RateLimiter",
    "should_capture",
    "detect_category",
    "organize_report",
]
