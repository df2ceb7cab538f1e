"""
Shared test fixtures for vector store tests.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from vaultrecall.core.vector_store.qdrant import QdrantStore
from vaultrecall.models.capture import CaptureCategory, CaptureRecord
from vaultrecall.models.passage import Passage


@pytest.fixture
def qdrant_store():
    """Create Qdrant store for testing."""
    return QdrantStore(
        host="localhost",
        port=6333,
        collection_name="test_memories",
    )


@pytest.fixture
def mock_client():
    """AsyncQdrantClient stand-in patched into the qdrant module."""
    client = AsyncMock()
    collections = MagicMock()
    collections.collections = []
    client.get_collections.return_value = collections
    with patch("vaultrecall.core.vector_store.qdrant.AsyncQdrantClient", return_value=client):
        yield client


@pytest.fixture
def sample_passage():
    """Create sample passage for testing."""
    return Passage(
        id="psg_0123456789abcdef",
        source_id="vault/Projects/Alpha.md",
        start_line=1,
        end_line=6,
        text="---\ntags: [work, planning]\nstatus: active\n---\n# Alpha\nShip it",
        content_hash="abc",
    )


@pytest.fixture
def sample_capture():
    """Create sample captured memory for testing."""
    return CaptureRecord(
        id="cap_test1",
        text="I prefer dark mode",
        category=CaptureCategory.PREFERENCE,
        captured_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        conversation_key="conv-1",
    )
