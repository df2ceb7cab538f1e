"""
Text chunking for passage indexing.
"""

from vaultrecall.core.chunking.chunker import (
    DEFAULT_OVERLAP_WORDS,
    DEFAULT_TARGET_WORDS,
    MAX_LINE_CHARS,
    chunk_text,
    count_words,
)

__all__ = [
    "chunk_text",
    "count_words",
    "MAX_LINE_CHARS",
    "DEFAULT_TARGET_WORDS",
    "DEFAULT_OVERLAP_WORDS",
]
