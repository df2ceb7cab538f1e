"""
Lexical (keyword) index over passages.
"""

from vaultrecall.core.lexical.index import LexicalIndex, bounded_edit_distance, tokenize

__all__ = [
    "LexicalIndex",
    "tokenize",
    "bounded_edit_distance",
]
