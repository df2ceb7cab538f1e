"""
Wiki-link knowledge graph.
"""

from vaultrecall.core.graph.knowledge_graph import KnowledgeGraph, extract_links

__all__ = [
    "KnowledgeGraph",
    "extract_links",
]
