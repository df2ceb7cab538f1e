"""
Vault organization report built on the knowledge graph.
"""

from vaultrecall.core.graph import KnowledgeGraph
from vaultrecall.models.graph import OrganizeReport

DEFAULT_EXCLUDED_PATTERNS = ("01 Journal/", "memory/", "captured/")


def organize_report(
    graph: KnowledgeGraph, excluded_patterns: list[str] | tuple[str, ...] = DEFAULT_EXCLUDED_PATTERNS
) -> OrganizeReport:
    """
    Orphaned notes worth linking.

    Daily journals, session logs and captures naturally lack backlinks, so
    any source ID containing one of excluded_patterns is left out.
    """
    orphans = sorted(
        source_id
        for source_id in graph.get_orphans()
        if not any(pattern in source_id for pattern in excluded_patterns)
    )
    return OrganizeReport(orphans=orphans, count=len(orphans))
