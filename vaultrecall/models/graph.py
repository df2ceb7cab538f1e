"""
Knowledge graph models.
"""

from pydantic import BaseModel, Field


class GraphNode(BaseModel):
    """
    Note in the wiki-link graph.

    A node with empty links but non-empty backlinks is a ghost: a link
    target that is not (or no longer) an indexed source.
    """

    source_id: str
    links: list[str] = Field(default_factory=list, description="Outgoing link targets")
    backlinks: list[str] = Field(default_factory=list, description="Sources linking here")

    @property
    def is_ghost(self) -> bool:
        return not self.links and bool(self.backlinks)


class RelatedSources(BaseModel):
    """Links and backlinks of a looked-up node."""

    links: list[str] = Field(default_factory=list)
    backlinks: list[str] = Field(default_factory=list)


class OrganizeReport(BaseModel):
    """Notes nothing links to, excluding journal, session and captured sources."""

    orphans: list[str] = Field(default_factory=list)
    count: int = 0
    note: str = "These files have no incoming links. Consider linking them from an Index note."
