"""Pydantic models for web search hits and citations."""

from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field


class Source(BaseModel):
    """A web citation attached to a research step."""

    model_config = ConfigDict(frozen=True)

    uri: str
    title: str = ""

    @property
    def display_title(self) -> str:
        """Title for display, falling back to the URI's hostname."""
        if self.title:
            return self.title
        return urlparse(self.uri).hostname or self.uri


class SearchHit(BaseModel):
    """A single ranked hit returned by a web search."""

    uri: str = Field("", alias="url")
    title: str = ""
    content: str = ""

    model_config = {"populate_by_name": True}

    def to_source(self) -> Source:
        return Source(uri=self.uri, title=self.title)


class SearchResponse(BaseModel):
    """Hits from one search together with their citations.

    ``citations`` is always the 1:1 projection of ``hits`` in hit order.
    """

    hits: list[SearchHit] = Field(default_factory=list)
    citations: list[Source] = Field(default_factory=list)

    @classmethod
    def from_hits(cls, hits: list[SearchHit]) -> "SearchResponse":
        return cls(hits=hits, citations=[hit.to_source() for hit in hits])
