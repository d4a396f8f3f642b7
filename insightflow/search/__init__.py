"""Web evidence sources for search-augmented reasoning backends."""

from .models import Source, SearchHit, SearchResponse
from .protocols import EvidenceSource
from .client import TavilySearchClient, format_search_context

__all__ = [
    # Models
    "Source",
    "SearchHit",
    "SearchResponse",
    # Protocols
    "EvidenceSource",
    # Clients
    "TavilySearchClient",
    "format_search_context",
]
