"""Protocol definitions for web evidence sources."""

from typing import Protocol, runtime_checkable

from .models import SearchResponse


@runtime_checkable
class EvidenceSource(Protocol):
    """Protocol for web search backends.

    Implement this protocol to plug in a different search API.
    """

    async def search(
        self,
        query: str,
        max_results: int = 5,
        api_key: str | None = None,
    ) -> SearchResponse:
        """
        Search the web for a query.

        Args:
            query: Search query string
            max_results: Maximum number of hits to return
            api_key: Optional credential overriding the process default

        Returns:
            SearchResponse with hits and their citations

        Raises:
            ConfigurationError: If no credential is available
            TransportError: If the search endpoint answers with an error
        """
        ...
