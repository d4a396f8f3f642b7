"""Source deduplication across research steps."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from ..search import Source

logger = logging.getLogger(__name__)


def deduplicate_sources(sources: Iterable[Source]) -> list[Source]:
    """
    Deduplicate citations by URI.

    When several entries share a URI the last one wins, but it keeps the
    position where that URI was first seen.

    Args:
        sources: Citations in step execution order (potentially with duplicates)

    Returns:
        Deduplicated list of citations
    """
    unique: dict[str, Source] = {}
    total = 0

    for source in sources:
        total += 1
        unique[source.uri] = source

    logger.info(f"Deduplicated {total} sources to {len(unique)}")
    return list(unique.values())
