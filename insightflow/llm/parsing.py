"""Best-effort extraction of JSON from free-form model output.

Models are asked for bare JSON but often wrap it in prose or code fences.
The helpers here never raise on malformed output; each call site gets a
documented fallback instead:

- research plan: a single pending step holding the original query
- synthesis: a generic summary with the raw dossier as the deep dive
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..orchestration.models import ResearchStep, StepStatus, Synthesis

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "Analysis complete."
DOSSIER_SEPARATOR = "\n\n---\n\n"


def _balanced_end(text: str, start: int) -> int | None:
    """
    Find where the bracketed block opening at ``start`` closes.

    Brackets inside JSON string literals are ignored.

    Returns:
        Index one past the closing bracket, or None if it never closes
    """
    opening = text[start]
    closing = "]" if opening == "[" else "}"
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        char = text[i]

        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == opening:
            depth += 1
        elif char == closing:
            depth -= 1
            if depth == 0:
                return i + 1

    return None


def extract_json_block(text: str, opening: str) -> str | None:
    """
    Return the first balanced ``[...]`` or ``{...}`` substring of ``text``.

    Args:
        text: Raw model output
        opening: Either "[" or "{"

    Returns:
        The substring, or None if no balanced block exists
    """
    start = text.find(opening)
    if start == -1:
        return None

    end = _balanced_end(text, start)
    if end is None:
        return None

    return text[start:end]


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def parse_json_array(text: str) -> list | None:
    """
    Parse the first JSON array in a model response.

    An array nested inside a leading JSON object does not count: a response
    that is an object is not a plan.

    Returns:
        The parsed list, or None if no array could be parsed
    """
    array_start = text.find("[")
    object_start = text.find("{")

    if object_start != -1 and (array_start == -1 or object_start < array_start):
        object_end = _balanced_end(text, object_start)
        if object_end is None or (array_start != -1 and array_start < object_end):
            return None

    block = extract_json_block(text, "[")
    data = _loads(block) if block is not None else _loads(text.strip())

    return data if isinstance(data, list) else None


def parse_json_object(text: str) -> dict | None:
    """
    Parse the first JSON object in a model response.

    Returns:
        The parsed dict, or None if no object could be parsed
    """
    block = extract_json_block(text, "{")
    data = _loads(block) if block is not None else _loads(text.strip())

    return data if isinstance(data, dict) else None


def fallback_plan(query: str) -> list[ResearchStep]:
    """Single-step plan that researches the original query as-is."""
    return [ResearchStep(id="step-0", query=query, status=StepStatus.PENDING)]


def parse_research_plan(response: str, query: str) -> list[ResearchStep]:
    """
    Turn a planning response into pending research steps.

    Args:
        response: Raw model output, expected to hold [{"query": ...}, ...]
        query: The original research question (used for the fallback)

    Returns:
        One pending step per usable sub-question, or the fallback plan
    """
    items = parse_json_array(response or "")
    if items is None:
        logger.warning("Failed to parse research plan, researching the query directly")
        return fallback_plan(query)

    queries = [
        item["query"].strip()
        for item in items
        if isinstance(item, dict)
        and isinstance(item.get("query"), str)
        and item["query"].strip()
    ]

    if not queries:
        logger.warning("Research plan contained no usable sub-questions")
        return fallback_plan(query)

    if len(queries) < len(items):
        logger.warning(f"Dropped {len(items) - len(queries)} malformed plan entries")

    return [
        ResearchStep(id=f"step-{index}", query=sub_query, status=StepStatus.PENDING)
        for index, sub_query in enumerate(queries)
    ]


def build_dossier(steps: list[ResearchStep]) -> str:
    """Concatenate each step's query and findings in step order."""
    return DOSSIER_SEPARATOR.join(
        f"Query: {step.query}\nFindings: {step.result}" for step in steps
    )


def fallback_synthesis(dossier: str) -> Synthesis:
    """Synthesis used when the model's report cannot be parsed."""
    return Synthesis(summary=DEFAULT_SUMMARY, deep_dive=dossier)


def parse_synthesis(response: str, dossier: str) -> Synthesis:
    """
    Turn a synthesis response into a summary and deep dive.

    Args:
        response: Raw model output, expected to hold {"summary", "deepDive"}
        dossier: The research dossier (used for the fallback)

    Returns:
        Parsed Synthesis. Missing fields fall back individually; an
        unparseable response falls back to the dossier.
    """
    data = parse_json_object(response or "")
    if data is None:
        logger.warning("Failed to parse synthesis, using raw research dossier")
        return fallback_synthesis(dossier)

    summary = data.get("summary")
    deep_dive = data.get("deepDive")

    return Synthesis(
        summary=summary if isinstance(summary, str) and summary else DEFAULT_SUMMARY,
        deep_dive=deep_dive if isinstance(deep_dive, str) and deep_dive else response,
    )
