"""Reasoning backends behind a protocol-based adapter pattern."""

from .protocols import ReasoningBackend, Message, MessageRole
from .adapters import GeminiBackend, MiniMaxBackend, OllamaBackend, research_with_evidence
from .parsing import (
    build_dossier,
    extract_json_block,
    parse_research_plan,
    parse_synthesis,
)

__all__ = [
    # Protocols
    "ReasoningBackend",
    "Message",
    "MessageRole",
    # Adapters
    "GeminiBackend",
    "MiniMaxBackend",
    "OllamaBackend",
    "research_with_evidence",
    # Parsing
    "build_dossier",
    "extract_json_block",
    "parse_research_plan",
    "parse_synthesis",
]
