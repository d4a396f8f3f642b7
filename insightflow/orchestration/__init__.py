"""Orchestration of research runs.

The orchestrator drives a single run through planning, sequential step
research and synthesis against any ReasoningBackend, publishing progress
to a ProgressReporter.
"""

from .models import (
    StepStatus,
    RunState,
    ResearchStep,
    StepFindings,
    Synthesis,
    AnalysisResult,
)
from .dedup import deduplicate_sources
from .reporting import ProgressReporter, NullReporter
from .pipeline import ResearchOrchestrator

__all__ = [
    # Models
    "StepStatus",
    "RunState",
    "ResearchStep",
    "StepFindings",
    "Synthesis",
    "AnalysisResult",
    # Deduplication
    "deduplicate_sources",
    # Reporting
    "ProgressReporter",
    "NullReporter",
    # Orchestrator
    "ResearchOrchestrator",
]
