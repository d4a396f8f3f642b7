"""Data models for research runs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..search import Source


class StepStatus(str, Enum):
    """Status of a single research step."""

    PENDING = "pending"
    SEARCHING = "searching"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"


class RunState(str, Enum):
    """State of the research run state machine."""

    IDLE = "idle"
    PLANNING = "planning"
    RESEARCHING = "researching"
    SYNTHESIZING = "synthesizing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        """Whether a run is in flight in this state."""
        return self in (RunState.PLANNING, RunState.RESEARCHING, RunState.SYNTHESIZING)

    @property
    def can_start_run(self) -> bool:
        """Whether a fresh run may start from this state."""
        return self in (RunState.IDLE, RunState.COMPLETED, RunState.ERROR)


# Allowed transitions; reset() back to IDLE is handled separately
RUN_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.IDLE: {RunState.PLANNING},
    RunState.PLANNING: {RunState.RESEARCHING, RunState.ERROR},
    RunState.RESEARCHING: {RunState.SYNTHESIZING, RunState.ERROR},
    RunState.SYNTHESIZING: {RunState.COMPLETED, RunState.ERROR},
    RunState.COMPLETED: {RunState.PLANNING},
    RunState.ERROR: {RunState.PLANNING},
}


@dataclass
class ResearchStep:
    """One sub-question of a research plan."""

    id: str
    query: str
    status: StepStatus = StepStatus.PENDING
    result: str | None = None
    sources: list[Source] | None = None

    def __post_init__(self):
        if not self.query or not self.query.strip():
            raise ValueError("Research step query must be non-empty")

    def snapshot(self) -> ResearchStep:
        """Copy of this step that later in-place updates will not touch."""
        return replace(
            self,
            sources=list(self.sources) if self.sources is not None else None,
        )


@dataclass
class StepFindings:
    """Outcome of executing one research step."""

    result: str
    sources: list[Source] = field(default_factory=list)


@dataclass
class Synthesis:
    """Final report text produced from the research dossier."""

    summary: str
    deep_dive: str


@dataclass(frozen=True)
class AnalysisResult:
    """Terminal result of a successful research run."""

    summary: str
    deep_dive: str
    steps: tuple[ResearchStep, ...]
    all_sources: tuple[Source, ...]

    @property
    def step_count(self) -> int:
        """Number of research steps in the run."""
        return len(self.steps)
