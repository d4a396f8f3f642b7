"""Progress reporting hooks for research runs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import AnalysisResult, ResearchStep, RunState


@runtime_checkable
class ProgressReporter(Protocol):
    """
    Receives the observable side effects of a research run.

    Steps are published after every status change as snapshots, so a
    reporter may keep them. The result or the error is published exactly
    once per run.
    """

    async def on_state_changed(self, state: RunState) -> None:
        """Called on every run state transition."""
        ...

    async def on_provider(self, provider_name: str) -> None:
        """Called once per run with the backend actually answering."""
        ...

    async def on_steps_updated(self, steps: list[ResearchStep]) -> None:
        """Called with the full step list after any step changes."""
        ...

    async def on_result(self, result: AnalysisResult) -> None:
        """Called when a run completes."""
        ...

    async def on_error(self, message: str) -> None:
        """Called when a run aborts."""
        ...


class NullReporter(ProgressReporter):
    """Reporter that ignores every event. Subclass it to handle a few."""

    async def on_state_changed(self, state: RunState) -> None:
        pass

    async def on_provider(self, provider_name: str) -> None:
        pass

    async def on_steps_updated(self, steps: list[ResearchStep]) -> None:
        pass

    async def on_result(self, result: AnalysisResult) -> None:
        pass

    async def on_error(self, message: str) -> None:
        pass
