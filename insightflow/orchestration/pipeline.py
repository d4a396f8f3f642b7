"""
Research Orchestrator: the plan -> research -> synthesize state machine.

States:
    idle -> planning -> researching -> synthesizing -> completed
    planning | researching | synthesizing -> error

A run may start from idle, completed or error. Steps are executed strictly
one after another; a step's result and sources are committed before the
next step begins.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..exceptions import RunRejectedError
from .dedup import deduplicate_sources
from .models import (
    RUN_TRANSITIONS,
    AnalysisResult,
    ResearchStep,
    RunState,
    StepStatus,
)
from .reporting import NullReporter

if TYPE_CHECKING:
    from ..config.loader import ProviderConfig
    from ..llm.protocols import ReasoningBackend
    from ..search import Source
    from .reporting import ProgressReporter

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred during research."


class ResearchOrchestrator:
    """
    Drives one research run at a time against a reasoning backend.

    The orchestrator owns the step list and the aggregated sources for the
    duration of a run. Every status change is published to the reporter.

    Usage:
        orchestrator = ResearchOrchestrator(reporter=my_reporter)
        async with selection.backend as backend:
            result = await orchestrator.run(query, config, backend)
    """

    def __init__(self, reporter: ProgressReporter | None = None):
        """
        Initialize the orchestrator.

        Args:
            reporter: Optional receiver for state, step, result and error events
        """
        self.reporter = reporter or NullReporter()
        self.state = RunState.IDLE
        self.query: str | None = None
        self.steps: list[ResearchStep] = []
        self.result: AnalysisResult | None = None
        self.error: str | None = None
        self._sources: list[Source] = []

    def _clear(self) -> None:
        self.query = None
        self.steps = []
        self.result = None
        self.error = None
        self._sources = []

    async def _transition(self, new_state: RunState) -> None:
        if new_state not in RUN_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid run transition: {self.state.value} -> {new_state.value}"
            )

        logger.info(f"Run state: {self.state.value} -> {new_state.value}")
        self.state = new_state
        await self.reporter.on_state_changed(new_state)

    async def _publish_steps(self) -> None:
        await self.reporter.on_steps_updated([step.snapshot() for step in self.steps])

    def _check_can_start(self, query: str, config: ProviderConfig) -> None:
        if not self.state.can_start_run:
            raise RunRejectedError("A research run is already in progress")
        if not config.is_valid:
            raise RunRejectedError("Provider configuration has not been validated")
        if not query or not query.strip():
            raise RunRejectedError("Research query must not be empty")

    async def run(
        self,
        query: str,
        config: ProviderConfig,
        backend: ReasoningBackend,
        provider_name: str | None = None,
    ) -> AnalysisResult | None:
        """
        Run plan -> research -> synthesize for a query.

        Args:
            query: The research question
            config: Validated provider configuration, passed to every backend call
            backend: Reasoning backend (already entered if it is a context manager)
            provider_name: Name to publish for the backend; defaults to the
                backend's name for the model this configuration selects

        Returns:
            AnalysisResult on success, None if the run ended in the error state

        Raises:
            RunRejectedError: If a run is in flight, the configuration is not
                valid, or the query is empty. State is left unchanged.
        """
        self._check_can_start(query, config)
        self._clear()
        self.query = query

        await self._transition(RunState.PLANNING)

        try:
            await self.reporter.on_provider(provider_name or backend.get_provider_name(config))

            # Phase 1: Plan
            logger.info(f"Planning research for '{query}'")
            self.steps = await backend.generate_research_plan(query, config)
            await self._publish_steps()
            await self._transition(RunState.RESEARCHING)

            # Phase 2: Research, one step at a time
            for i, step in enumerate(self.steps):
                logger.info(f"Executing step {i + 1}/{len(self.steps)}: {step.query}")
                await self._execute_step(step, config, backend)

            # Phase 3: Synthesize
            await self._transition(RunState.SYNTHESIZING)
            synthesis = await backend.synthesize_analysis(query, self.steps, config)
        except Exception as e:
            await self._fail(e)
            return None

        self.result = AnalysisResult(
            summary=synthesis.summary,
            deep_dive=synthesis.deep_dive,
            steps=tuple(step.snapshot() for step in self.steps),
            all_sources=tuple(deduplicate_sources(self._sources)),
        )

        await self._transition(RunState.COMPLETED)
        await self.reporter.on_result(self.result)

        logger.info(
            f"Research complete: {len(self.steps)} steps, "
            f"{len(self.result.all_sources)} unique sources"
        )
        return self.result

    async def _execute_step(
        self,
        step: ResearchStep,
        config: ProviderConfig,
        backend: ReasoningBackend,
    ) -> None:
        step.status = StepStatus.SEARCHING
        await self._publish_steps()

        try:
            findings = await backend.execute_research_step(step.query, config)
        except Exception:
            step.status = StepStatus.FAILED
            await self._publish_steps()
            raise

        step.status = StepStatus.COMPLETED
        step.result = findings.result
        step.sources = list(findings.sources)
        self._sources.extend(findings.sources)
        await self._publish_steps()

    async def _fail(self, error: Exception) -> None:
        self.error = str(error) or DEFAULT_ERROR_MESSAGE
        logger.error(f"Research run failed during {self.state.value}: {self.error}", exc_info=error)

        await self._transition(RunState.ERROR)
        await self.reporter.on_error(self.error)

    async def reset(self) -> None:
        """
        Return to idle, discarding the previous run's steps and result.

        Raises:
            RunRejectedError: If a run is in flight
        """
        if self.state.is_active:
            raise RunRejectedError("Cannot reset while a research run is in progress")

        self._clear()
        if self.state != RunState.IDLE:
            self.state = RunState.IDLE
            await self.reporter.on_state_changed(RunState.IDLE)
