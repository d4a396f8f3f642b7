"""Protocol definitions for reasoning backends."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel

if TYPE_CHECKING:
    from ..config.loader import ProviderConfig
    from ..orchestration.models import ResearchStep, StepFindings, Synthesis


class MessageRole(str, Enum):
    """Role of a message in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A message in a conversation."""

    role: MessageRole
    content: str


@runtime_checkable
class ReasoningBackend(Protocol):
    """Protocol for reasoning backends.

    Implement this protocol to add support for a new model API. The provider
    configuration is passed into every call and never cached, so an edit to
    the configuration takes effect on the next call.
    """

    def get_provider_name(self, config: ProviderConfig | None = None) -> str:
        """Display name of the backend, for the model the configuration selects."""
        ...

    async def generate_research_plan(
        self,
        query: str,
        config: ProviderConfig,
    ) -> list[ResearchStep]:
        """
        Break a research question into 3-4 sub-questions.

        Args:
            query: The user's research question
            config: Current provider configuration

        Returns:
            Pending research steps. A malformed model response yields a
            single step holding the original query.
        """
        ...

    async def execute_research_step(
        self,
        query: str,
        config: ProviderConfig,
    ) -> StepFindings:
        """
        Gather web-grounded findings for one sub-question.

        Args:
            query: The sub-question to research
            config: Current provider configuration

        Returns:
            StepFindings with the answer text and its sources
        """
        ...

    async def synthesize_analysis(
        self,
        original_query: str,
        steps: list[ResearchStep],
        config: ProviderConfig,
    ) -> Synthesis:
        """
        Turn completed steps into an executive summary and a deep dive.

        Args:
            original_query: The user's research question
            steps: Completed research steps in execution order
            config: Current provider configuration

        Returns:
            Synthesis; degrades to the raw dossier instead of failing
        """
        ...
