"""Factory functions to create backends from configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..exceptions import ConfigurationError
from .loader import ProviderType

if TYPE_CHECKING:
    from ..llm.protocols import ReasoningBackend
    from ..search.protocols import EvidenceSource
    from .loader import ProviderConfig

logger = logging.getLogger(__name__)


@dataclass
class BackendSelection:
    """The backend chosen for a configuration and how it was chosen."""

    backend: ReasoningBackend
    requested: ProviderType
    provider: ProviderType
    substitution_reason: str | None = None

    @property
    def substituted(self) -> bool:
        """Whether the default backend replaced the requested one."""
        return self.provider != self.requested

    @property
    def provider_name(self) -> str:
        return self.backend.get_provider_name()


def missing_required_fields(config: ProviderConfig) -> list[str]:
    """
    List the selection-time required fields the configuration lacks.

    Gemini needs nothing here; its key is checked by the validator and on
    every call.

    Args:
        config: Provider configuration

    Returns:
        Names of missing fields (empty if the backend can be built)
    """
    if config.provider == ProviderType.MINIMAX:
        return [
            name
            for name, value in (("api_key", config.api_key), ("group_id", config.group_id))
            if not value
        ]

    if config.provider == ProviderType.OLLAMA:
        # base_url defaults to the local server; an explicit blank is an error
        return ["base_url"] if config.base_url is not None and not config.base_url.strip() else []

    return []


def create_search_source(api_key: str | None = None) -> EvidenceSource:
    """Create the web evidence source used by search-augmented backends.

    Args:
        api_key: Optional default credential

    Returns:
        EvidenceSource instance (TavilySearchClient)
    """
    from ..search import TavilySearchClient

    return TavilySearchClient(api_key=api_key)


def _build_backend(
    provider: ProviderType,
    config: ProviderConfig,
    search: EvidenceSource | None,
) -> ReasoningBackend:
    if provider == ProviderType.MINIMAX:
        from ..llm import MiniMaxBackend

        return MiniMaxBackend(search=search or create_search_source())

    elif provider == ProviderType.OLLAMA:
        from ..llm import OllamaBackend

        return OllamaBackend(
            search=search or create_search_source(),
            model=config.model,
        )

    elif provider == ProviderType.GEMINI:
        from ..llm import GeminiBackend

        return GeminiBackend()

    else:
        raise ValueError(f"Unsupported provider: {provider}")


def create_backend(
    config: ProviderConfig,
    search: EvidenceSource | None = None,
    strict: bool = False,
) -> BackendSelection:
    """Create the reasoning backend for a provider configuration.

    If the requested backend lacks required fields, the self-grounding
    Gemini backend is used instead and the substitution is recorded on the
    returned selection.

    Args:
        config: Provider configuration
        search: Optional evidence source for search-augmented backends
        strict: Raise instead of substituting the default backend

    Returns:
        BackendSelection holding the backend instance

    Raises:
        ConfigurationError: If strict and required fields are missing
    """
    requested = config.provider
    missing = missing_required_fields(config)

    if not missing:
        backend = _build_backend(requested, config, search)
        logger.info(f"Using AI provider: {backend.get_provider_name()}")
        return BackendSelection(backend=backend, requested=requested, provider=requested)

    reason = f"{requested.value} is missing {', '.join(missing)}"

    if strict:
        raise ConfigurationError(f"Provider not configured: {reason}")

    logger.warning(f"{reason}; falling back to {ProviderType.GEMINI.value}")
    backend = _build_backend(ProviderType.GEMINI, config, search)

    return BackendSelection(
        backend=backend,
        requested=requested,
        provider=ProviderType.GEMINI,
        substitution_reason=reason,
    )
