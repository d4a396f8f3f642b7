"""Configuration validation gate for research runs."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from typing import TYPE_CHECKING, Callable

from ..exceptions import ConfigurationError
from .factory import BackendSelection, create_backend
from .loader import ProviderType

if TYPE_CHECKING:
    from .loader import ProviderConfig

logger = logging.getLogger(__name__)

PROBE_QUERY = "test"


class ConfigValidator:
    """
    Marks a provider configuration as valid before a run may start.

    Gemini only needs a primary credential. MiniMax and Ollama also need a
    live probe: a research plan for a trivial query must come back without
    an error. The probe's plan is discarded.
    """

    def __init__(
        self,
        backend_factory: Callable[..., BackendSelection] = create_backend,
    ):
        """
        Initialize the validator.

        Args:
            backend_factory: Builds the backend to probe (create_backend signature)
        """
        self.backend_factory = backend_factory
        self.last_error: str | None = None

    async def validate(self, config: ProviderConfig) -> bool:
        """
        Validate a configuration and record the outcome on it.

        Args:
            config: Configuration to validate; is_valid is set on success

        Returns:
            True if the configuration is usable
        """
        self.last_error = None
        before = config.model_dump(exclude={"is_valid"})

        try:
            await self._check(config)
        except Exception as e:
            self.last_error = str(e) or type(e).__name__
            logger.warning(f"{config.provider.value} validation failed: {self.last_error}")
            return False

        if config.model_dump(exclude={"is_valid"}) != before:
            self.last_error = "Configuration changed during validation"
            logger.warning(self.last_error)
            return False

        config.mark_valid()
        logger.info(f"{config.provider.value} configuration validated")
        return True

    async def _check(self, config: ProviderConfig) -> None:
        if config.provider == ProviderType.GEMINI:
            if not config.api_key.strip():
                raise ConfigurationError("Gemini API key is required")
            return

        selection = self.backend_factory(config, strict=True)

        async with AsyncExitStack() as stack:
            backend = selection.backend
            if hasattr(backend, "__aenter__"):
                await stack.enter_async_context(backend)

            logger.info(f"Probing {selection.provider_name}")
            await backend.generate_research_plan(PROBE_QUERY, config)


async def validate_config(config: ProviderConfig) -> bool:
    """
    Convenience function to validate a configuration.

    Example:
        config = load_config(profile="minimax")
        if await validate_config(config):
            ...
    """
    return await ConfigValidator().validate(config)
