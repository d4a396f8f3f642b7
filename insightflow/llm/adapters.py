"""Reasoning backend implementations.

Three interchangeable backends share the ReasoningBackend contract:

- GeminiBackend grounds research steps itself through Google Search.
- MiniMaxBackend and OllamaBackend pair a chat/completion model with an
  external EvidenceSource (Tavily by default).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

import httpx
from openai import APIError, APIStatusError, AsyncOpenAI

from ..config.loader import ProviderType
from ..exceptions import ConfigurationError, TransportError
from ..orchestration.models import StepFindings
from ..search import EvidenceSource, Source, TavilySearchClient, format_search_context
from ..settings import (
    GEMINI_API_KEY,
    GEMINI_BASE_URL,
    GEMINI_DEFAULT_MODEL,
    MINIMAX_BASE_URL,
    MINIMAX_DEFAULT_MODEL,
    MINIMAX_MAX_TOKENS,
    OLLAMA_BASE_URL,
    OLLAMA_DEFAULT_MODEL,
    REQUEST_TIMEOUT,
    SEARCH_MAX_RESULTS,
)
from .parsing import (
    build_dossier,
    fallback_synthesis,
    parse_research_plan,
    parse_synthesis,
)
from .prompts import (
    ANALYSIS_PROMPT_TEMPLATE,
    ANALYSIS_SYSTEM_PROMPT,
    GEMINI_PLAN_PROMPT_TEMPLATE,
    GEMINI_STEP_PROMPT_TEMPLATE,
    GEMINI_SYNTHESIS_PROMPT_TEMPLATE,
    PLAN_PROMPT_TEMPLATE,
    PLAN_SYSTEM_PROMPT,
    SYNTHESIS_PROMPT_TEMPLATE,
    SYNTHESIS_SYSTEM_PROMPT,
    join_prompt,
)
from .protocols import Message, MessageRole, ReasoningBackend

if TYPE_CHECKING:
    from ..config.loader import ProviderConfig
    from ..orchestration.models import ResearchStep, Synthesis

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = "No information found for this query."
NO_GROUNDED_RESULT_MESSAGE = "No information found."

PLAN_TEMPERATURE = 0.5
DEFAULT_TEMPERATURE = 0.7


async def research_with_evidence(
    query: str,
    config: ProviderConfig,
    search: EvidenceSource,
    analyze: Callable[[str, str], Awaitable[str]],
) -> StepFindings:
    """
    Run one research step as web search followed by model analysis.

    Search failures propagate. Zero hits short-circuit without calling the
    model. A failed analysis call degrades to the raw search context.

    Args:
        query: The sub-question to research
        config: Current provider configuration (for the search credential)
        search: Evidence source to query
        analyze: Coroutine taking (query, context) and returning the analysis

    Returns:
        StepFindings with the analysis (or raw context) and the citations
    """
    response = await search.search(
        query,
        SEARCH_MAX_RESULTS,
        config.search_api_key or None,
    )

    if not response.hits:
        logger.info(f"No search hits for '{query}', skipping analysis")
        return StepFindings(result=NO_RESULTS_MESSAGE, sources=[])

    context = format_search_context(query, response.hits)

    try:
        analysis = await analyze(query, context)
    except TransportError as e:
        logger.warning(f"Analysis failed, returning raw search context: {e}")
        return StepFindings(result=context, sources=list(response.citations))

    return StepFindings(result=analysis, sources=list(response.citations))


class GeminiBackend(ReasoningBackend):
    """
    Gemini backend with built-in Google Search grounding.

    Needs no external evidence source: research steps return the grounding
    chunks of the response as sources.

    Usage:
        async with GeminiBackend() as backend:
            steps = await backend.generate_research_plan("...", config)
    """

    def __init__(
        self,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Gemini backend.

        Args:
            model: Default model. Defaults to GEMINI_DEFAULT_MODEL.
            transport: Optional httpx transport (used by tests)
        """
        self.model = model or GEMINI_DEFAULT_MODEL
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "GeminiBackend":
        self._client = httpx.AsyncClient(
            timeout=REQUEST_TIMEOUT,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    def get_provider_name(self, config: ProviderConfig | None = None) -> str:
        return "Gemini 3 Pro"

    def _api_key(self, config: ProviderConfig) -> str:
        # The primary credential only belongs to Gemini when Gemini was requested
        key = config.api_key if config.provider == ProviderType.GEMINI else ""
        key = key or GEMINI_API_KEY
        if not key:
            raise ConfigurationError("Please configure your Gemini API key in settings")
        return key

    def _model(self, config: ProviderConfig) -> str:
        if config.provider == ProviderType.GEMINI and config.model:
            return config.model
        return self.model

    async def _generate(
        self,
        prompt: str,
        config: ProviderConfig,
        temperature: float = DEFAULT_TEMPERATURE,
        response_schema: dict | None = None,
        grounded: bool = False,
    ) -> tuple[str, list[Source]]:
        """Call generateContent and return the response text and grounding sources."""
        api_key = self._api_key(config)
        model = self._model(config)

        generation_config: dict[str, Any] = {"temperature": temperature}
        if response_schema:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = response_schema

        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if grounded:
            body["tools"] = [{"google_search": {}}]

        logger.info(f"Completing prompt ({len(prompt)} chars) with {model}")
        logger.debug(f"Temperature: {temperature}, grounded: {grounded}")

        try:
            response = await self.client.post(
                f"{GEMINI_BASE_URL}/models/{model}:generateContent",
                headers={"x-goog-api-key": api_key},
                json=body,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Gemini API error: {e}") from e

        if not response.is_success:
            logger.error(f"Gemini error: {response.status_code} - {response.text[:200]}")
            raise TransportError(
                f"Gemini API error: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
            return self._response_text(data), self._grounding_sources(data)
        except (ValueError, AttributeError, TypeError, LookupError) as e:
            logger.error(f"Unreadable Gemini response: {response.text[:200]}")
            raise TransportError(
                f"Gemini API returned an unreadable response: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

    @staticmethod
    def _response_text(data: dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)

    @staticmethod
    def _grounding_sources(data: dict[str, Any]) -> list[Source]:
        candidates = data.get("candidates") or []
        if not candidates:
            return []
        metadata = candidates[0].get("groundingMetadata") or {}

        sources = []
        for chunk in metadata.get("groundingChunks") or []:
            web = chunk.get("web") or chunk
            uri = web.get("uri") or ""
            if uri:
                sources.append(Source(uri=uri, title=web.get("title") or ""))
        return sources

    async def generate_research_plan(
        self,
        query: str,
        config: ProviderConfig,
    ) -> list[ResearchStep]:
        text, _ = await self._generate(
            GEMINI_PLAN_PROMPT_TEMPLATE.format(query=query),
            config,
            temperature=PLAN_TEMPERATURE,
            response_schema={
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "query": {
                            "type": "STRING",
                            "description": "The specific sub-query to research",
                        }
                    },
                    "required": ["query"],
                },
            },
        )

        steps = parse_research_plan(text, query)
        logger.info(f"Created research plan with {len(steps)} steps")
        return steps

    async def execute_research_step(
        self,
        query: str,
        config: ProviderConfig,
    ) -> StepFindings:
        text, sources = await self._generate(
            GEMINI_STEP_PROMPT_TEMPLATE.format(query=query),
            config,
            grounded=True,
        )

        logger.info(f"Grounded step returned {len(sources)} sources")

        return StepFindings(
            result=text or NO_GROUNDED_RESULT_MESSAGE,
            sources=sources,
        )

    async def synthesize_analysis(
        self,
        original_query: str,
        steps: list[ResearchStep],
        config: ProviderConfig,
    ) -> Synthesis:
        dossier = build_dossier(steps)
        prompt = GEMINI_SYNTHESIS_PROMPT_TEMPLATE.format(
            query=original_query,
            dossier=dossier,
        )

        try:
            text, _ = await self._generate(
                prompt,
                config,
                response_schema={
                    "type": "OBJECT",
                    "properties": {
                        "summary": {"type": "STRING"},
                        "deepDive": {"type": "STRING"},
                    },
                    "required": ["summary", "deepDive"],
                },
            )
        except TransportError as e:
            logger.warning(f"Synthesis call failed, using raw research dossier: {e}")
            return fallback_synthesis(dossier)

        return parse_synthesis(text, dossier)


class MiniMaxBackend(ReasoningBackend):
    """
    Adapter for the MiniMax chat API with Tavily web search.

    MiniMax exposes an OpenAI-compatible API; requests carry the group id
    as the GroupId query parameter. A client is opened per call so that
    credential edits apply immediately.

    Usage:
        async with MiniMaxBackend() as backend:
            findings = await backend.execute_research_step("...", config)
    """

    def __init__(
        self,
        search: EvidenceSource | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the MiniMax backend.

        Args:
            search: Evidence source for research steps. Defaults to TavilySearchClient.
            model: Default model. Defaults to MINIMAX_DEFAULT_MODEL.
            transport: Optional httpx transport for the chat API (used by tests)
        """
        self.search = search or TavilySearchClient()
        self.model = model or MINIMAX_DEFAULT_MODEL
        self._transport = transport

    async def __aenter__(self) -> "MiniMaxBackend":
        if hasattr(self.search, "__aenter__"):
            await self.search.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if hasattr(self.search, "__aexit__"):
            await self.search.__aexit__(exc_type, exc_val, exc_tb)

    def get_provider_name(self, config: ProviderConfig | None = None) -> str:
        return "MiniMax M2.5"

    async def _chat(
        self,
        messages: list[Message],
        config: ProviderConfig,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> str:
        """Send a conversation to MiniMax and return the completion text."""
        if not config.api_key or not config.group_id:
            raise ConfigurationError("MiniMax API key or Group ID not configured")

        model = config.model or self.model
        http_client = (
            httpx.AsyncClient(transport=self._transport, timeout=REQUEST_TIMEOUT)
            if self._transport
            else None
        )

        logger.info(f"Completing {len(messages)} messages with {model}")

        async with AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url or MINIMAX_BASE_URL,
            default_query={"GroupId": config.group_id},
            max_retries=0,
            timeout=REQUEST_TIMEOUT,
            http_client=http_client,
        ) as client:
            try:
                response = await client.chat.completions.create(
                    model=model,
                    messages=[
                        {"role": msg.role.value, "content": msg.content}
                        for msg in messages
                    ],
                    temperature=temperature,
                    max_tokens=MINIMAX_MAX_TOKENS,
                    stream=False,
                )
            except APIStatusError as e:
                logger.error(f"MiniMax error: {e.status_code} - {e.response.text[:200]}")
                raise TransportError(
                    f"MiniMax API error: {e.response.text}",
                    status_code=e.status_code,
                    body=e.response.text,
                ) from e
            except APIError as e:
                raise TransportError(f"MiniMax API error: {e}") from e

        if not getattr(response, "choices", None):
            raise TransportError("No response from MiniMax API")

        result = response.choices[0].message.content or ""
        logger.info(f"Completion received ({len(result)} chars)")
        return result

    async def generate_research_plan(
        self,
        query: str,
        config: ProviderConfig,
    ) -> list[ResearchStep]:
        response = await self._chat(
            [
                Message(role=MessageRole.SYSTEM, content=PLAN_SYSTEM_PROMPT),
                Message(role=MessageRole.USER, content=PLAN_PROMPT_TEMPLATE.format(query=query)),
            ],
            config,
            temperature=PLAN_TEMPERATURE,
        )

        steps = parse_research_plan(response, query)
        logger.info(f"Created research plan with {len(steps)} steps")
        return steps

    async def execute_research_step(
        self,
        query: str,
        config: ProviderConfig,
    ) -> StepFindings:
        async def analyze(step_query: str, context: str) -> str:
            return await self._chat(
                [
                    Message(role=MessageRole.SYSTEM, content=ANALYSIS_SYSTEM_PROMPT),
                    Message(
                        role=MessageRole.USER,
                        content=ANALYSIS_PROMPT_TEMPLATE.format(query=step_query, context=context),
                    ),
                ],
                config,
            )

        return await research_with_evidence(query, config, self.search, analyze)

    async def synthesize_analysis(
        self,
        original_query: str,
        steps: list[ResearchStep],
        config: ProviderConfig,
    ) -> Synthesis:
        dossier = build_dossier(steps)

        try:
            response = await self._chat(
                [
                    Message(role=MessageRole.SYSTEM, content=SYNTHESIS_SYSTEM_PROMPT),
                    Message(
                        role=MessageRole.USER,
                        content=SYNTHESIS_PROMPT_TEMPLATE.format(query=original_query, dossier=dossier),
                    ),
                ],
                config,
            )
        except TransportError as e:
            logger.warning(f"Synthesis call failed, using raw research dossier: {e}")
            return fallback_synthesis(dossier)

        return parse_synthesis(response, dossier)


class OllamaBackend(ReasoningBackend):
    """
    Adapter for a local Ollama server with Tavily web search.

    The server URL and model are re-read from the configuration on every
    request.

    Usage:
        async with OllamaBackend() as backend:
            synthesis = await backend.synthesize_analysis("...", steps, config)
    """

    def __init__(
        self,
        search: EvidenceSource | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Ollama backend.

        Args:
            search: Evidence source for research steps. Defaults to TavilySearchClient.
            model: Default model. Defaults to OLLAMA_DEFAULT_MODEL.
            transport: Optional httpx transport (used by tests)
        """
        self.search = search or TavilySearchClient()
        self.model = model or OLLAMA_DEFAULT_MODEL
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "OllamaBackend":
        self._client = httpx.AsyncClient(
            timeout=REQUEST_TIMEOUT,
            transport=self._transport,
        )
        if hasattr(self.search, "__aenter__"):
            await self.search.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if hasattr(self.search, "__aexit__"):
            await self.search.__aexit__(exc_type, exc_val, exc_tb)
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    def get_provider_name(self, config: ProviderConfig | None = None) -> str:
        return f"Ollama {self._model(config)}"

    def _model(self, config: ProviderConfig | None) -> str:
        if config is not None and config.model:
            return config.model
        return self.model

    async def _generate(
        self,
        prompt: str,
        config: ProviderConfig,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> str:
        """Call /api/generate and return the completion text."""
        base_url = (config.base_url or OLLAMA_BASE_URL).rstrip("/")
        model = self._model(config)

        logger.info(f"Completing prompt ({len(prompt)} chars) with {model} at {base_url}")

        try:
            response = await self.client.post(
                f"{base_url}/api/generate",
                json={
                    "model": model,
                    "prompt": prompt,
                    "stream": False,
                    "options": {"temperature": temperature},
                },
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Ollama API error: {e}") from e

        if not response.is_success:
            logger.error(f"Ollama error: {response.status_code} - {response.text[:200]}")
            raise TransportError(
                f"Ollama API error: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            text = response.json().get("response") or ""
            if not isinstance(text, str):
                raise TypeError(f"expected a string completion, got {type(text).__name__}")
        except (ValueError, AttributeError, TypeError) as e:
            logger.error(f"Unreadable Ollama response: {response.text[:200]}")
            raise TransportError(
                f"Ollama API returned an unreadable response: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        return text

    async def generate_research_plan(
        self,
        query: str,
        config: ProviderConfig,
    ) -> list[ResearchStep]:
        response = await self._generate(
            join_prompt(PLAN_SYSTEM_PROMPT, f'Query: "{query}"'),
            config,
            temperature=PLAN_TEMPERATURE,
        )

        steps = parse_research_plan(response, query)
        logger.info(f"Created research plan with {len(steps)} steps")
        return steps

    async def execute_research_step(
        self,
        query: str,
        config: ProviderConfig,
    ) -> StepFindings:
        async def analyze(step_query: str, context: str) -> str:
            return await self._generate(
                join_prompt(
                    ANALYSIS_SYSTEM_PROMPT,
                    ANALYSIS_PROMPT_TEMPLATE.format(query=step_query, context=context),
                ),
                config,
            )

        return await research_with_evidence(query, config, self.search, analyze)

    async def synthesize_analysis(
        self,
        original_query: str,
        steps: list[ResearchStep],
        config: ProviderConfig,
    ) -> Synthesis:
        dossier = build_dossier(steps)

        try:
            response = await self._generate(
                join_prompt(
                    SYNTHESIS_SYSTEM_PROMPT,
                    SYNTHESIS_PROMPT_TEMPLATE.format(query=original_query, dossier=dossier),
                ),
                config,
            )
        except TransportError as e:
            logger.warning(f"Synthesis call failed, using raw research dossier: {e}")
            return fallback_synthesis(dossier)

        return parse_synthesis(response, dossier)
