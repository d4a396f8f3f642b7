"""
Configuration System Tests

Tests for the YAML profile loader, backend selection and the validation
gate in front of research runs.
"""

import asyncio
from pathlib import Path

import httpx
import pytest

from insightflow.config import (
    BackendSelection,
    ConfigValidator,
    ProviderConfig,
    ProviderType,
    create_backend,
    list_profiles,
    load_config,
    load_config_from_env,
    load_config_from_yaml,
    missing_required_fields,
)
from insightflow.exceptions import ConfigurationError, RunRejectedError
from insightflow.llm import GeminiBackend, MiniMaxBackend, OllamaBackend
from insightflow.orchestration import ResearchOrchestrator, ResearchStep, RunState
from insightflow.search import SearchResponse

PROFILES_YAML = """
profiles:
  default:
    provider: gemini
    api_key: ${TEST_GEMINI_KEY}

  minimax:
    provider: minimax
    api_key: ${TEST_MINIMAX_KEY}
    group_id: ${TEST_MINIMAX_GROUP}
    search_api_key: tvly-static
    is_valid: true

  local:
    provider: ollama
    base_url: http://gpu-box:11434
    model: qwen2.5
"""


def write_profiles(tmp_path: Path) -> Path:
    path = tmp_path / "providers.yaml"
    path.write_text(PROFILES_YAML)
    return path


class ProbeBackend:
    """Backend double that records validation probes."""

    def __init__(self, error: Exception | None = None, on_probe=None):
        self.error = error
        self.on_probe = on_probe
        self.probes = []

    def get_provider_name(self, config=None) -> str:
        return "Probe"

    async def generate_research_plan(self, query, config):
        self.probes.append(query)
        if self.on_probe:
            self.on_probe(config)
        if self.error:
            raise self.error
        return [ResearchStep(id="step-0", query=query)]


def factory_for(backend):
    def factory(config, strict=False):
        return BackendSelection(
            backend=backend,
            requested=config.provider,
            provider=config.provider,
        )

    return factory


class EmptySearch:
    async def search(self, query, max_results=5, api_key=None):
        return SearchResponse()


# =============================================================================
# ProviderConfig
# =============================================================================


def test_editing_config_clears_validity():
    """Any field edit after validation makes the config unvalidated again."""
    config = ProviderConfig(provider=ProviderType.MINIMAX, api_key="k", group_id="g")
    assert config.is_valid is False

    config.mark_valid()
    assert config.is_valid is True

    config.api_key = "other"
    assert config.is_valid is False

    config.mark_valid()
    config.group_id = "g2"
    assert config.is_valid is False


def test_with_changes_returns_unvalidated_copy():
    config = ProviderConfig(provider=ProviderType.OLLAMA, model="llama3.2")
    config.mark_valid()

    edited = config.with_changes(model="qwen2.5")

    assert edited.model == "qwen2.5"
    assert edited.is_valid is False
    assert config.model == "llama3.2"
    assert config.is_valid is True


def test_provider_must_be_known():
    with pytest.raises(ValueError):
        ProviderConfig(provider="claude")


# =============================================================================
# Loader
# =============================================================================


def test_load_config_from_yaml(tmp_path, monkeypatch):
    """Profiles load with ${VAR} expansion and never load as validated."""
    monkeypatch.setenv("TEST_MINIMAX_KEY", "mm-key")
    monkeypatch.setenv("TEST_MINIMAX_GROUP", "group-42")
    monkeypatch.delenv("TEST_GEMINI_KEY", raising=False)
    path = write_profiles(tmp_path)

    minimax = load_config_from_yaml(path, "minimax")
    assert minimax.provider == ProviderType.MINIMAX
    assert minimax.api_key == "mm-key"
    assert minimax.group_id == "group-42"
    assert minimax.search_api_key == "tvly-static"
    assert minimax.is_valid is False

    gemini = load_config_from_yaml(path, "default")
    assert gemini.provider == ProviderType.GEMINI
    assert gemini.api_key == ""

    local = load_config_from_yaml(path, "local")
    assert local.base_url == "http://gpu-box:11434"
    assert local.model == "qwen2.5"


def test_unknown_profile_raises_key_error(tmp_path):
    path = write_profiles(tmp_path)

    with pytest.raises(KeyError) as exc_info:
        load_config(profile="missing", config_path=path)

    assert "default, minimax, local" in str(exc_info.value)


def test_missing_file_falls_back_to_env(tmp_path, monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "ollama")
    monkeypatch.setenv("OLLAMA_MODEL", "mistral")
    monkeypatch.setenv("TAVILY_API_KEY", "tvly-env")
    monkeypatch.delenv("OLLAMA_BASE_URL", raising=False)

    config = load_config(profile="default", config_path=tmp_path / "absent.yaml")

    assert config.provider == ProviderType.OLLAMA
    assert config.model == "mistral"
    assert config.base_url == "http://localhost:11434"
    assert config.search_api_key == "tvly-env"
    assert config.is_valid is False


def test_env_fallback_defaults_to_gemini(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "something-else")
    monkeypatch.setenv("GEMINI_API_KEY", "g-key")

    config = load_config_from_env()

    assert config.provider == ProviderType.GEMINI
    assert config.api_key == "g-key"


def test_bundled_profiles():
    profiles = list_profiles()

    assert set(profiles) == {"default", "minimax", "local"}
    assert profiles["default"].provider == ProviderType.GEMINI
    assert profiles["minimax"].provider == ProviderType.MINIMAX
    assert profiles["local"].provider == ProviderType.OLLAMA
    assert all(not p.is_valid for p in profiles.values())


# =============================================================================
# Backend selection
# =============================================================================


def test_create_backend_per_provider():
    minimax = create_backend(
        ProviderConfig(provider=ProviderType.MINIMAX, api_key="k", group_id="g"),
        search=EmptySearch(),
    )
    assert isinstance(minimax.backend, MiniMaxBackend)
    assert not minimax.substituted
    assert minimax.provider_name == "MiniMax M2.5"

    ollama = create_backend(
        ProviderConfig(provider=ProviderType.OLLAMA, model="qwen2.5"),
        search=EmptySearch(),
    )
    assert isinstance(ollama.backend, OllamaBackend)
    assert ollama.provider_name == "Ollama qwen2.5"

    gemini = create_backend(ProviderConfig(provider=ProviderType.GEMINI))
    assert isinstance(gemini.backend, GeminiBackend)
    assert gemini.provider_name == "Gemini 3 Pro"


def test_incomplete_config_substitutes_gemini():
    """Missing required fields select Gemini, and the selection says so."""
    config = ProviderConfig(provider=ProviderType.MINIMAX, api_key="k")
    assert missing_required_fields(config) == ["group_id"]

    selection = create_backend(config)

    assert isinstance(selection.backend, GeminiBackend)
    assert selection.requested == ProviderType.MINIMAX
    assert selection.provider == ProviderType.GEMINI
    assert selection.substituted
    assert "group_id" in selection.substitution_reason


def test_ollama_blank_base_url_is_missing():
    assert missing_required_fields(ProviderConfig(provider=ProviderType.OLLAMA)) == []
    assert missing_required_fields(
        ProviderConfig(provider=ProviderType.OLLAMA, base_url="  ")
    ) == ["base_url"]


def test_strict_selection_raises():
    config = ProviderConfig(provider=ProviderType.MINIMAX)

    with pytest.raises(ConfigurationError):
        create_backend(config, strict=True)


# =============================================================================
# Validator
# =============================================================================


def test_gemini_validation_needs_only_a_key():
    backend = ProbeBackend()
    validator = ConfigValidator(backend_factory=factory_for(backend))

    config = ProviderConfig(provider=ProviderType.GEMINI, api_key="  ")
    assert asyncio.run(validator.validate(config)) is False
    assert config.is_valid is False
    assert validator.last_error

    config.api_key = "g-key"
    assert asyncio.run(validator.validate(config)) is True
    assert config.is_valid is True
    assert backend.probes == []


def test_probe_success_marks_valid():
    backend = ProbeBackend()
    validator = ConfigValidator(backend_factory=factory_for(backend))
    config = ProviderConfig(provider=ProviderType.OLLAMA, model="llama3.2")

    assert asyncio.run(validator.validate(config)) is True
    assert config.is_valid is True
    assert backend.probes == ["test"]
    assert validator.last_error is None


def test_probe_failure_keeps_config_invalid():
    backend = ProbeBackend(error=ConnectionError("connection refused"))
    validator = ConfigValidator(backend_factory=factory_for(backend))
    config = ProviderConfig(provider=ProviderType.OLLAMA)

    assert asyncio.run(validator.validate(config)) is False
    assert config.is_valid is False
    assert validator.last_error == "connection refused"


def test_incomplete_config_fails_validation():
    config = ProviderConfig(provider=ProviderType.MINIMAX, api_key="k")

    assert asyncio.run(ConfigValidator().validate(config)) is False
    assert config.is_valid is False


def test_edit_during_probe_is_not_validated():
    def edit(config):
        config.model = "changed-mid-probe"

    backend = ProbeBackend(on_probe=edit)
    validator = ConfigValidator(backend_factory=factory_for(backend))
    config = ProviderConfig(provider=ProviderType.OLLAMA)

    assert asyncio.run(validator.validate(config)) is False
    assert config.is_valid is False


def test_invalid_credential_blocks_runs():
    """A rejected MiniMax key leaves the config invalid and no run can start."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(401, json={"base_resp": {"status_msg": "invalid api key"}})

    def factory(config, strict=False):
        backend = MiniMaxBackend(search=EmptySearch(), transport=httpx.MockTransport(handler))
        return BackendSelection(backend=backend, requested=config.provider, provider=config.provider)

    config = ProviderConfig(provider=ProviderType.MINIMAX, api_key="wrong", group_id="g")
    validator = ConfigValidator(backend_factory=factory)

    assert asyncio.run(validator.validate(config)) is False
    assert config.is_valid is False
    assert "invalid api key" in validator.last_error
    assert len(requests) == 1

    orchestrator = ResearchOrchestrator()
    backend = ProbeBackend()

    with pytest.raises(RunRejectedError):
        asyncio.run(orchestrator.run("impact of AI on education", config, backend))

    assert orchestrator.state == RunState.IDLE
    assert backend.probes == []


def main():
    """Run the tests that need no pytest fixtures."""
    test_editing_config_clears_validity()
    test_with_changes_returns_unvalidated_copy()
    test_provider_must_be_known()
    test_bundled_profiles()
    test_create_backend_per_provider()
    test_incomplete_config_substitutes_gemini()
    test_ollama_blank_base_url_is_missing()
    test_strict_selection_raises()
    test_gemini_validation_needs_only_a_key()
    test_probe_success_marks_valid()
    test_probe_failure_keeps_config_invalid()
    test_incomplete_config_fails_validation()
    test_edit_during_probe_is_not_validated()
    test_invalid_credential_blocks_runs()
    print("ALL CONFIG TESTS PASSED!")


if __name__ == "__main__":
    main()
