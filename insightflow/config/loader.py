"""Provider configuration with Pydantic validation and env var expansion."""

import logging
import os
import re
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "providers.yaml"


class ProviderType(str, Enum):
    """Reasoning backends that can run a research session."""

    GEMINI = "gemini"
    MINIMAX = "minimax"
    OLLAMA = "ollama"


class ProviderConfig(BaseModel):
    """Configuration for the reasoning backend of a research run.

    ``is_valid`` is only ever set by a successful validation. Assigning any
    other field resets it, so an edited credential can never look ready.
    """

    model_config = ConfigDict(validate_assignment=True)

    provider: ProviderType = ProviderType.GEMINI
    api_key: str = ""
    group_id: str | None = None  # MiniMax
    base_url: str | None = None  # Endpoint override (Ollama server URL)
    model: str | None = None  # Model override
    search_api_key: str | None = None  # Tavily, for MiniMax and Ollama
    is_valid: bool = False

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        if name != "is_valid":
            super().__setattr__("is_valid", False)

    def mark_valid(self) -> None:
        """Record a successful validation."""
        super().__setattr__("is_valid", True)

    def with_changes(self, **changes: Any) -> "ProviderConfig":
        """Return an edited copy. The copy always needs validating again."""
        data = self.model_dump()
        data.update(changes)
        data["is_valid"] = False
        return ProviderConfig.model_validate(data)


class ConfigFile(BaseModel):
    """Root configuration file structure."""

    profiles: dict[str, ProviderConfig]


def expand_env_vars(value: str) -> str:
    """Expand ${VAR} references in string with environment variables.

    Unset variables expand to an empty string so that a missing credential
    reads as missing rather than as the literal reference.

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars expanded
    """
    if not isinstance(value, str):
        return value

    pattern = r"\$\{([^}]+)\}"

    def replacer(match):
        return os.environ.get(match.group(1), "")

    return re.sub(pattern, replacer, value)


def expand_env_vars_recursive(data):
    """Recursively expand env vars in nested dict/list structures.

    Args:
        data: Dict, list, or primitive value

    Returns:
        Data structure with all env vars expanded
    """
    if isinstance(data, dict):
        return {k: expand_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def list_profiles(config_path: Path = DEFAULT_CONFIG_PATH) -> dict[str, ProviderConfig]:
    """Load every profile from a YAML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
    """
    with open(config_path) as f:
        raw_data = yaml.safe_load(f) or {}

    config_file = ConfigFile(**expand_env_vars_recursive(raw_data))

    # A stored flag is never trusted; every loaded profile must be validated again
    for profile in config_file.profiles.values():
        profile.is_valid = False

    return config_file.profiles


def load_config_from_yaml(config_path: Path, profile_name: str) -> ProviderConfig:
    """Load a provider profile from YAML file.

    Args:
        config_path: Path to config YAML file
        profile_name: Name of profile to load

    Returns:
        ProviderConfig for the requested profile

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
        KeyError: If profile doesn't exist
    """
    profiles = list_profiles(config_path)

    if profile_name not in profiles:
        available = ", ".join(profiles.keys())
        raise KeyError(
            f"Profile '{profile_name}' not found. " f"Available profiles: {available}"
        )

    return profiles[profile_name]


def load_config_from_env() -> ProviderConfig:
    """Load configuration from environment variables (fallback mode).

    LLM_PROVIDER picks the backend; unknown values select Gemini.

    Returns:
        ProviderConfig constructed from environment variables
    """
    name = (os.environ.get("LLM_PROVIDER") or "").lower()
    try:
        provider = ProviderType(name)
    except ValueError:
        provider = ProviderType.GEMINI

    if provider == ProviderType.MINIMAX:
        return ProviderConfig(
            provider=provider,
            api_key=os.environ.get("MINIMAX_API_KEY", ""),
            group_id=os.environ.get("MINIMAX_GROUP_ID"),
            model=os.environ.get("MINIMAX_MODEL"),
            search_api_key=os.environ.get("TAVILY_API_KEY"),
        )

    if provider == ProviderType.OLLAMA:
        return ProviderConfig(
            provider=provider,
            base_url=os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434"),
            model=os.environ.get("OLLAMA_MODEL"),
            search_api_key=os.environ.get("TAVILY_API_KEY"),
        )

    return ProviderConfig(
        provider=ProviderType.GEMINI,
        api_key=os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY", ""),
        model=os.environ.get("GEMINI_MODEL"),
    )


def load_config(
    profile: str | None = None,
    config_path: Path | None = None,
) -> ProviderConfig:
    """Load provider configuration from YAML file or environment variables.

    This is the main entry point for loading configuration. It tries the
    YAML profile first and falls back to environment variables if the file
    doesn't exist or can't be read.

    Args:
        profile: Profile name to load. If None, uses INSIGHTFLOW_PROFILE env var
                or "default".
        config_path: Path to config file. If None, uses the bundled
                    insightflow/config/providers.yaml.

    Returns:
        ProviderConfig, always with is_valid=False

    Raises:
        KeyError: If requested profile doesn't exist
    """
    if profile is None:
        profile = os.environ.get("INSIGHTFLOW_PROFILE", "default")

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.info(f"Config file {config_path} not found, using environment variables")
        return load_config_from_env()

    try:
        return load_config_from_yaml(config_path, profile)
    except KeyError:
        raise
    except Exception as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Falling back to environment variables...")
        return load_config_from_env()
