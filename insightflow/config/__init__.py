"""Provider configuration, backend selection and validation."""

from .loader import (
    load_config,
    load_config_from_env,
    load_config_from_yaml,
    list_profiles,
    ProviderConfig,
    ProviderType,
)
from .factory import (
    BackendSelection,
    create_backend,
    create_search_source,
    missing_required_fields,
)
from .validator import ConfigValidator, validate_config

__all__ = [
    # Loader
    "load_config",
    "load_config_from_env",
    "load_config_from_yaml",
    "list_profiles",
    "ProviderConfig",
    "ProviderType",
    # Factory
    "BackendSelection",
    "create_backend",
    "create_search_source",
    "missing_required_fields",
    # Validator
    "ConfigValidator",
    "validate_config",
]
