"""InsightFlow: provider-agnostic deep research agent."""

from .config import ProviderConfig, ProviderType, create_backend, load_config, validate_config
from .orchestration import AnalysisResult, ResearchOrchestrator, ResearchStep, RunState

__all__ = [
    "ProviderConfig",
    "ProviderType",
    "create_backend",
    "load_config",
    "validate_config",
    "AnalysisResult",
    "ResearchOrchestrator",
    "ResearchStep",
    "RunState",
]
