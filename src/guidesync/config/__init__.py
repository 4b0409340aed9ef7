"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError, PolicyError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .pipeline import PipelineConfig, get_pipeline_config
from .sources import CodexConfig, GuideConfig, get_codex_config, get_guide_config
from .storage import StorageConfig, get_storage_config

__all__ = [
    "CacheConfig",
    "CodexConfig",
    "ConfigurationError",
    "GuideConfig",
    "MissingConfigurationError",
    "PipelineConfig",
    "PolicyError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_codex_config",
    "get_guide_config",
    "get_pipeline_config",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]
