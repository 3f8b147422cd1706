"""Application configuration helpers."""

from __future__ import annotations

from .competition import CompetitionGateConfig, get_competition_gate_config
from .env import env_flag, env_terms, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .importing import ImportConfig, get_import_config
from .sanitizer import SanitizerConfig, get_sanitizer_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CompetitionGateConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "ImportConfig",
    "MissingConfigurationError",
    "SanitizerConfig",
    "StorageConfig",
    "env_flag",
    "env_terms",
    "get_competition_gate_config",
    "get_database_config",
    "get_import_config",
    "get_sanitizer_config",
    "get_storage_config",
    "require_env_vars",
]
