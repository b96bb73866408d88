"""Configuration: settings table, validation and layered loading."""

from crew_planner.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    PROFILE_ENV_VAR,
    ConfigLoadError,
    dump_effective_config,
    env_var_name,
    load_config,
)
from crew_planner.config.schema import (
    BUILTIN_PROFILE_NAMES,
    BUILTIN_PROFILES,
    SETTINGS,
    ConfigDocument,
    ConfigValidationError,
    ConfigValidationIssue,
    PlannerConfig,
    Setting,
    build_config,
    default_config,
    merge_profiles,
    migration_guidance,
    read_document,
)

__all__ = [
    "BUILTIN_PROFILES",
    "BUILTIN_PROFILE_NAMES",
    "ConfigDocument",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "PROFILE_ENV_VAR",
    "PlannerConfig",
    "SETTINGS",
    "Setting",
    "build_config",
    "default_config",
    "dump_effective_config",
    "env_var_name",
    "load_config",
    "merge_profiles",
    "migration_guidance",
    "read_document",
]
