"""Configuration loading for formgraph."""

from ._defaults import CONFIG_FILE_NAME, DEFAULT_CONFIG, ENV_PREFIX
from ._loader import (
    copy_value,
    deep_merge,
    load_config,
    parse_env_vars,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    Config,
    EngineConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MultiSourcePolicy,
    ResolverConfig,
    TrackerConfig,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_CONFIG",
    "ENV_PREFIX",
    "Config",
    "EngineConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "MultiSourcePolicy",
    "ResolverConfig",
    "TrackerConfig",
    "copy_value",
    "deep_merge",
    "load_config",
    "parse_env_vars",
    "read_toml_file",
    "set_nested_key",
]
