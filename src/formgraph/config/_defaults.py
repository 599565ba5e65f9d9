"""Default configuration values.

DEFAULT_CONFIG is a plain dict so it can be fed straight into deep_merge,
which copies its inputs.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "logging": {
        "level": "info",
        "format": "json",
        "file": "",
    },
    "tracker": {
        "max_propagation_depth": 64,
        "raise_on_cycle": False,
        "multi_source_policy": "warn",
        "audit_log_limit": 0,
    },
    "resolver": {
        "cache_ttl_seconds": 300.0,
        "strict_references": False,
        "reject_cycles": False,
    },
    "engine": {
        "validate_dependencies_on_submit": True,
        "submit_timeout_seconds": 30.0,
    },
}

CONFIG_FILE_NAME = "formgraph.toml"
ENV_PREFIX = "FORMGRAPH_"
