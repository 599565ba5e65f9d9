"""Configuration models.

This module provides the Pydantic models for formgraph settings: logging,
parameter tracking, dependency resolution and the form engine.
"""

from enum import StrEnum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class LogLevel(StrEnum):
    """Log level threshold values.

    Values are ordered from most verbose (debug) to least verbose (error).
    """

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class MultiSourcePolicy(StrEnum):
    """What to do when a second dependency targets an already-driven parameter."""

    ALLOW = "allow"
    WARN = "warn"
    REJECT = "reject"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty writes to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    file: str = ""


class TrackerConfig(BaseModel):
    """Parameter tracker configuration section."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    max_propagation_depth: int = Field(
        default=64,
        ge=1,
        description="Maximum number of cascaded writes below a single change.",
    )
    raise_on_cycle: bool = Field(
        default=False,
        description="Raise PropagationCycleError when a pass revisits an edge.",
    )
    multi_source_policy: MultiSourcePolicy = Field(
        default=MultiSourcePolicy.WARN,
        description="Handling of several dependencies targeting one parameter.",
    )
    audit_log_limit: int = Field(
        default=0,
        ge=0,
        description="Maximum retained audit entries (0 keeps everything).",
    )


class ResolverConfig(BaseModel):
    """Dependency resolver configuration section."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    cache_ttl_seconds: float = Field(
        default=300.0,
        ge=0,
        description="Lifetime of memoized dependency and validation results.",
    )
    strict_references: bool = Field(
        default=False,
        description="Reject dependencies referencing unknown forms or fields.",
    )
    reject_cycles: bool = Field(
        default=False,
        description="Reject parameter dependencies that close a cycle.",
    )


class EngineConfig(BaseModel):
    """Form engine configuration section."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    validate_dependencies_on_submit: bool = Field(
        default=True,
        description="Run cross-form validation and prerequisite checks on submit.",
    )
    submit_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for submission and fetch endpoint calls.",
    )


class Config(BaseModel):
    """Root formgraph configuration.

    Attributes:
        logging: Logging settings.
        tracker: Parameter tracker settings.
        resolver: Dependency resolver settings.
        engine: Form engine settings.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
