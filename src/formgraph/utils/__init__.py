"""Shared utilities for formgraph."""

from ._ids import generate_id, utc_now
from ._logging import LogFormatType, create_engine_logger

__all__ = [
    "LogFormatType",
    "create_engine_logger",
    "generate_id",
    "utc_now",
]
