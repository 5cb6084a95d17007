"""Observability: structured logging and metrics hooks for trackdiff."""

from __future__ import annotations

from .logger import StructuredFormatter, get_logger, resolve_level, set_log_level
from .metrics import MetricsHook, NoopMetricsHook

__all__ = [
    "MetricsHook",
    "NoopMetricsHook",
    "StructuredFormatter",
    "get_logger",
    "resolve_level",
    "set_log_level",
]
