"""Metrics hook protocol and no-op default implementation.

trackdiff emits counters, timings and a gauge while diffing, applying
and resolving changes.  :class:`NoopMetricsHook` is used unless the caller
supplies an object satisfying :class:`MetricsHook` through
:attr:`TrackDiffConfig.metrics <trackdiff.config.TrackDiffConfig.metrics>`.

Emitted metric names:

* ``trackdiff.changes_total``             -- counter, tag ``type``
* ``trackdiff.formatting_changes_total``  -- counter, tag ``type``
* ``trackdiff.diff_duration_ms``          -- timing
* ``trackdiff.apply_success_total``       -- counter
* ``trackdiff.apply_failure_total``       -- counter
* ``trackdiff.resolutions_total``         -- counter, tag ``action``
* ``trackdiff.pending_changes``           -- gauge, unresolved changes in a session
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    All methods accept an optional *tags* dict of string keys and values,
    which implementations translate into their backend's labels.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric.

        Parameters
        ----------
        name:
            Dot-delimited metric name, e.g. ``"trackdiff.changes_total"``.
        value:
            Amount to increment by.  Defaults to ``1``.
        tags:
            Optional key-value tags for the data point.
        """
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge metric to an absolute value."""
        ...


class NoopMetricsHook:
    """Metrics backend that discards every data point."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

