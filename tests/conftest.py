"""Shared test fixtures for the trackdiff test suite."""

from __future__ import annotations

import logging

import pytest
from builders import doc, p

from trackdiff.config import TrackDiffConfig
from trackdiff.document import Document


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def config() -> TrackDiffConfig:
    """Default configuration."""
    return TrackDiffConfig()


@pytest.fixture
def hello_doc() -> Document:
    """A single paragraph reading ``Hello world``."""
    return doc(p("Hello world"))


@pytest.fixture
def capture_logs():
    """Attach a recording handler to a named logger.

    trackdiff loggers do not propagate, so ``caplog`` never sees them.
    """
    attached: list[tuple[logging.Logger, _ListHandler]] = []

    def _capture(name: str) -> list[logging.LogRecord]:
        logger = logging.getLogger(name)
        handler = _ListHandler()
        logger.addHandler(handler)
        attached.append((logger, handler))
        return handler.records

    yield _capture
    for logger, handler in attached:
        logger.removeHandler(handler)
