"""Error hierarchy for trackdiff.

Every public error class inherits from :class:`TrackDiffError`.  Each carries
a machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Most errors are *per change*: the applicator catches them, records the
message in :attr:`~trackdiff.models.TrackChangesResult.errors` and moves on
to the next modification.  Only :class:`SchemaPreconditionError` aborts a
whole call.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the package can raise."""

    POSITION_MAPPING_FAILED = "POSITION_MAPPING_FAILED"
    DELETION_ANCHOR_NOT_FOUND = "DELETION_ANCHOR_NOT_FOUND"
    SCHEMA_PRECONDITION = "SCHEMA_PRECONDITION"
    INVALID_POSITION = "INVALID_POSITION"
    INVALID_DOCUMENT = "INVALID_DOCUMENT"
    SESSION_PENDING = "SESSION_PENDING"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class TrackDiffError(Exception):
    """Base exception for all trackdiff errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys and expected types are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Mapping errors
# ---------------------------------------------------------------------------

class PositionMappingError(TrackDiffError):
    """A character offset has no corresponding tree position.

    Raised when the char-to-position index and the live tree disagree
    (index built from a different tree version, or offsets out of range).

    Context keys: ``change_id``, ``char_start``, ``char_end``, ``index_length``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.POSITION_MAPPING_FAILED,
            message=message,
            context=context,
            cause=cause,
        )


class DeletionAnchorNotFoundError(TrackDiffError):
    """Neither the context search nor the index fallback placed a deletion.

    Context keys: ``change_id``, ``insert_at``, ``search_context``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.DELETION_ANCHOR_NOT_FOUND,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Document errors
# ---------------------------------------------------------------------------

class SchemaPreconditionError(TrackDiffError):
    """The document schema lacks a required annotation mark type.

    Context keys: ``missing_marks``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.SCHEMA_PRECONDITION,
            message=message,
            context=context,
            cause=cause,
        )


class InvalidPositionError(TrackDiffError):
    """A mutation targeted a position or range the tree cannot accept.

    Context keys: ``pos`` or ``start``/``end``, ``doc_size``, ``reason``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.INVALID_POSITION,
            message=message,
            context=context,
            cause=cause,
        )


class DocumentStructureError(TrackDiffError):
    """A serialized tree could not be turned into a document.

    Context keys: ``node_type``, ``path``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.INVALID_DOCUMENT,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Session errors
# ---------------------------------------------------------------------------

class SessionPendingError(TrackDiffError):
    """A comparison was requested before both snapshots finished loading.

    Context keys: ``original_loaded``, ``modified_loaded``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.SESSION_PENDING,
            message=message,
            context=context,
            cause=cause,
        )
