"""
Error kinds shared by every component, plus the exceptions adapters raise.

Components never let adapter exceptions escape: they are caught at the
component boundary and reported as OperationError entries on the output.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Distinguishable failure reasons surfaced to callers."""

    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    BANNED = "banned"
    INVALID_TRANSITION = "invalid_transition"
    EXTERNAL_UNAVAILABLE = "external_unavailable"
    TIMEOUT = "timeout"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class OperationError:
    """A single failure (or non-fatal notice) reported by a component."""

    kind: ErrorKind
    code: str
    message: str
    field: str | None = None
    retryable: bool = False


# --- Adapter exceptions ---


class StoreError(Exception):
    """Base class for Post Store failures."""


class StoreUnavailableError(StoreError):
    """The store could not be reached or rejected the statement."""


class StoreTimeoutError(StoreError):
    """The store did not answer within its configured timeout."""


class AssistError(Exception):
    """Base class for LLM collaborator failures (translator, clue generator)."""


class AssistUnavailableError(AssistError):
    """The collaborator failed or returned an unusable answer."""


class AssistTimeoutError(AssistError):
    """The collaborator did not answer within its configured timeout."""


def store_failure(exc: StoreError, action: str) -> OperationError:
    """Map a store exception to a retryable OperationError."""
    if isinstance(exc, StoreTimeoutError):
        return OperationError(
            kind=ErrorKind.TIMEOUT,
            code="store_timeout",
            message=f"Timed out while trying to {action}, please retry",
            retryable=True,
        )
    return OperationError(
        kind=ErrorKind.EXTERNAL_UNAVAILABLE,
        code="store_unavailable",
        message=f"Storage unavailable while trying to {action}, please retry",
        retryable=True,
    )
