"""Error taxonomy for the Food Map client.

Every failure that reaches the presentation layer is a ``FoodMapError`` with
one of the ``ErrorKind`` values below. Collaborator errors are classified
into this taxonomy at the call site.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure the presentation layer knows how to resolve."""

    UNAUTHENTICATED = "unauthenticated"  # redirect to sign-in
    VALIDATION = "validation"  # refuse to submit, show the reason
    CONFLICT = "conflict"  # show "already exists"
    TIMEOUT = "timeout"  # offer a manual continue action
    UNKNOWN = "unknown"  # show the message as-is


class FoodMapError(Exception):
    """Base exception for all Food Map client errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthenticatedError(FoodMapError):
    """No session, or the session has expired."""

    kind = ErrorKind.UNAUTHENTICATED


class InputValidationError(FoodMapError):
    """Input was rejected locally before any network call."""

    kind = ErrorKind.VALIDATION


class ConflictError(FoodMapError):
    """The row store reported a uniqueness violation."""

    kind = ErrorKind.CONFLICT


class SessionTimeoutError(FoodMapError):
    """Session confirmation polling ran out of time."""

    kind = ErrorKind.TIMEOUT


class BackendError(FoodMapError):
    """A collaborator call failed for a reason the client cannot classify.

    Ownership rejections by the row store also land here because the store
    does not report them in a distinguishable shape.
    """

    kind = ErrorKind.UNKNOWN
