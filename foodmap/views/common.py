"""Helpers shared by the view-models."""

import logging
from collections.abc import Callable

from foodmap import routes
from foodmap.errors import ErrorKind, FoodMapError
from foodmap.services.results import MutationResult

logger = logging.getLogger(__name__)

Navigate = Callable[[str], None]


def report_error(error: FoodMapError, navigate: Navigate | None = None) -> str:
    """Turn a failure into the message a view shows.

    Authentication failures also send the user to the sign-in page.
    """
    if error.kind is ErrorKind.UNAUTHENTICATED and navigate is not None:
        navigate(routes.SIGN_IN)
    return error.message


def with_refresh_note(message: str, result: MutationResult) -> str:
    """Append a secondary notice when the post-write refresh failed."""
    if result.refresh_error is None:
        return message
    return f"{message} The list could not be refreshed: {result.refresh_error.message}"
