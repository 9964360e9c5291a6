"""Best-effort translation of collaborator error messages.

Collaborators report failures as free-form strings. ``MessageMatcher`` maps
known substrings onto an ``ErrorKind`` and user-facing text; anything it
does not recognise passes through verbatim as ``ErrorKind.UNKNOWN``.
"""

import logging
from dataclasses import dataclass

from foodmap.errors import (
    BackendError,
    ConflictError,
    ErrorKind,
    FoodMapError,
    UnauthenticatedError,
)

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Something went wrong."


@dataclass(frozen=True)
class MessageRule:
    """A substring to look for and what it means."""

    needle: str
    kind: ErrorKind
    text: str


@dataclass(frozen=True)
class ClassifiedMessage:
    """Result of matching a raw collaborator message."""

    kind: ErrorKind
    text: str
    raw: str | None


class MessageMatcher:
    """Ordered list of substring rules; the first match wins."""

    def __init__(self, rules: list[MessageRule] | None = None) -> None:
        self.rules: list[MessageRule] = list(rules or [])

    def add_rule(self, needle: str, kind: ErrorKind, text: str) -> None:
        """Register another rule after the existing ones."""
        self.rules.append(MessageRule(needle=needle, kind=kind, text=text))

    def classify(self, raw: str | None) -> ClassifiedMessage:
        """Classify a raw message.

        Args:
            raw: Message reported by a collaborator, possibly empty

        Returns:
            The matched kind and user-facing text, or the raw message
            unchanged as ``ErrorKind.UNKNOWN``
        """
        if not raw:
            return ClassifiedMessage(ErrorKind.UNKNOWN, DEFAULT_MESSAGE, raw)

        lowered = raw.lower()
        for rule in self.rules:
            if rule.needle.lower() in lowered:
                return ClassifiedMessage(rule.kind, rule.text, raw)

        logger.debug(f"No rule matched message: {raw}")
        return ClassifiedMessage(ErrorKind.UNKNOWN, raw, raw)

    def to_error(self, raw: str | None) -> FoodMapError:
        """Build the exception matching a raw message."""
        classified = self.classify(raw)
        if classified.kind is ErrorKind.CONFLICT:
            return ConflictError(classified.text)
        if classified.kind is ErrorKind.UNAUTHENTICATED:
            return UnauthenticatedError(classified.text)
        return BackendError(classified.text)


def default_auth_matcher() -> MessageMatcher:
    """Rules for identity service messages."""
    return MessageMatcher(
        [
            MessageRule(
                "Invalid login credentials",
                ErrorKind.UNAUTHENTICATED,
                "Email or password is incorrect.",
            ),
            MessageRule(
                "User already registered",
                ErrorKind.CONFLICT,
                "This email is already registered. Please sign in instead.",
            ),
            MessageRule(
                "Email not confirmed",
                ErrorKind.UNAUTHENTICATED,
                "Email confirmation is required. Please check your inbox.",
            ),
        ]
    )


def default_store_matcher() -> MessageMatcher:
    """Rules for row store messages."""
    return MessageMatcher(
        [
            MessageRule("duplicate", ErrorKind.CONFLICT, "This entry is already registered."),
            MessageRule("unique", ErrorKind.CONFLICT, "This entry is already registered."),
            MessageRule(
                "JWT expired",
                ErrorKind.UNAUTHENTICATED,
                "Your sign-in has expired. Please sign in again.",
            ),
        ]
    )
