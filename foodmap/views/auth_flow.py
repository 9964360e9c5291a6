"""Sign-up and sign-in form logic."""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict

from foodmap import routes
from foodmap.config import Config, get_config
from foodmap.error_messages import MessageMatcher, default_auth_matcher
from foodmap.errors import ErrorKind, SessionTimeoutError
from foodmap.services.identity_client import IdentityService, IdentityServiceError
from foodmap.services.session_gate import SessionGate
from foodmap.views.common import Navigate

logger = logging.getLogger(__name__)


class AuthMode(str, Enum):
    LOGIN = "login"
    SIGNUP = "signup"


class AuthStatus(str, Enum):
    """What happened to a submit."""

    SIGNED_UP = "signed_up"
    SIGNED_IN = "signed_in"
    SESSION_PENDING = "session_pending"
    REJECTED = "rejected"
    IGNORED = "ignored"


class AuthOutcome(BaseModel):
    """Result of a submit, for the form to display."""

    model_config = ConfigDict(frozen=True)

    status: AuthStatus
    message: str | None = None
    kind: ErrorKind | None = None
    continue_to: str | None = None


class AuthFlow:
    """State behind the sign-in / sign-up form.

    A successful sign-in is only reported once the session can actually be
    read back. If that takes longer than ``session_confirm_timeout_ms`` the
    outcome is ``SESSION_PENDING`` with a manual ``continue_to`` target
    instead of an automatic retry.
    """

    def __init__(
        self,
        identity: IdentityService,
        gate: SessionGate,
        cfg: Config | None = None,
        matcher: MessageMatcher | None = None,
        navigate: Navigate | None = None,
        mode: AuthMode = AuthMode.LOGIN,
    ) -> None:
        self.identity = identity
        self.gate = gate
        self.config = cfg or get_config()
        self.matcher = matcher or default_auth_matcher()
        self.navigate = navigate
        self.mode = mode
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def set_mode(self, mode: AuthMode) -> None:
        self.mode = mode

    def _validate(self, email: str, password: str) -> str | None:
        if not email or not password.strip():
            return "Please enter your email and password."
        if len(password) < self.config.min_password_length:
            return f"Passwords must be at least {self.config.min_password_length} characters."
        return None

    async def submit(self, email: str, password: str) -> AuthOutcome:
        """Run the current mode's action.

        Args:
            email: Email address as typed
            password: Password as typed

        Returns:
            The outcome to show; never raises for expected failures
        """
        if self._busy:
            return AuthOutcome(status=AuthStatus.IGNORED)

        email = email.strip()
        problem = self._validate(email, password)
        if problem:
            return AuthOutcome(
                status=AuthStatus.REJECTED, message=problem, kind=ErrorKind.VALIDATION
            )

        self._busy = True
        try:
            if self.mode is AuthMode.SIGNUP:
                return await self._sign_up(email, password)
            return await self._sign_in(email, password)
        except IdentityServiceError as e:
            logger.error(f"Auth error ({self.mode.value}): {e.message}")
            classified = self.matcher.classify(e.message)
            return AuthOutcome(
                status=AuthStatus.REJECTED,
                message=classified.text,
                kind=classified.kind,
            )
        finally:
            self._busy = False

    async def _sign_up(self, email: str, password: str) -> AuthOutcome:
        await self.identity.sign_up(email, password)
        self.mode = AuthMode.LOGIN
        return AuthOutcome(
            status=AuthStatus.SIGNED_UP,
            message="Sign-up complete. Confirm your email if asked, then sign in.",
        )

    async def _sign_in(self, email: str, password: str) -> AuthOutcome:
        await self.identity.sign_in_with_password(email, password)

        session = await self.gate.resolve_session(self.config.session_confirm_timeout_ms)
        if session is None:
            pending = SessionTimeoutError(
                "Signed in, but the session is taking a while. Continue manually."
            )
            logger.warning(f"Session for {email} not confirmed in time")
            return AuthOutcome(
                status=AuthStatus.SESSION_PENDING,
                message=pending.message,
                kind=pending.kind,
                continue_to=routes.HOME,
            )

        logger.info(f"Session confirmed for {session.user.email or session.user.id}")
        if self.navigate is not None:
            self.navigate(routes.HOME)
        return AuthOutcome(status=AuthStatus.SIGNED_IN, message="Signed in.")
