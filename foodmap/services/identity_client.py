"""Identity service contract and its GoTrue binding."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx

from foodmap.config import Config, get_config
from foodmap.models import Identity, Session

logger = logging.getLogger(__name__)

SessionCallback = Callable[[str, Session | None], None]


class IdentityServiceError(Exception):
    """Failure reported by the identity service."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class Subscription(Protocol):
    """Handle returned by ``on_session_change``."""

    def unsubscribe(self) -> None: ...


class IdentityService(Protocol):
    """Operations consumed from the identity service."""

    async def sign_up(self, email: str, password: str) -> None: ...

    async def sign_in_with_password(self, email: str, password: str) -> Session: ...

    async def get_session(self) -> Session | None: ...

    def on_session_change(self, callback: SessionCallback) -> Subscription: ...

    async def sign_out(self) -> None: ...


class CallbackSubscription:
    """Subscription that removes its callback from a listener list."""

    def __init__(self, listeners: list[SessionCallback], callback: SessionCallback) -> None:
        self._listeners = listeners
        self._callback = callback

    def unsubscribe(self) -> None:
        """Stop receiving notifications. Safe to call twice."""
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


def _parse_session(data: dict[str, Any]) -> Session:
    user = data.get("user") or {}
    expires_at = data.get("expires_at")
    return Session(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token"),
        expires_at=(
            datetime.fromtimestamp(expires_at, tz=timezone.utc)
            if expires_at is not None
            else None
        ),
        user=Identity(id=user["id"], email=user.get("email")),
    )


class GoTrueIdentityService:
    """Identity service client for a GoTrue auth endpoint.

    The session lives in memory on this object. Sign-in, token refresh and
    sign-out notify ``on_session_change`` listeners with an event name
    (``SIGNED_IN``, ``TOKEN_REFRESHED``, ``SIGNED_OUT``) and the new session.
    """

    def __init__(
        self, cfg: Config | None = None, client: httpx.AsyncClient | None = None
    ) -> None:
        """Initialize the identity client.

        Args:
            cfg: Configuration (defaults to the global config)
            client: Pre-built HTTP client, mainly for tests

        Raises:
            ValueError: If the backend URL or key is not configured
        """
        self.config = cfg or get_config()
        if not self.config.has_backend_config():
            msg = "Identity service is not configured"
            raise ValueError(msg)

        self.base_url = f"{self.config.supabase_url.rstrip('/')}/auth/v1"
        self.client = client or httpx.AsyncClient(timeout=self.config.http_timeout)
        self._session: Session | None = None
        self._listeners: list[SessionCallback] = []

    @property
    def access_token(self) -> str | None:
        """Access token of the stored session, for row store requests."""
        return self._session.access_token if self._session else None

    async def _post(
        self,
        path: str,
        payload: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        token: str | None = None,
    ) -> dict[str, Any]:
        headers = {"apikey": self.config.supabase_anon_key}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self.client.post(
                f"{self.base_url}/{path}", json=payload, params=params, headers=headers
            )
        except httpx.HTTPError as e:
            logger.exception(f"Identity request {path} failed")
            raise IdentityServiceError(str(e) or type(e).__name__) from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = (
                body.get("msg")
                or body.get("error_description")
                or body.get("message")
                or response.text
                or f"HTTP {response.status_code}"
            )
            raise IdentityServiceError(message, status=response.status_code)

        return response.json() if response.content else {}

    def _set_session(self, event: str, session: Session | None) -> None:
        self._session = session
        logger.debug(f"Session event {event}")
        for callback in list(self._listeners):
            callback(event, session)

    async def sign_up(self, email: str, password: str) -> None:
        """Register a new account."""
        data = await self._post("signup", {"email": email, "password": password})
        logger.info(f"Signed up {email}")
        # Projects without email confirmation return a session right away
        if data.get("access_token"):
            self._set_session("SIGNED_IN", _parse_session(data))

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """Sign in and store the resulting session."""
        data = await self._post(
            "token",
            {"email": email, "password": password},
            params={"grant_type": "password"},
        )
        session = _parse_session(data)
        self._set_session("SIGNED_IN", session)
        logger.info(f"Signed in {email}")
        return session

    async def get_session(self) -> Session | None:
        """Return the stored session, renewing it first if it has expired."""
        session = self._session
        if session is None or not session.is_expired():
            return session

        if not session.refresh_token:
            self._set_session("SIGNED_OUT", None)
            return None

        try:
            data = await self._post(
                "token",
                {"refresh_token": session.refresh_token},
                params={"grant_type": "refresh_token"},
            )
        except IdentityServiceError as e:
            logger.warning(f"Session refresh failed: {e.message}")
            self._set_session("SIGNED_OUT", None)
            return None

        renewed = _parse_session(data)
        self._set_session("TOKEN_REFRESHED", renewed)
        return renewed

    def on_session_change(self, callback: SessionCallback) -> CallbackSubscription:
        """Subscribe to session changes."""
        self._listeners.append(callback)
        return CallbackSubscription(self._listeners, callback)

    async def sign_out(self) -> None:
        """Revoke the session remotely and forget it locally."""
        token = self.access_token
        try:
            if token:
                await self._post("logout", token=token)
        finally:
            self._set_session("SIGNED_OUT", None)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
