"""Bounded polling for a confirmed session.

Signing in and the session becoming readable are not atomic in the identity
service, so callers that need a live session poll for it for a short, fixed
budget instead of trusting the sign-in call alone.
"""

import asyncio
import logging

from foodmap.config import Config, get_config
from foodmap.errors import UnauthenticatedError
from foodmap.models import Identity, Session
from foodmap.services.identity_client import IdentityService, IdentityServiceError

logger = logging.getLogger(__name__)


class SessionGate:
    """Resolves whether a usable session exists right now."""

    def __init__(self, identity: IdentityService, cfg: Config | None = None) -> None:
        self.identity = identity
        self.config = cfg or get_config()

    async def resolve_session(self, timeout_ms: int | None = None) -> Session | None:
        """Poll the identity service until a session appears.

        The first read happens immediately; later reads follow every
        ``session_poll_interval_ms`` until ``timeout_ms`` has elapsed.

        Args:
            timeout_ms: Polling budget (defaults to ``session_confirm_timeout_ms``)

        Returns:
            The session, or None if none was observed in time. None means the
            session is unconfirmed, not that a preceding sign-in failed.
        """
        if timeout_ms is None:
            timeout_ms = self.config.session_confirm_timeout_ms

        loop = asyncio.get_running_loop()
        interval = self.config.session_poll_interval_ms / 1000
        deadline = loop.time() + timeout_ms / 1000
        attempt = 0

        while True:
            attempt += 1
            try:
                session = await self.identity.get_session()
            except IdentityServiceError as e:
                logger.debug(f"Session read {attempt} failed: {e.message}")
                session = None

            if session is not None:
                logger.debug(f"Session confirmed on attempt {attempt}")
                return session

            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.sleep(min(interval, remaining))

        logger.warning(f"No session after {attempt} attempts ({timeout_ms}ms)")
        return None

    async def require_session(
        self, identity: Identity | None = None, timeout_ms: int | None = None
    ) -> Session:
        """Confirm a live session before a write.

        Args:
            identity: When given, the session must belong to this identity
            timeout_ms: Polling budget (defaults to ``session_check_timeout_ms``)

        Returns:
            The confirmed session

        Raises:
            UnauthenticatedError: If no session is confirmed, or it belongs
                to someone else
        """
        if timeout_ms is None:
            timeout_ms = self.config.session_check_timeout_ms

        session = await self.resolve_session(timeout_ms)
        if session is None:
            raise UnauthenticatedError("Sign-in required. Please sign in again.")
        if identity is not None and session.user.id != identity.id:
            logger.warning(
                f"Session user {session.user.id} does not match {identity.id}"
            )
            raise UnauthenticatedError("Your session changed. Please sign in again.")
        return session
