"""Current-identity tracking for the UI."""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from foodmap import routes
from foodmap.config import Config, get_config
from foodmap.models import Identity, Session
from foodmap.services.identity_client import (
    IdentityService,
    IdentityServiceError,
    Subscription,
)

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Identity | None], None]


class IdentityState(str, Enum):
    """Lifecycle of the current-identity value."""

    UNKNOWN = "unknown"
    RESOLVED = "resolved"


class AuthPoller:
    """Keeps the current identity fresh while a view is alive.

    ``start()`` reads the session once and subscribes to change
    notifications; every notification triggers another read. ``stop()``
    releases the subscription and forgets the identity.
    """

    def __init__(
        self,
        identity: IdentityService,
        cfg: Config | None = None,
        navigate: Callable[[str], None] | None = None,
    ) -> None:
        self.identity = identity
        self.config = cfg or get_config()
        self.navigate = navigate
        self.state = IdentityState.UNKNOWN
        self.current: Identity | None = None
        self._subscription: Subscription | None = None
        self._listeners: list[IdentityListener] = []
        self._pending: set[asyncio.Task] = set()
        self._running = False
        # Bumped by every read, sign-out and stop; only the newest read publishes
        self._generation = 0

    @property
    def is_running(self) -> bool:
        return self._running

    def add_listener(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a callback for identity changes.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def start(self) -> Identity | None:
        """Resolve the identity once and begin listening for changes."""
        if self._running:
            return self.current

        self._running = True
        identity = await self.refresh()
        self._subscription = self.identity.on_session_change(self._on_session_change)
        logger.info("Auth poller started")
        return identity

    def stop(self) -> None:
        """Release the subscription and reset to the unknown state."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        for task in list(self._pending):
            task.cancel()
        self._pending.clear()

        self._generation += 1
        self._running = False
        self.current = None
        self.state = IdentityState.UNKNOWN
        logger.info("Auth poller stopped")

    async def refresh(self) -> Identity | None:
        """Re-read the session and publish the resulting identity.

        A read that finishes after a newer read, a sign-out or ``stop()``
        is dropped and returns the current identity unchanged.
        """
        self._generation += 1
        ticket = self._generation
        try:
            session = await self.identity.get_session()
        except IdentityServiceError as e:
            logger.warning(f"Session read failed, treating as signed out: {e.message}")
            session = None

        if not self._running:
            # Torn down while the read was in flight
            return None
        if ticket != self._generation:
            logger.debug(f"Discarding stale session read {ticket}")
            return self.current

        self._publish(session.user if session else None)
        return self.current

    def _on_session_change(self, event: str, _session: Session | None) -> None:
        logger.debug(f"Identity change notification: {event}")
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _publish(self, identity: Identity | None) -> None:
        changed = identity != self.current or self.state is IdentityState.UNKNOWN
        self.current = identity
        self.state = IdentityState.RESOLVED
        if changed:
            for listener in list(self._listeners):
                listener(identity)

    async def sign_out(self) -> bool:
        """Sign out, clearing local state even if the remote call stalls.

        The remote sign-out gets ``sign_out_timeout_ms``. Whatever happens,
        the local identity is cleared and the caller is sent home, even if an
        identity listener raises.

        Returns:
            True if the identity service confirmed the sign-out
        """
        confirmed = False
        try:
            await asyncio.wait_for(
                self.identity.sign_out(), self.config.sign_out_timeout_ms / 1000
            )
            confirmed = True
        except asyncio.TimeoutError:
            logger.warning("Sign-out timed out, forcing local cleanup")
        except IdentityServiceError as e:
            logger.warning(f"Sign-out failed, forcing local cleanup: {e.message}")
        finally:
            self._generation += 1
            try:
                self._publish(None)
            finally:
                if self.navigate is not None:
                    self.navigate(routes.HOME)

        return confirmed
