"""New restaurant form."""

import logging

from foodmap import routes
from foodmap.errors import ErrorKind, FoodMapError
from foodmap.models import Identity, Restaurant, RestaurantDraft
from foodmap.services.auth_poller import AuthPoller
from foodmap.services.links import map_embed_url, map_link
from foodmap.services.restaurant_mutations import RestaurantMutationService
from foodmap.services.row_store import RowStore
from foodmap.services.session_gate import SessionGate
from foodmap.views.common import Navigate, report_error

logger = logging.getLogger(__name__)


class NewRestaurantView:
    """Registers a restaurant for the signed-in user."""

    def __init__(
        self,
        store: RowStore,
        gate: SessionGate,
        auth: AuthPoller,
        navigate: Navigate | None = None,
    ) -> None:
        self.auth = auth
        self.navigate = navigate
        self.service = RestaurantMutationService(store, gate)
        self.message: str | None = None
        self.created: Restaurant | None = None

    async def check_access(self) -> Identity | None:
        """Send anonymous visitors to sign in before they fill the form."""
        if not self.auth.is_running:
            await self.auth.start()
        identity = await self.auth.refresh()
        if identity is None and self.navigate is not None:
            self.navigate(routes.SIGN_IN)
        return identity

    @staticmethod
    def preview(draft: RestaurantDraft) -> dict[str, str]:
        """Map links for the form preview."""
        address = draft.address.strip()
        map_url = draft.map_url.strip() or None
        return {
            "embed_url": map_embed_url(map_url, address),
            "map_link": map_link(map_url, address),
        }

    async def save(self, draft: RestaurantDraft) -> str | None:
        """Submit the form; on success the user is sent home."""
        self.message = None
        try:
            restaurant = await self.service.create(self.auth.current, draft)
        except FoodMapError as e:
            self.message = report_error(e, self.navigate)
            if e.kind is ErrorKind.CONFLICT:
                logger.info("Duplicate restaurant submission")
            return self.message

        if restaurant is None:
            return None
        self.created = restaurant
        self.message = "Restaurant registered."
        if self.navigate is not None:
            self.navigate(routes.HOME)
        return self.message
