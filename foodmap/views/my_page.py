"""My page: the signed-in user's reviews and restaurants."""

import logging

from foodmap import routes
from foodmap.config import Config, get_config
from foodmap.errors import FoodMapError, UnauthenticatedError
from foodmap.models import Identity, Restaurant, Review
from foodmap.services.auth_poller import AuthPoller
from foodmap.services.rating import AggregateStats, overall_stats
from foodmap.services.reads import ListingReader
from foodmap.services.restaurant_mutations import RestaurantMutationService
from foodmap.services.review_mutations import ReviewMutationService
from foodmap.services.row_cache import RESTAURANTS, REVIEWS, RowCache
from foodmap.services.row_store import RowStore
from foodmap.services.session_gate import SessionGate
from foodmap.views.common import Navigate, report_error, with_refresh_note

logger = logging.getLogger(__name__)


class MyPageView:
    """Manage your own reviews and listings."""

    def __init__(
        self,
        reader: ListingReader,
        store: RowStore,
        gate: SessionGate,
        auth: AuthPoller,
        cfg: Config | None = None,
        navigate: Navigate | None = None,
    ) -> None:
        self.reader = reader
        self.auth = auth
        self.config = cfg or get_config()
        self.navigate = navigate
        self.cache = RowCache()
        self.identity: Identity | None = None
        self.loading = False
        self.message: str | None = None
        self.editing: Review | None = None
        self.reviews_service = ReviewMutationService(
            store,
            gate,
            self.cache,
            reload_reviews=self._reload_my_reviews,
            cfg=self.config,
        )
        self.restaurants_service = RestaurantMutationService(store, gate, self.cache)

    async def _reload_my_reviews(self) -> list[Review]:
        if self.identity is None:
            raise UnauthenticatedError("Sign-in required.")
        return await self.reader.reviews_by_user(self.identity.id)

    @property
    def reviews(self) -> list[Review]:
        return self.cache.reviews

    @property
    def restaurants(self) -> list[Restaurant]:
        return self.cache.restaurants

    @property
    def my_rating(self) -> AggregateStats:
        """Average of the ratings this user has given."""
        return overall_stats(self.cache.reviews)

    async def require_login(self) -> Identity:
        """Resolve the current identity, redirecting to sign-in if there is none.

        Raises:
            UnauthenticatedError: If nobody is signed in
        """
        if not self.auth.is_running:
            await self.auth.start()
        identity = await self.auth.refresh()
        self.identity = identity
        if identity is None:
            if self.navigate is not None:
                self.navigate(routes.SIGN_IN)
            raise UnauthenticatedError("Sign-in required.")
        return identity

    async def load(self) -> None:
        """Load the user's reviews and registered restaurants."""
        identity = await self.require_login()

        reviews_ticket = self.cache.begin_load(REVIEWS)
        restaurants_ticket = self.cache.begin_load(RESTAURANTS)
        self.loading = True
        self.message = None
        try:
            reviews = await self.reader.reviews_by_user(identity.id)
            restaurants = await self.reader.list_restaurants(created_by=identity.id)
        except FoodMapError as e:
            logger.error(f"My page load failed: {e.message}")
            if self.cache.is_current(REVIEWS, reviews_ticket):
                self.message = e.message
            return
        finally:
            if self.cache.alive:
                self.loading = False

        self.cache.commit_reviews(reviews_ticket, reviews)
        self.cache.commit_restaurants(restaurants_ticket, restaurants)

    def open_edit(self, review: Review) -> None:
        self.editing = review
        self.message = None

    def close_edit(self) -> None:
        self.editing = None

    async def save_review(self, rating: int, comment: str) -> str | None:
        """Save edits to the review being edited."""
        self.message = None
        if self.editing is None:
            self.message = "Choose a review to edit."
            return self.message
        try:
            result = await self.reviews_service.update_own(
                self.editing, self.identity, rating, comment
            )
        except FoodMapError as e:
            self.message = report_error(e, self.navigate)
            return self.message

        if result is None:
            return None
        self.message = with_refresh_note("Review updated.", result)
        self.close_edit()
        return self.message

    async def delete_review(self, review_id: int) -> str | None:
        self.message = None
        try:
            deleted = await self.reviews_service.delete_own(review_id, self.identity)
        except FoodMapError as e:
            self.message = report_error(e, self.navigate)
            return self.message

        if not deleted:
            return None
        if self.editing is not None and self.editing.id == review_id:
            self.close_edit()
        self.message = "Review deleted."
        return self.message

    async def delete_restaurant(self, restaurant_id: int) -> str | None:
        self.message = None
        try:
            deleted = await self.restaurants_service.delete_own(restaurant_id)
        except FoodMapError as e:
            self.message = report_error(e, self.navigate)
            return self.message

        if not deleted:
            return None
        self.message = "Restaurant deleted."
        return self.message

    def dispose(self) -> None:
        self.cache.dispose()
