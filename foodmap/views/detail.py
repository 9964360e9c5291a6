"""Restaurant detail page: info, map, gallery and reviews."""

import logging

from foodmap import routes
from foodmap.config import Config, get_config
from foodmap.errors import FoodMapError
from foodmap.models import Identity, Restaurant, Review
from foodmap.services.auth_poller import AuthPoller
from foodmap.services.gallery import GalleryCarousel, KeyEventBus
from foodmap.services.links import map_embed_url, map_link, normalize_url_text
from foodmap.services.rating import AggregateStats, stats_for
from foodmap.services.reads import ListingReader, PinnedReviews, pin_own_first
from foodmap.services.review_mutations import ReviewMutationService
from foodmap.services.row_cache import RESTAURANTS, REVIEWS, RowCache
from foodmap.services.row_store import RowStore
from foodmap.services.session_gate import SessionGate
from foodmap.views.common import Navigate, report_error, with_refresh_note

logger = logging.getLogger(__name__)


class DetailView:
    """Everything the detail page shows for one restaurant."""

    def __init__(
        self,
        restaurant_id: int,
        reader: ListingReader,
        store: RowStore,
        gate: SessionGate,
        auth: AuthPoller,
        key_bus: KeyEventBus | None = None,
        cfg: Config | None = None,
        navigate: Navigate | None = None,
    ) -> None:
        self.restaurant_id = restaurant_id
        self.reader = reader
        self.auth = auth
        self.config = cfg or get_config()
        self.navigate = navigate
        self.cache = RowCache()
        self.restaurant: Restaurant | None = None
        self.loading = False
        self.message: str | None = None
        self.editor_open = False
        self.carousel = GalleryCarousel([], key_bus)
        self.reviews_service = ReviewMutationService(
            store,
            gate,
            self.cache,
            reload_reviews=lambda: reader.reviews_for_restaurant(restaurant_id),
            cfg=self.config,
        )

    @property
    def me(self) -> Identity | None:
        return self.auth.current

    @property
    def reviews(self) -> list[Review]:
        return self.cache.reviews

    @property
    def my_review(self) -> Review | None:
        return self.pinned.pinned

    @property
    def pinned(self) -> PinnedReviews:
        return pin_own_first(self.cache.reviews, self.me)

    @property
    def stats(self) -> AggregateStats:
        return stats_for(self.cache.reviews, self.restaurant_id)

    @property
    def embed_url(self) -> str:
        if self.restaurant is None:
            return ""
        return map_embed_url(self.restaurant.map_url, self.restaurant.address)

    @property
    def map_link(self) -> str:
        if self.restaurant is None:
            return ""
        return map_link(self.restaurant.map_url, self.restaurant.address)

    async def load(self) -> None:
        """Load the restaurant and its reviews."""
        if not self.auth.is_running:
            await self.auth.start()

        restaurant_ticket = self.cache.begin_load(RESTAURANTS)
        reviews_ticket = self.cache.begin_load(REVIEWS)
        self.loading = True
        self.message = None
        try:
            restaurant = await self.reader.get_restaurant(self.restaurant_id)
            reviews = await self.reader.reviews_for_restaurant(self.restaurant_id)
        except FoodMapError as e:
            logger.error(f"Detail load for {self.restaurant_id} failed: {e.message}")
            if self.cache.is_current(RESTAURANTS, restaurant_ticket):
                self.restaurant = None
                self.cache.commit_reviews(reviews_ticket, [])
                self.message = e.message
            return
        finally:
            if self.cache.alive:
                self.loading = False

        if self.cache.commit_restaurants(
            restaurant_ticket, [restaurant] if restaurant else []
        ):
            self.restaurant = restaurant
            self.carousel.reset(restaurant.gallery_urls if restaurant else [])
        self.cache.commit_reviews(reviews_ticket, reviews)

    async def open_editor(self) -> bool:
        """Open the review editor, or send the user to sign in."""
        identity = await self.auth.refresh()
        if identity is None:
            if self.navigate is not None:
                self.navigate(routes.SIGN_IN)
            return False
        self.editor_open = True
        self.message = None
        return True

    async def save_review(
        self, rating: int, comment: str, photo_text: str | None = None
    ) -> str | None:
        """Create or update the viewer's review.

        Returns:
            The message to show, or None if the save was ignored as a
            duplicate submit
        """
        self.message = None
        existed = self.my_review is not None
        photo_urls = normalize_url_text(photo_text) if photo_text is not None else None
        try:
            result = await self.reviews_service.upsert_own(
                self.restaurant_id, self.me, rating, comment, photo_urls
            )
        except FoodMapError as e:
            self.message = report_error(e, self.navigate)
            return self.message

        if result is None:
            return None

        self.editor_open = False
        self.message = with_refresh_note(
            "Review updated." if existed else "Review posted.", result
        )
        return self.message

    async def delete_review(self) -> str | None:
        """Delete the viewer's review."""
        self.message = None
        review = self.my_review
        if review is None:
            return None
        try:
            deleted = await self.reviews_service.delete_own(review.id, self.me)
        except FoodMapError as e:
            self.message = report_error(e, self.navigate)
            return self.message

        if not deleted:
            return None
        self.editor_open = False
        self.message = "Review deleted."
        return self.message

    def dispose(self) -> None:
        """Tear the page down: drop in-flight loads and detach key handlers."""
        self.carousel.close()
        self.cache.dispose()
