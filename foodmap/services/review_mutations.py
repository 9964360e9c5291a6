"""Create, edit and delete the signed-in user's own reviews."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from foodmap.config import Config, get_config
from foodmap.errors import (
    BackendError,
    FoodMapError,
    InputValidationError,
    UnauthenticatedError,
)
from foodmap.models import Identity, Review
from foodmap.services.links import dedupe_urls
from foodmap.services.ownership import can_mutate
from foodmap.services.reads import classify_store_error, coerce_rows
from foodmap.services.results import MutationResult
from foodmap.services.row_cache import REVIEWS, RowCache
from foodmap.services.row_store import Row, RowStore, RowStoreError
from foodmap.services.session_gate import SessionGate

logger = logging.getLogger(__name__)

REVIEW_CONFLICT_KEY = ("restaurant_id", "user_id")
VALID_RATINGS = range(1, 6)

ReviewReloader = Callable[[], Awaitable[list[Review]]]


class ReviewMutationService:
    """Review writes for one view.

    ``reload_reviews`` is the view's targeted refresh: it re-reads only the
    review collection the view shows (one restaurant's reviews, or one
    user's) and the result replaces ``cache.reviews``.

    One review write may be in flight at a time. Calls made while busy are
    ignored and return None rather than being queued.
    """

    def __init__(
        self,
        store: RowStore,
        gate: SessionGate,
        cache: RowCache,
        reload_reviews: ReviewReloader,
        cfg: Config | None = None,
    ) -> None:
        self.store = store
        self.gate = gate
        self.cache = cache
        self.reload_reviews = reload_reviews
        self.config = cfg or get_config()
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def validate(self, rating: int, comment: str) -> str:
        """Check rating and comment before any network call.

        Returns:
            The trimmed comment

        Raises:
            InputValidationError: If the comment is blank or too long, or
                the rating is outside 1 to 5
        """
        text = (comment or "").strip()
        if not text:
            raise InputValidationError("Please enter a comment.")
        limit = self.config.comment_max_length
        if len(text) > limit:
            raise InputValidationError(f"Comments must be {limit} characters or fewer.")
        if (
            not isinstance(rating, int)
            or isinstance(rating, bool)
            or rating not in VALID_RATINGS
        ):
            raise InputValidationError("Rating must be between 1 and 5.")
        return text

    async def _refresh(self) -> FoodMapError | None:
        ticket = self.cache.begin_load(REVIEWS)
        try:
            reviews = await self.reload_reviews()
        except FoodMapError as e:
            logger.error(f"Review refresh after write failed: {e.message}")
            return e
        self.cache.commit_reviews(ticket, reviews)
        return None

    def _read_back(self, rows: list[Row]) -> Review | None:
        # Runs after the write committed; a malformed echo is not a failure
        try:
            saved = coerce_rows(Review, rows)
        except BackendError:
            return None
        return saved[0] if saved else None

    async def _write(self, operation: str, call: Awaitable[list[Row]]) -> list[Row]:
        try:
            return await call
        except RowStoreError as e:
            logger.exception(f"Review {operation} failed")
            raise classify_store_error(e) from e

    async def upsert_own(
        self,
        restaurant_id: int,
        identity: Identity | None,
        rating: int,
        comment: str,
        photo_urls: list[str] | None = None,
    ) -> MutationResult[Review] | None:
        """Create or replace the identity's review of a restaurant.

        The write is an upsert on ``(restaurant_id, user_id)``, so repeating
        it replaces the single existing row instead of adding another.

        Args:
            restaurant_id: Restaurant being reviewed
            identity: Signed-in identity
            rating: Rating from 1 to 5
            comment: One-line comment, at most ``comment_max_length`` chars
            photo_urls: Optional photo URLs to attach

        Returns:
            The stored review with the refresh outcome, or None if another
            review write was already in flight

        Raises:
            UnauthenticatedError: If nobody is signed in or the session
                cannot be confirmed
            InputValidationError: If rating or comment is invalid
            ConflictError: If the store reports a uniqueness conflict
            BackendError: For any other store failure
        """
        if self._busy:
            logger.info("Review save ignored, another write is in flight")
            return None
        if identity is None:
            raise UnauthenticatedError("Sign-in required.")
        text = self.validate(rating, comment)

        self._busy = True
        try:
            await self.gate.require_session(identity)

            row: Row = {
                "restaurant_id": restaurant_id,
                "user_id": identity.id,
                "rating": rating,
                "comment": text,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
            if photo_urls is not None:
                row["photo_urls"] = dedupe_urls(photo_urls) or None

            rows = await self._write(
                "upsert", self.store.upsert("reviews", row, REVIEW_CONFLICT_KEY)
            )
            logger.info(f"Saved review of restaurant {restaurant_id} by {identity.id}")

            refresh_error = await self._refresh()
            saved = self._read_back(rows)
            if saved is not None:
                return MutationResult(saved, refresh_error)

            cached = next(
                (
                    r
                    for r in self.cache.reviews
                    if r.restaurant_id == restaurant_id and r.user_id == identity.id
                ),
                None,
            )
            if cached is None:
                raise BackendError("The review was saved but could not be read back.")
            return MutationResult(cached, refresh_error)
        finally:
            self._busy = False

    async def update_own(
        self, review: Review, identity: Identity | None, rating: int, comment: str
    ) -> MutationResult[Review] | None:
        """Edit an existing review in place.

        The update is filtered by both the review id and the identity, so
        the store changes nothing if the review belongs to someone else.
        """
        if self._busy:
            logger.info("Review edit ignored, another write is in flight")
            return None
        if identity is None:
            raise UnauthenticatedError("Sign-in required.")
        if not can_mutate(review, identity):
            raise BackendError("You can only edit your own review.")
        text = self.validate(rating, comment)

        self._busy = True
        try:
            await self.gate.require_session(identity)

            rows = await self._write(
                "update",
                self.store.update(
                    "reviews",
                    {
                        "rating": rating,
                        "comment": text,
                        "updated_at": datetime.now(timezone.utc).isoformat(),
                    },
                    {"id": review.id, "user_id": identity.id},
                ),
            )
            if not rows:
                raise BackendError("The review could not be updated.")
            logger.info(f"Updated review {review.id}")

            refresh_error = await self._refresh()
            saved = self._read_back(rows) or self.cache.get_review(review.id)
            if saved is None:
                saved = review.model_copy(update={"rating": rating, "comment": text})
            return MutationResult(saved, refresh_error)
        finally:
            self._busy = False

    async def delete_own(
        self, review_id: int, identity: Identity | None
    ) -> bool | None:
        """Delete the identity's review and drop it from the cache.

        Returns:
            True if deleted, or None if another review write was in flight

        Raises:
            UnauthenticatedError: If nobody is signed in
            BackendError: If the review is not the identity's, or the store
                refuses or fails the delete (the cache is left untouched)
        """
        if self._busy:
            logger.info("Review delete ignored, another write is in flight")
            return None
        if identity is None:
            raise UnauthenticatedError("Sign-in required.")

        review = self.cache.get_review(review_id)
        if review is None or not can_mutate(review, identity):
            raise BackendError("You can only delete your own review.")

        self._busy = True
        try:
            await self.gate.require_session(identity)

            rows = await self._write(
                "delete",
                self.store.delete("reviews", {"id": review_id, "user_id": identity.id}),
            )
            if not rows:
                raise BackendError("The review could not be deleted.")

            self.cache.remove_review(review_id)
            logger.info(f"Deleted review {review_id}")
            return True
        finally:
            self._busy = False
