"""Canonical read path for restaurants and reviews.

Page-entry loads and post-mutation refreshes both go through
``ListingReader`` so they share filtering, ordering and row validation.
Rows are validated into models here; nothing past this module sees the row
store's loose dict shape.
"""

import logging
from collections.abc import Iterable
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from foodmap.error_messages import MessageMatcher, default_store_matcher
from foodmap.errors import BackendError, ConflictError, FoodMapError
from foodmap.models import Identity, Restaurant, Review
from foodmap.services.row_store import Row, RowQuery, RowStore, RowStoreError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_store_matcher = default_store_matcher()


def classify_store_error(
    error: RowStoreError, matcher: MessageMatcher | None = None
) -> FoodMapError:
    """Translate a row store failure into the client's error taxonomy."""
    if error.is_unique_violation:
        return ConflictError("This entry is already registered.")
    return (matcher or _store_matcher).to_error(error.message)


def coerce_rows(model: type[ModelT], rows: Iterable[Row]) -> list[ModelT]:
    """Validate raw rows into ``model`` instances.

    Raises:
        BackendError: If any row does not fit the model
    """
    try:
        return [model.model_validate(row) for row in rows]
    except ValidationError as e:
        logger.exception(f"Row store returned an unexpected {model.__name__} shape")
        raise BackendError(f"Unexpected {model.__name__} data from server") from e


def sort_by_activity(reviews: Iterable[Review]) -> list[Review]:
    """Most recently updated (or created) first."""
    return sorted(reviews, key=lambda r: r.last_activity, reverse=True)


class PinnedReviews(BaseModel):
    """Review list split for display."""

    model_config = ConfigDict(frozen=True)

    pinned: Review | None = None
    others: list[Review] = []

    def ordered(self) -> list[Review]:
        return ([self.pinned] if self.pinned else []) + self.others


def pin_own_first(reviews: list[Review], identity: Identity | None) -> PinnedReviews:
    """Put the viewer's own review first, keeping the order of the rest."""
    if identity is None:
        return PinnedReviews(others=reviews)

    mine = next((r for r in reviews if r.user_id == identity.id), None)
    if mine is None:
        return PinnedReviews(others=reviews)
    return PinnedReviews(pinned=mine, others=[r for r in reviews if r.id != mine.id])


class ListingReader:
    """Reads restaurants and reviews from the row store."""

    def __init__(self, store: RowStore) -> None:
        self.store = store

    async def _select(self, table: str, query: RowQuery) -> list[Row]:
        try:
            return await self.store.select(table, query)
        except RowStoreError as e:
            logger.error(f"Loading {table} failed: {e.message}")
            raise classify_store_error(e) from e

    async def list_restaurants(
        self, limit: int | None = None, created_by: str | None = None
    ) -> list[Restaurant]:
        """Newest restaurants first, optionally only one user's."""
        filters = {"created_by": created_by} if created_by else {}
        rows = await self._select(
            "restaurants",
            RowQuery(filters=filters, order_by="created_at", limit=limit),
        )
        return coerce_rows(Restaurant, rows)

    async def get_restaurant(self, restaurant_id: int) -> Restaurant | None:
        """A single restaurant, or None if it does not exist."""
        rows = await self._select(
            "restaurants", RowQuery(filters={"id": restaurant_id}, limit=1)
        )
        restaurants = coerce_rows(Restaurant, rows)
        return restaurants[0] if restaurants else None

    async def _reviews(self, filters: Row) -> list[Review]:
        rows = await self._select(
            "reviews", RowQuery(filters=filters, order_by="updated_at")
        )
        return sort_by_activity(coerce_rows(Review, rows))

    async def reviews_for_restaurant(self, restaurant_id: int) -> list[Review]:
        return await self._reviews({"restaurant_id": restaurant_id})

    async def reviews_by_user(self, user_id: str) -> list[Review]:
        return await self._reviews({"user_id": user_id})

    async def all_reviews(self) -> list[Review]:
        return await self._reviews({})
