"""Per-view cache of restaurant and review rows."""

import logging

from foodmap.models import Restaurant, Review

logger = logging.getLogger(__name__)

RESTAURANTS = "restaurants"
REVIEWS = "reviews"


class RowCache:
    """In-memory copy of the collections one view is showing.

    Loads are never cancelled. Instead each load takes a ticket from
    ``begin_load`` and its result is committed only if no newer load of the
    same collection has started and the view has not been disposed, so a
    slow earlier request can never overwrite a newer one.
    """

    def __init__(self) -> None:
        self.restaurants: list[Restaurant] = []
        self.reviews: list[Review] = []
        self.alive = True
        self._generations: dict[str, int] = {RESTAURANTS: 0, REVIEWS: 0}

    def begin_load(self, collection: str) -> int:
        """Start a load of ``collection`` and return its ticket."""
        self._generations[collection] += 1
        return self._generations[collection]

    def is_current(self, collection: str, ticket: int) -> bool:
        """Whether a load's results may still be committed."""
        return self.alive and self._generations[collection] == ticket

    def commit_restaurants(self, ticket: int, restaurants: list[Restaurant]) -> bool:
        """Store loaded restaurants unless the load went stale."""
        if not self.is_current(RESTAURANTS, ticket):
            logger.debug(f"Discarding stale restaurant load {ticket}")
            return False
        self.restaurants = list(restaurants)
        return True

    def commit_reviews(self, ticket: int, reviews: list[Review]) -> bool:
        """Store loaded reviews unless the load went stale."""
        if not self.is_current(REVIEWS, ticket):
            logger.debug(f"Discarding stale review load {ticket}")
            return False
        self.reviews = list(reviews)
        return True

    def get_restaurant(self, restaurant_id: int) -> Restaurant | None:
        return next((r for r in self.restaurants if r.id == restaurant_id), None)

    def get_review(self, review_id: int) -> Review | None:
        return next((r for r in self.reviews if r.id == review_id), None)

    def remove_restaurant(self, restaurant_id: int) -> bool:
        """Drop a restaurant after a confirmed delete."""
        before = len(self.restaurants)
        self.restaurants = [r for r in self.restaurants if r.id != restaurant_id]
        return len(self.restaurants) != before

    def remove_review(self, review_id: int) -> bool:
        """Drop a review after a confirmed delete."""
        before = len(self.reviews)
        self.reviews = [r for r in self.reviews if r.id != review_id]
        return len(self.reviews) != before

    def clear(self) -> None:
        self.restaurants = []
        self.reviews = []

    def dispose(self) -> None:
        """Mark the owning view as gone; in-flight loads will be dropped."""
        self.alive = False
        logger.debug("Row cache disposed")
