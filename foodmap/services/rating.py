"""Per-listing rating statistics derived from reviews."""

import math
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from foodmap.models import Review


class RatingTally(BaseModel):
    """Running sum and count of ratings for one restaurant."""

    sum: int = 0
    count: int = 0


class AggregateStats(BaseModel):
    """Average rating and review count for display.

    ``average`` is None when there are no reviews, so callers can show
    "no rating" rather than a zero.
    """

    model_config = ConfigDict(frozen=True)

    average: float | None = Field(None, description="Mean rating, one decimal")
    count: int = Field(default=0, ge=0, description="Number of reviews")

    @classmethod
    def from_tally(cls, tally: RatingTally | None) -> "AggregateStats":
        if tally is None or tally.count == 0:
            return cls()
        return cls(average=round_rating(tally.sum / tally.count), count=tally.count)


def round_rating(value: float) -> float:
    """Round to one decimal place, halves away from zero (4.25 -> 4.3)."""
    return math.floor(value * 10 + 0.5) / 10


def aggregate(reviews: Iterable[Review]) -> dict[int, RatingTally]:
    """Tally ratings per restaurant.

    Restaurants without reviews are absent from the result.
    """
    tallies: dict[int, RatingTally] = {}
    for review in reviews:
        tally = tallies.setdefault(review.restaurant_id, RatingTally())
        tally.sum += review.rating
        tally.count += 1
    return tallies


def stats_for(reviews: Iterable[Review], restaurant_id: int) -> AggregateStats:
    """Stats for a single restaurant."""
    return AggregateStats.from_tally(aggregate(reviews).get(restaurant_id))


def overall_stats(reviews: Iterable[Review]) -> AggregateStats:
    """Stats over every review given, regardless of restaurant."""
    tally = RatingTally()
    for review in reviews:
        tally.sum += review.rating
        tally.count += 1
    return AggregateStats.from_tally(tally)
