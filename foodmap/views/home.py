"""Home page: the restaurant list with search and region filter."""

import logging

from pydantic import BaseModel, ConfigDict

from foodmap.config import Config, get_config
from foodmap.errors import FoodMapError
from foodmap.models import Restaurant
from foodmap.services.rating import AggregateStats, RatingTally, aggregate
from foodmap.services.reads import ListingReader
from foodmap.services.row_cache import RESTAURANTS, REVIEWS, RowCache

logger = logging.getLogger(__name__)

ALL_REGIONS = "ALL"


def region_of(address: str) -> str:
    """Region is the second comma-separated part ("Tokyo, Asakusa" -> "Asakusa")."""
    parts = [p.strip() for p in address.split(",")]
    return parts[1] if len(parts) >= 2 else address


class RestaurantCard(BaseModel):
    """One entry of the home list."""

    model_config = ConfigDict(frozen=True)

    restaurant: Restaurant
    region: str
    stats: AggregateStats


class HomeView:
    """Newest restaurants with their ratings."""

    def __init__(self, reader: ListingReader, cfg: Config | None = None) -> None:
        self.reader = reader
        self.config = cfg or get_config()
        self.cache = RowCache()
        self.query = ""
        self.region = ALL_REGIONS
        self.loading = False
        self.error: str | None = None

    async def load(self) -> None:
        """Load restaurants and all reviews."""
        restaurants_ticket = self.cache.begin_load(RESTAURANTS)
        reviews_ticket = self.cache.begin_load(REVIEWS)
        self.loading = True
        self.error = None
        try:
            restaurants = await self.reader.list_restaurants(
                limit=self.config.home_restaurant_limit
            )
            reviews = await self.reader.all_reviews()
        except FoodMapError as e:
            logger.error(f"Home load failed: {e.message}")
            if self.cache.is_current(RESTAURANTS, restaurants_ticket):
                self.error = e.message
                self.cache.commit_restaurants(restaurants_ticket, [])
                self.cache.commit_reviews(reviews_ticket, [])
            return
        finally:
            if self.cache.alive:
                self.loading = False

        self.cache.commit_restaurants(restaurants_ticket, restaurants)
        self.cache.commit_reviews(reviews_ticket, reviews)

    @property
    def regions(self) -> list[str]:
        found = {region_of(r.address) for r in self.cache.restaurants}
        return [ALL_REGIONS, *sorted(found)]

    @property
    def tallies(self) -> dict[int, RatingTally]:
        return aggregate(self.cache.reviews)

    @property
    def restaurant_count(self) -> int:
        return len(self.cache.restaurants)

    @property
    def review_count(self) -> int:
        return len(self.cache.reviews)

    def _matches(self, restaurant: Restaurant, needle: str) -> bool:
        if not needle:
            return True
        return (
            needle in restaurant.name.lower()
            or needle in (restaurant.description or "").lower()
            or needle in restaurant.address.lower()
        )

    def cards(self) -> list[RestaurantCard]:
        """Restaurants passing the current search and region filter."""
        needle = self.query.strip().lower()
        tallies = self.tallies
        cards = []
        for restaurant in self.cache.restaurants:
            region = region_of(restaurant.address)
            if self.region != ALL_REGIONS and region != self.region:
                continue
            if not self._matches(restaurant, needle):
                continue
            cards.append(
                RestaurantCard(
                    restaurant=restaurant,
                    region=region,
                    stats=AggregateStats.from_tally(tallies.get(restaurant.id)),
                )
            )
        return cards

    def dispose(self) -> None:
        self.cache.dispose()
