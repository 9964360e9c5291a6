"""Services for the Food Map client."""

from foodmap.services.auth_poller import AuthPoller, IdentityState
from foodmap.services.gallery import GalleryCarousel, GalleryViewState, KeyEventBus
from foodmap.services.identity_client import (
    GoTrueIdentityService,
    IdentityService,
    IdentityServiceError,
)
from foodmap.services.ownership import can_mutate
from foodmap.services.rating import AggregateStats, aggregate, overall_stats, stats_for
from foodmap.services.reads import ListingReader, PinnedReviews, pin_own_first
from foodmap.services.restaurant_mutations import RestaurantMutationService
from foodmap.services.results import MutationResult
from foodmap.services.review_mutations import ReviewMutationService
from foodmap.services.row_cache import RowCache
from foodmap.services.row_store import PostgrestRowStore, RowQuery, RowStore, RowStoreError
from foodmap.services.session_gate import SessionGate

__all__ = [
    "AggregateStats",
    "AuthPoller",
    "GalleryCarousel",
    "GalleryViewState",
    "GoTrueIdentityService",
    "IdentityService",
    "IdentityServiceError",
    "IdentityState",
    "KeyEventBus",
    "ListingReader",
    "MutationResult",
    "PinnedReviews",
    "PostgrestRowStore",
    "RestaurantMutationService",
    "ReviewMutationService",
    "RowCache",
    "RowQuery",
    "RowStore",
    "RowStoreError",
    "SessionGate",
    "aggregate",
    "can_mutate",
    "overall_stats",
    "pin_own_first",
    "stats_for",
]
