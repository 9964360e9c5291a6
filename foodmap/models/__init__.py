"""Data models for the Food Map client."""

from foodmap.models.identity import Identity, Session
from foodmap.models.restaurant import Restaurant, RestaurantDraft
from foodmap.models.review import Review

__all__ = ["Identity", "Restaurant", "RestaurantDraft", "Review", "Session"]
