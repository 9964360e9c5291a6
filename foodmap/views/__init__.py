"""Renderer-independent view-models for the Food Map pages."""

from foodmap.views.auth_flow import AuthFlow, AuthMode, AuthOutcome, AuthStatus
from foodmap.views.detail import DetailView
from foodmap.views.home import HomeView, RestaurantCard, region_of
from foodmap.views.my_page import MyPageView
from foodmap.views.new_restaurant import NewRestaurantView

__all__ = [
    "AuthFlow",
    "AuthMode",
    "AuthOutcome",
    "AuthStatus",
    "DetailView",
    "HomeView",
    "MyPageView",
    "NewRestaurantView",
    "RestaurantCard",
    "region_of",
]
