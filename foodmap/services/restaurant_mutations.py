"""Register and delete restaurant listings."""

import logging

from foodmap.errors import (
    BackendError,
    ConflictError,
    InputValidationError,
    UnauthenticatedError,
)
from foodmap.models import Identity, Restaurant, RestaurantDraft
from foodmap.services.links import extract_lat_lng, normalize_url_text
from foodmap.services.reads import classify_store_error, coerce_rows
from foodmap.services.row_cache import RowCache
from foodmap.services.row_store import Row, RowStore, RowStoreError
from foodmap.services.session_gate import SessionGate

logger = logging.getLogger(__name__)


def _optional(value: str) -> str | None:
    value = (value or "").strip()
    return value or None


def build_restaurant_row(identity: Identity, draft: RestaurantDraft) -> Row:
    """Turn form input into a row ready to insert.

    Coordinates come from an ``@lat,lng`` pair in the map link; the gallery
    text is split into a deduplicated URL list in entry order.

    Raises:
        InputValidationError: If name or address is blank
    """
    name = draft.name.strip()
    address = draft.address.strip()
    if not name or not address:
        raise InputValidationError("Name and address are required.")

    map_url = _optional(draft.map_url)
    lat, lng = extract_lat_lng(map_url)
    gallery_urls = normalize_url_text(draft.gallery_text)

    return {
        "name": name,
        "address": address,
        "description": _optional(draft.description),
        "thumbnail_url": _optional(draft.thumbnail_url),
        "map_url": map_url,
        "lat": lat,
        "lng": lng,
        "category": _optional(draft.category),
        "main_menu": _optional(draft.main_menu),
        "features": _optional(draft.features),
        "phone": _optional(draft.phone),
        "gallery_urls": gallery_urls or None,
        "created_by": identity.id,
    }


class RestaurantMutationService:
    """Restaurant writes for one view.

    Delete permission is left entirely to the row store's policy; the only
    client-side guard is that a given restaurant id has at most one delete
    in flight.
    """

    def __init__(
        self, store: RowStore, gate: SessionGate, cache: RowCache | None = None
    ) -> None:
        self.store = store
        self.gate = gate
        self.cache = cache
        self._creating = False
        self._deleting: set[int] = set()

    @property
    def creating(self) -> bool:
        return self._creating

    def is_deleting(self, restaurant_id: int) -> bool:
        return restaurant_id in self._deleting

    async def create(
        self, identity: Identity | None, draft: RestaurantDraft
    ) -> Restaurant | None:
        """Register a new restaurant owned by ``identity``.

        Args:
            identity: Signed-in identity
            draft: Raw form input

        Returns:
            The stored restaurant, or None if a create was already in flight

        Raises:
            UnauthenticatedError: If nobody is signed in or the session
                cannot be confirmed
            InputValidationError: If name or address is blank
            ConflictError: If the restaurant is already registered
            BackendError: For any other store failure
        """
        if self._creating:
            logger.info("Restaurant create ignored, one is already in flight")
            return None
        if identity is None:
            raise UnauthenticatedError("Your sign-in has expired. Please sign in again.")
        row = build_restaurant_row(identity, draft)

        self._creating = True
        try:
            await self.gate.require_session(identity)
            try:
                rows = await self.store.insert("restaurants", row)
            except RowStoreError as e:
                if e.is_unique_violation:
                    logger.info(f"Restaurant '{row['name']}' already registered")
                    raise ConflictError("This restaurant is already registered.") from e
                logger.exception("Restaurant insert failed")
                raise classify_store_error(e) from e

            restaurants = coerce_rows(Restaurant, rows)
            if not restaurants:
                raise BackendError("The restaurant was saved but could not be read back.")

            restaurant = restaurants[0]
            logger.info(f"Registered restaurant {restaurant.id} '{restaurant.name}'")
            return restaurant
        finally:
            self._creating = False

    async def delete_own(self, restaurant_id: int) -> bool | None:
        """Delete a restaurant; the row store decides whether that is allowed.

        Returns:
            True if deleted, or None if a delete of this id was already in flight

        Raises:
            BackendError: If the store refuses or fails the delete
        """
        if restaurant_id in self._deleting:
            logger.info(f"Delete of restaurant {restaurant_id} already in flight")
            return None

        self._deleting.add(restaurant_id)
        try:
            try:
                rows = await self.store.delete("restaurants", {"id": restaurant_id})
            except RowStoreError as e:
                logger.exception(f"Restaurant {restaurant_id} delete failed")
                raise classify_store_error(e) from e

            if not rows:
                raise BackendError("The restaurant could not be deleted.")

            if self.cache is not None:
                self.cache.remove_restaurant(restaurant_id)
            logger.info(f"Deleted restaurant {restaurant_id}")
            return True
        finally:
            self._deleting.discard(restaurant_id)
