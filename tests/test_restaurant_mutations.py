"""Tests for restaurant registration, deletion and link parsing."""

import asyncio

import pytest

from foodmap.errors import (
    BackendError,
    ConflictError,
    InputValidationError,
    UnauthenticatedError,
)
from foodmap.models import RestaurantDraft
from foodmap.services import RestaurantMutationService, RowCache
from foodmap.services.links import (
    dedupe_urls,
    extract_lat_lng,
    map_embed_url,
    map_link,
    normalize_url_text,
)
from foodmap.services.restaurant_mutations import build_restaurant_row
from foodmap.services.row_cache import RESTAURANTS

MAP_URL = "https://www.google.com/maps/place/Asakusa/@35.714765,139.796655,17z"


@pytest.fixture
def draft():
    return RestaurantDraft(
        name=" Sushi Dai ",
        address="Tokyo, Tsukiji",
        description="Famous sushi",
        map_url=MAP_URL,
        category="Japanese",
        gallery_text="url1\nurl1,url2",
    )


@pytest.fixture
def service(store, gate):
    return RestaurantMutationService(store, gate, RowCache())


class TestLinks:
    """Test map link and URL list parsing."""

    def test_extract_lat_lng(self):
        """Test the coordinate pair is read from the map link."""
        assert extract_lat_lng(MAP_URL) == (35.714765, 139.796655)

    def test_extract_negative_coordinates(self):
        """Test coordinates in the western and southern hemispheres."""
        assert extract_lat_lng("https://maps/@-33.8688,-151.2093,12z") == (
            -33.8688,
            -151.2093,
        )

    @pytest.mark.parametrize("url", [None, "", "https://maps.app.goo.gl/abc"])
    def test_no_coordinates(self, url):
        """Test links without a coordinate pair."""
        assert extract_lat_lng(url) == (None, None)

    def test_normalize_url_text(self):
        """Test splitting on newlines and commas with duplicates removed."""
        assert normalize_url_text("url1\nurl1,url2") == ["url1", "url2"]
        assert normalize_url_text(" a ,\n\n, b ") == ["a", "b"]
        assert normalize_url_text("") == []

    def test_dedupe_keeps_first_occurrence(self):
        """Test that order follows first appearance."""
        assert dedupe_urls(["b", "a", "b", " ", "a"]) == ["b", "a"]

    def test_map_embed_url(self):
        """Test embeds prefer coordinates and fall back to the address."""
        assert "35.714765,139.796655" in map_embed_url(MAP_URL, "Tokyo")
        assert "Tokyo%2C%20Asakusa" in map_embed_url(None, "Tokyo, Asakusa")
        assert map_embed_url(None, None) == ""

    def test_map_link(self):
        """Test the outbound link uses the entered URL when there is one."""
        assert map_link(f" {MAP_URL} ", "Tokyo") == MAP_URL
        assert map_link(None, "Tokyo").startswith("https://www.google.com/maps/search/")
        assert map_link("", "") == ""


class TestBuildRestaurantRow:
    """Test form input conversion."""

    def test_builds_row(self, draft, alice):
        """Test trimming, coordinate extraction and gallery normalization."""
        row = build_restaurant_row(alice, draft)

        assert row["name"] == "Sushi Dai"
        assert row["lat"] == 35.714765
        assert row["lng"] == 139.796655
        assert row["gallery_urls"] == ["url1", "url2"]
        assert row["created_by"] == alice.id
        assert row["phone"] is None

    def test_empty_gallery_is_null(self, alice):
        """Test that no photos are stored as null, not an empty list."""
        row = build_restaurant_row(alice, RestaurantDraft(name="A", address="B"))

        assert row["gallery_urls"] is None
        assert row["lat"] is None

    @pytest.mark.parametrize(("name", "address"), [("", "B"), ("A", "  "), ("", "")])
    def test_requires_name_and_address(self, alice, name, address):
        """Test that blank required fields are rejected."""
        with pytest.raises(InputValidationError):
            build_restaurant_row(alice, RestaurantDraft(name=name, address=address))


class TestCreate:
    """Test RestaurantMutationService.create."""

    @pytest.mark.asyncio
    async def test_create(self, service, store, identity_service, alice, draft):
        """Test registering a restaurant owned by the caller."""
        identity_service.force_session(alice)

        restaurant = await service.create(alice, draft)

        assert restaurant.name == "Sushi Dai"
        assert restaurant.created_by == alice.id
        assert restaurant.gallery_urls == ["url1", "url2"]
        assert len(store.tables["restaurants"]) == 1
        assert not service.creating

    @pytest.mark.asyncio
    async def test_duplicate_is_conflict(self, service, identity_service, alice, draft):
        """Test that registering the same place twice is a conflict."""
        identity_service.force_session(alice)
        await service.create(alice, draft)

        with pytest.raises(ConflictError) as exc_info:
            await service.create(alice, draft)

        assert exc_info.value.message == "This restaurant is already registered."

    @pytest.mark.asyncio
    async def test_requires_identity(self, service, store, draft):
        """Test that visitors cannot register restaurants."""
        with pytest.raises(UnauthenticatedError):
            await service.create(None, draft)

        assert store.calls == []

    @pytest.mark.asyncio
    async def test_lapsed_session(self, service, store, alice, draft):
        """Test that an identity without a live session cannot write."""
        with pytest.raises(UnauthenticatedError):
            await service.create(alice, draft)

        assert store.tables["restaurants"] == []


class TestDeleteOwn:
    """Test RestaurantMutationService.delete_own."""

    @pytest.mark.asyncio
    async def test_delete_own(self, service, store, reader, identity_service, alice):
        """Test the owner can delete and the cache is updated."""
        identity_service.force_session(alice)
        row = store.seed("restaurants", name="A", address="B", created_by=alice.id)
        restaurants = await reader.list_restaurants(created_by=alice.id)
        service.cache.commit_restaurants(
            service.cache.begin_load(RESTAURANTS), restaurants
        )

        assert await service.delete_own(row["id"]) is True
        assert store.tables["restaurants"] == []
        assert service.cache.get_restaurant(row["id"]) is None

    @pytest.mark.asyncio
    async def test_non_owner_delete_refused(
        self, service, store, identity_service, alice, bob
    ):
        """Test that the store refuses to delete someone else's listing."""
        identity_service.force_session(bob)
        row = store.seed("restaurants", name="A", address="B", created_by=alice.id)

        with pytest.raises(BackendError):
            await service.delete_own(row["id"])

        assert len(store.tables["restaurants"]) == 1
        assert not service.is_deleting(row["id"])

    @pytest.mark.asyncio
    async def test_duplicate_delete_is_ignored(
        self, service, store, identity_service, alice
    ):
        """Test at most one delete per restaurant is in flight."""
        identity_service.force_session(alice)
        row = store.seed("restaurants", name="A", address="B", created_by=alice.id)
        release = asyncio.Event()
        original_delete = store.delete

        async def slow_delete(table, filters):
            await release.wait()
            return await original_delete(table, filters)

        store.delete = slow_delete

        first = asyncio.ensure_future(service.delete_own(row["id"]))
        await asyncio.sleep(0)
        assert service.is_deleting(row["id"])

        assert await service.delete_own(row["id"]) is None
        release.set()
        assert await first is True
        assert not service.is_deleting(row["id"])
