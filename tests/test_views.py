"""Tests for the page view-models."""

import asyncio

import pytest

from foodmap import routes
from foodmap.errors import BackendError, UnauthenticatedError
from foodmap.models import RestaurantDraft
from foodmap.services import KeyEventBus
from foodmap.services.gallery import Key
from foodmap.views import DetailView, HomeView, MyPageView, NewRestaurantView, region_of
from foodmap.views.home import ALL_REGIONS


@pytest.fixture
def listings(store, alice, bob):
    """Three restaurants with a few reviews."""
    asakusa = store.seed(
        "restaurants",
        name="Tempura Aoi",
        address="Tokyo, Asakusa",
        description="Crisp tempura",
        created_by=alice.id,
        gallery_urls=["g1.jpg", "g2.jpg"],
        map_url="https://maps/@35.714765,139.796655,17z",
    )
    shibuya = store.seed(
        "restaurants", name="Ramen Ichi", address="Tokyo, Shibuya", created_by=bob.id
    )
    osaka = store.seed(
        "restaurants", name="Kushikatsu", address="Osaka", created_by=bob.id
    )
    for restaurant, user, rating, comment in [
        (asakusa, bob, 4, "good"),
        (asakusa, alice, 5, "mine"),
        (shibuya, alice, 3, "ok"),
    ]:
        store.seed(
            "reviews",
            restaurant_id=restaurant["id"],
            user_id=user.id,
            rating=rating,
            comment=comment,
        )
    return {"asakusa": asakusa, "shibuya": shibuya, "osaka": osaka}


class TestHomeView:
    """Test the restaurant list."""

    def test_region_of(self):
        """Test the region is the second address part."""
        assert region_of("Tokyo, Asakusa") == "Asakusa"
        assert region_of("Osaka") == "Osaka"

    @pytest.mark.asyncio
    async def test_load_and_cards(self, reader, cfg, listings):
        """Test newest first with per-restaurant ratings."""
        view = HomeView(reader, cfg)

        await view.load()
        cards = view.cards()

        assert [c.restaurant.name for c in cards] == [
            "Kushikatsu",
            "Ramen Ichi",
            "Tempura Aoi",
        ]
        assert view.restaurant_count == 3
        assert view.review_count == 3
        by_name = {c.restaurant.name: c for c in cards}
        assert by_name["Tempura Aoi"].stats.average == 4.5
        assert by_name["Tempura Aoi"].stats.count == 2
        assert by_name["Kushikatsu"].stats.average is None

    @pytest.mark.asyncio
    async def test_search_and_region_filter(self, reader, cfg, listings):
        """Test search matches name, description or address within a region."""
        view = HomeView(reader, cfg)
        await view.load()

        assert view.regions == [ALL_REGIONS, "Asakusa", "Osaka", "Shibuya"]

        view.query = "TEMPURA"
        assert [c.restaurant.name for c in view.cards()] == ["Tempura Aoi"]

        view.query = "tokyo"
        view.region = "Shibuya"
        assert [c.restaurant.name for c in view.cards()] == ["Ramen Ichi"]

        view.query = ""
        view.region = ALL_REGIONS
        assert len(view.cards()) == 3

    @pytest.mark.asyncio
    async def test_limit(self, reader, cfg, listings):
        """Test the home list is capped."""
        view = HomeView(reader, cfg.model_copy(update={"home_restaurant_limit": 2}))

        await view.load()

        assert view.restaurant_count == 2

    @pytest.mark.asyncio
    async def test_bad_row_reported(self, reader, store, cfg, listings):
        """Test a malformed row surfaces as a load error."""
        store.seed("reviews", restaurant_id=1, user_id="x", rating=9, comment="bad")
        view = HomeView(reader, cfg)

        await view.load()

        assert view.error is not None
        assert view.cards() == []
        assert not view.loading

    @pytest.mark.asyncio
    async def test_reader_rejects_bad_rows(self, reader, store):
        """Test the read path validates rows into models."""
        store.seed("reviews", restaurant_id=1, user_id="x", rating=0, comment="bad")

        with pytest.raises(BackendError):
            await reader.all_reviews()

    @pytest.mark.asyncio
    async def test_stale_load_is_dropped(self, reader, store, cfg, alice, listings):
        """Test a slow earlier load cannot overwrite a newer one."""
        release = asyncio.Event()
        original_select = store.select
        calls = 0

        async def gated_select(table, query):
            nonlocal calls
            rows = await original_select(table, query)
            if table == "restaurants":
                calls += 1
                if calls == 1:
                    await release.wait()
            return rows

        store.select = gated_select
        view = HomeView(reader, cfg)

        first = asyncio.ensure_future(view.load())
        await asyncio.sleep(0)
        store.seed(
            "restaurants", name="Newest", address="Tokyo, Ueno", created_by=alice.id
        )
        await view.load()
        release.set()
        await first

        assert view.restaurant_count == 4
        assert view.cards()[0].restaurant.name == "Newest"

    @pytest.mark.asyncio
    async def test_load_after_dispose_is_dropped(self, reader, cfg, listings):
        """Test results arriving after teardown are not applied."""
        view = HomeView(reader, cfg)
        view.dispose()

        await view.load()

        assert view.restaurant_count == 0


class TestDetailView:
    """Test the restaurant detail page."""

    @pytest.fixture
    def key_bus(self):
        return KeyEventBus()

    @pytest.fixture
    def make_view(self, reader, store, gate, auth, key_bus, cfg, navigations):
        views = []

        def make(restaurant_id):
            view = DetailView(
                restaurant_id,
                reader,
                store,
                gate,
                auth,
                key_bus=key_bus,
                cfg=cfg,
                navigate=navigations.append,
            )
            views.append(view)
            return view

        yield make
        for view in views:
            view.dispose()

    @pytest.mark.asyncio
    async def test_load(self, make_view, identity_service, alice, listings):
        """Test restaurant, stats, map and own review pinned first."""
        identity_service.force_session(alice)
        view = make_view(listings["asakusa"]["id"])

        await view.load()

        assert view.restaurant.name == "Tempura Aoi"
        assert view.stats.average == 4.5
        assert view.my_review.comment == "mine"
        assert view.pinned.ordered()[0].user_id == alice.id
        assert "35.714765,139.796655" in view.embed_url
        assert view.carousel.total == 2
        view.auth.stop()

    @pytest.mark.asyncio
    async def test_missing_restaurant(self, make_view, listings):
        """Test an unknown id loads nothing."""
        view = make_view(999)

        await view.load()

        assert view.restaurant is None
        assert view.embed_url == ""
        view.auth.stop()

    @pytest.mark.asyncio
    async def test_visitor_editor_redirects(self, make_view, listings, navigations):
        """Test visitors are sent to sign in when they try to review."""
        view = make_view(listings["osaka"]["id"])
        await view.load()

        assert await view.open_editor() is False
        assert navigations == [routes.SIGN_IN]
        view.auth.stop()

    @pytest.mark.asyncio
    async def test_save_and_delete_review(
        self, make_view, store, identity_service, alice, listings
    ):
        """Test posting, updating and deleting one's review."""
        identity_service.force_session(alice)
        view = make_view(listings["osaka"]["id"])
        await view.load()
        assert await view.open_editor()

        message = await view.save_review(4, "crispy", "p1.jpg\np1.jpg")
        assert message == "Review posted."
        assert view.stats.count == 1
        assert view.my_review.photo_urls == ["p1.jpg"]
        assert not view.editor_open

        assert await view.save_review(5, "even better") == "Review updated."
        assert view.stats.average == 5.0
        mine = [r for r in store.tables["reviews"] if r["user_id"] == alice.id]
        assert len(mine) == 3

        assert await view.delete_review() == "Review deleted."
        assert view.my_review is None
        view.auth.stop()

    @pytest.mark.asyncio
    async def test_save_with_lapsed_session(
        self, make_view, identity_service, alice, listings, navigations
    ):
        """Test an expired session sends the user to sign in."""
        identity_service.force_session(alice)
        view = make_view(listings["osaka"]["id"])
        await view.load()
        identity_service.force_session(None)

        message = await view.save_review(4, "ok")

        assert message == "Sign-in required. Please sign in again."
        assert navigations == [routes.SIGN_IN]
        view.auth.stop()

    @pytest.mark.asyncio
    async def test_dispose_detaches_gallery_keys(self, make_view, key_bus, listings):
        """Test leaving the page releases key handlers."""
        view = make_view(listings["asakusa"]["id"])
        await view.load()
        view.carousel.open(0)
        key_bus.dispatch(Key.ARROW_RIGHT.value)
        assert view.carousel.current_photo == "g2.jpg"

        view.dispose()

        assert key_bus.handler_count == 0
        view.auth.stop()


class TestMyPageView:
    """Test the signed-in user's page."""

    @pytest.fixture
    def view(self, reader, store, gate, auth, cfg, navigations):
        view = MyPageView(reader, store, gate, auth, cfg, navigations.append)
        yield view
        view.dispose()

    @pytest.mark.asyncio
    async def test_requires_login(self, view, navigations):
        """Test visitors are redirected to sign in."""
        with pytest.raises(UnauthenticatedError):
            await view.load()

        assert navigations == [routes.SIGN_IN]
        view.auth.stop()

    @pytest.mark.asyncio
    async def test_load(self, view, identity_service, alice, listings):
        """Test only the user's own reviews and restaurants are shown."""
        identity_service.force_session(alice)

        await view.load()

        assert {r.comment for r in view.reviews} == {"mine", "ok"}
        assert [r.name for r in view.restaurants] == ["Tempura Aoi"]
        assert view.my_rating.average == 4.0
        view.auth.stop()

    @pytest.mark.asyncio
    async def test_edit_review(self, view, identity_service, alice, listings):
        """Test editing a review from the list."""
        identity_service.force_session(alice)
        await view.load()
        review = next(r for r in view.reviews if r.comment == "ok")

        view.open_edit(review)
        message = await view.save_review(2, "worse on a second visit")

        assert message == "Review updated."
        assert view.editing is None
        updated = next(r for r in view.reviews if r.id == review.id)
        assert updated.rating == 2
        view.auth.stop()

    @pytest.mark.asyncio
    async def test_save_without_selection(
        self, view, identity_service, alice, listings
    ):
        """Test saving with nothing selected asks for a choice."""
        identity_service.force_session(alice)
        await view.load()

        assert await view.save_review(3, "x") == "Choose a review to edit."
        view.auth.stop()

    @pytest.mark.asyncio
    async def test_delete_review_and_restaurant(
        self, view, store, identity_service, alice, listings
    ):
        """Test deleting own content updates the page."""
        identity_service.force_session(alice)
        await view.load()
        review = view.reviews[0]

        assert await view.delete_review(review.id) == "Review deleted."
        restaurant_id = listings["asakusa"]["id"]
        assert await view.delete_restaurant(restaurant_id) == "Restaurant deleted."
        assert view.restaurants == []
        assert all(r["id"] != restaurant_id for r in store.tables["restaurants"])
        view.auth.stop()


class TestNewRestaurantView:
    """Test the registration form."""

    @pytest.fixture
    def view(self, store, gate, auth, navigations):
        return NewRestaurantView(store, gate, auth, navigations.append)

    def test_preview(self):
        """Test the preview links follow the entered map URL."""
        preview = NewRestaurantView.preview(
            RestaurantDraft(address="Tokyo", map_url="https://maps/@1.5,2.5,10z")
        )

        assert "1.5,2.5" in preview["embed_url"]
        assert preview["map_link"] == "https://maps/@1.5,2.5,10z"

    @pytest.mark.asyncio
    async def test_visitor_redirected(self, view, navigations):
        """Test visitors are sent to sign in before filling the form."""
        assert await view.check_access() is None
        assert navigations == [routes.SIGN_IN]
        view.auth.stop()

    @pytest.mark.asyncio
    async def test_save(self, view, store, identity_service, alice, navigations):
        """Test registering sends the user home."""
        identity_service.force_session(alice)
        assert await view.check_access() == alice

        draft = RestaurantDraft(name="Soba Yu", address="Kyoto, Gion")
        message = await view.save(draft)

        assert message == "Restaurant registered."
        assert view.created.created_by == alice.id
        assert navigations == [routes.HOME]
        assert len(store.tables["restaurants"]) == 1
        view.auth.stop()

    @pytest.mark.asyncio
    async def test_duplicate(self, view, identity_service, alice, navigations):
        """Test a second registration of the same place is reported."""
        identity_service.force_session(alice)
        await view.check_access()
        draft = RestaurantDraft(name="Soba Yu", address="Kyoto, Gion")
        await view.save(draft)

        message = await view.save(draft)

        assert message == "This restaurant is already registered."
        assert navigations == [routes.HOME]
        view.auth.stop()
