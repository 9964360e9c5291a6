"""Command-line interface for Food Map - interactive client for the listings."""

import asyncio
import getpass
import logging
import shlex
import sys

from foodmap import routes
from foodmap.config import get_config, setup_logging
from foodmap.errors import FoodMapError
from foodmap.models import RestaurantDraft
from foodmap.services import (
    AuthPoller,
    GoTrueIdentityService,
    KeyEventBus,
    ListingReader,
    PostgrestRowStore,
    SessionGate,
)
from foodmap.services.gallery import Key
from foodmap.views import (
    AuthFlow,
    AuthMode,
    AuthStatus,
    DetailView,
    HomeView,
    MyPageView,
    NewRestaurantView,
)
from foodmap.views.home import ALL_REGIONS

logger = logging.getLogger(__name__)

HELP = """Commands:
  list                         show restaurants
  search <text>                filter by name, description or address
  region <name|ALL>            filter by region
  show <id>                    restaurant details and reviews
  gallery <id>                 browse photos (left, right, esc, or a number)
  login | signup | logout      account
  review <id> <1-5> <comment>  write or update your review
  unreview <id>                delete your review
  me                           your reviews and restaurants
  add                          register a restaurant
  quit                         exit"""

GALLERY_KEYS = {"left": Key.ARROW_LEFT, "right": Key.ARROW_RIGHT, "esc": Key.ESCAPE}


class FoodMapCLI:
    """Command-line interface for the Food Map client."""

    def __init__(self) -> None:
        """Initialize the CLI."""
        self.config = get_config()
        setup_logging(self.config)

        self.identity = GoTrueIdentityService(self.config)
        self.store = PostgrestRowStore(
            self.config, token_provider=lambda: self.identity.access_token
        )
        self.reader = ListingReader(self.store)
        self.gate = SessionGate(self.identity, self.config)
        self.auth = AuthPoller(self.identity, self.config, navigate=self._navigate)
        self.auth.add_listener(self._on_identity)
        self.key_bus = KeyEventBus()
        self.home = HomeView(self.reader, self.config)

        logger.info("Food Map CLI initialized")
        self._display_config_status()

    def _display_config_status(self) -> None:
        print("\n" + "=" * 60)
        print("FOOD MAP - Restaurant listings and reviews")
        print("=" * 60)
        print(f"backend: {self.config.supabase_url}")
        print("=" * 60 + "\n")

    def _navigate(self, route: str) -> None:
        print(f"→ {route}")

    def _on_identity(self, identity) -> None:
        print(f"[{identity.email or identity.id if identity else 'Guest'}]")

    async def _input(self, prompt: str) -> str:
        return (await asyncio.to_thread(input, prompt)).strip()

    async def run(self) -> None:
        """Run the CLI application."""
        await self.auth.start()
        print(HELP)

        try:
            while True:
                try:
                    line = await self._input("\nfoodmap> ")
                    if not line:
                        continue
                    if line.lower() in ["quit", "exit", "q"]:
                        print("\nGoodbye!")
                        break
                    await self._process_command(line)
                except (KeyboardInterrupt, EOFError):
                    print("\n\nExiting Food Map. Goodbye!")
                    break
                except Exception as e:
                    logger.error(f"Unexpected error: {e}", exc_info=True)
                    print(f"\n⚠ An unexpected error occurred: {e}")
        finally:
            self.auth.stop()
            self.home.dispose()
            await self.store.aclose()
            await self.identity.aclose()

    async def _process_command(self, line: str) -> None:
        command, *args = shlex.split(line)
        command = command.lower()

        if command == "list":
            await self.home.load()
            self._print_home()
        elif command == "search":
            self.home.query = " ".join(args)
            self._print_home()
        elif command == "region":
            self.home.region = args[0] if args else ALL_REGIONS
            self._print_home()
        elif command == "show" and args:
            await self._show(int(args[0]))
        elif command == "gallery" and args:
            await self._gallery(int(args[0]))
        elif command in ("login", "signup"):
            await self._authenticate(AuthMode(command))
        elif command == "logout":
            confirmed = await self.auth.sign_out()
            print("✓ Signed out" if confirmed else "⚠ Signed out locally")
        elif command == "review" and len(args) >= 3:
            await self._review(int(args[0]), int(args[1]), " ".join(args[2:]))
        elif command == "unreview" and args:
            await self._unreview(int(args[0]))
        elif command == "me":
            await self._my_page()
        elif command == "add":
            await self._add_restaurant()
        else:
            print(HELP)

    def _print_home(self) -> None:
        if self.home.error:
            print(f"⚠ Loading failed: {self.home.error}")
            return
        print(
            f"{self.home.restaurant_count} restaurants, {self.home.review_count} reviews"
            f" | regions: {', '.join(self.home.regions)}"
        )
        for card in self.home.cards():
            stats = card.stats
            rating = f"{stats.average:.1f} ({stats.count})" if stats.count else "no rating"
            print(
                f"  [{card.restaurant.id}] {card.restaurant.name}"
                f" - {card.region} - {rating}"
            )

    def _detail(self, restaurant_id: int) -> DetailView:
        return DetailView(
            restaurant_id,
            self.reader,
            self.store,
            self.gate,
            self.auth,
            key_bus=self.key_bus,
            cfg=self.config,
            navigate=self._navigate,
        )

    async def _show(self, restaurant_id: int) -> None:
        view = self._detail(restaurant_id)
        try:
            await view.load()
            restaurant = view.restaurant
            if restaurant is None:
                print(f"⚠ Restaurant not found. {view.message or ''}")
                return

            stats = view.stats
            print(f"\n{restaurant.name}  ({restaurant.category or '-'})")
            print(
                f"rating: {stats.average:.1f} ({stats.count})"
                if stats.count
                else "rating: no rating"
            )
            for label, value in [
                ("address", restaurant.address),
                ("menu", restaurant.main_menu),
                ("features", restaurant.features),
                ("phone", restaurant.phone),
                ("about", restaurant.description),
                ("map", view.map_link),
            ]:
                print(f"  {label}: {value or '-'}")
            print(f"  photos: {view.carousel.total}")

            pinned = view.pinned
            for review in pinned.ordered():
                mine = " (mine)" if review is pinned.pinned else ""
                print(
                    f"  ★{review.rating}{mine} {review.comment}"
                    f"  [{review.last_activity:%Y-%m-%d %H:%M}]"
                )
        finally:
            view.dispose()

    async def _gallery(self, restaurant_id: int) -> None:
        view = self._detail(restaurant_id)
        try:
            await view.load()
            carousel = view.carousel
            if carousel.total == 0:
                print("No photos for this restaurant.")
                return

            carousel.open(0)
            while carousel.is_open:
                print(f"{carousel.index + 1} / {carousel.total}: {carousel.current_photo}")
                key = (await self._input("gallery> ")).lower()
                if key.isdigit() and 1 <= int(key) <= carousel.total:
                    carousel.jump_to(int(key) - 1)
                elif key in GALLERY_KEYS:
                    self.key_bus.dispatch(GALLERY_KEYS[key].value)
        finally:
            view.dispose()

    async def _authenticate(self, mode: AuthMode) -> None:
        flow = AuthFlow(
            self.identity, self.gate, self.config, navigate=self._navigate, mode=mode
        )
        email = await self._input("email: ")
        password = await asyncio.to_thread(getpass.getpass, "password: ")
        outcome = await flow.submit(email, password)

        if outcome.status is AuthStatus.SESSION_PENDING:
            print(f"⚠ {outcome.message} (continue to {outcome.continue_to})")
        elif outcome.status in (AuthStatus.SIGNED_IN, AuthStatus.SIGNED_UP):
            print(f"✓ {outcome.message}")
        elif outcome.message:
            print(f"⚠ {outcome.message}")

    async def _review(self, restaurant_id: int, rating: int, comment: str) -> None:
        view = self._detail(restaurant_id)
        try:
            await view.load()
            if await view.open_editor():
                print(await view.save_review(rating, comment) or "")
        finally:
            view.dispose()

    async def _unreview(self, restaurant_id: int) -> None:
        view = self._detail(restaurant_id)
        try:
            await view.load()
            if view.my_review is None:
                print("You have not reviewed this restaurant.")
                return
            print(await view.delete_review() or "")
        finally:
            view.dispose()

    async def _my_page(self) -> None:
        view = MyPageView(
            self.reader, self.store, self.gate, self.auth, self.config, self._navigate
        )
        try:
            await view.load()
            if view.message:
                print(f"⚠ {view.message}")
                return

            stats = view.my_rating
            average = f"{stats.average:.1f}" if stats.count else "-"
            print(f"My reviews: {len(view.reviews)}, average given: {average}")
            for review in view.reviews:
                print(
                    f"  #{review.id} restaurant {review.restaurant_id}:"
                    f" ★{review.rating} {review.comment}"
                )
            print(f"My restaurants: {len(view.restaurants)}")
            for restaurant in view.restaurants:
                print(f"  [{restaurant.id}] {restaurant.name}")
        except FoodMapError as e:
            print(f"⚠ {e.message}")
        finally:
            view.dispose()

    async def _add_restaurant(self) -> None:
        view = NewRestaurantView(self.store, self.gate, self.auth, self._navigate)
        if await view.check_access() is None:
            return

        values = {}
        for field in RestaurantDraft.model_fields:
            values[field] = await self._input(f"{field.replace('_', ' ')}: ")
        message = await view.save(RestaurantDraft(**values))
        if message:
            print(message)
        if view.created is not None:
            print(f"→ {routes.restaurant_detail(view.created.id)}")


def main() -> None:
    """Main entry point for the CLI."""
    try:
        config = get_config()
    except Exception as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    if not config.has_backend_config():
        print("Configuration error: backend not configured.")
        print("\nCreate a .env file with at minimum:")
        print("  SUPABASE_URL=https://your-project.supabase.co")
        print("  SUPABASE_ANON_KEY=your_anon_key")
        sys.exit(1)

    cli = FoodMapCLI()
    asyncio.run(cli.run())


if __name__ == "__main__":
    main()
