"""Cyclic photo viewer state machine.

The viewer is either Closed or Open at an index. While open, previous and
next wrap around the photo list, and global key handlers are attached to a
``KeyEventBus``; closing detaches them again.
"""

import logging
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

KeyHandler = Callable[[str], None]


class Key(str, Enum):
    """Key names the viewer responds to."""

    ESCAPE = "Escape"
    ARROW_LEFT = "ArrowLeft"
    ARROW_RIGHT = "ArrowRight"


class KeyEventBus:
    """Process-wide key event dispatch, standing in for window key listeners."""

    def __init__(self) -> None:
        self._handlers: list[KeyHandler] = []

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def attach(self, handler: KeyHandler) -> Callable[[], None]:
        """Add a handler and return the function that removes it."""
        self._handlers.append(handler)

        def detach() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return detach

    def dispatch(self, key: str) -> None:
        for handler in list(self._handlers):
            handler(key)


class GalleryViewState(BaseModel):
    """Snapshot of the viewer for rendering."""

    model_config = ConfigDict(frozen=True)

    is_open: bool = False
    index: int = 0
    total: int = 0


class GalleryCarousel:
    """Photo viewer over one restaurant's gallery."""

    def __init__(self, photos: list[str], key_bus: KeyEventBus | None = None) -> None:
        self.key_bus = key_bus or KeyEventBus()
        self.photos: list[str] = []
        self._is_open = False
        self._index = 0
        self._detach: Callable[[], None] | None = None
        self.reset(photos)

    @property
    def total(self) -> int:
        return len(self.photos)

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def index(self) -> int:
        return self._index

    @property
    def state(self) -> GalleryViewState:
        return GalleryViewState(is_open=self._is_open, index=self._index, total=self.total)

    @property
    def current_photo(self) -> str | None:
        return self.photos[self._index] if self._is_open else None

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.total:
            msg = f"Photo index {index} out of range for {self.total} photos"
            raise ValueError(msg)

    def open(self, index: int = 0) -> None:
        """Open the viewer at ``index``.

        Raises:
            ValueError: If there are no photos or the index is out of range
        """
        if self.total == 0:
            msg = "No photos to show"
            raise ValueError(msg)
        self._check_index(index)

        self._index = index
        self._is_open = True
        if self._detach is None:
            self._detach = self.key_bus.attach(self.handle_key)

    def close(self) -> None:
        """Close the viewer and detach key handlers. Valid in any state."""
        self._is_open = False
        if self._detach is not None:
            self._detach()
            self._detach = None

    def prev(self) -> None:
        if self._is_open:
            self._index = (self._index - 1) % self.total

    def next(self) -> None:
        if self._is_open:
            self._index = (self._index + 1) % self.total

    def jump_to(self, index: int) -> None:
        """Select a photo directly, as from a thumbnail strip."""
        self._check_index(index)
        self._index = index

    def handle_key(self, key: str) -> None:
        if not self._is_open:
            return
        if key == Key.ESCAPE.value:
            self.close()
        elif key == Key.ARROW_LEFT.value:
            self.prev()
        elif key == Key.ARROW_RIGHT.value:
            self.next()

    def reset(self, photos: list[str]) -> None:
        """Replace the photo list and return to the closed state."""
        self.close()
        self.photos = [p for p in photos if p and p.strip()]
        self._index = 0
        logger.debug(f"Gallery reset with {self.total} photos")
