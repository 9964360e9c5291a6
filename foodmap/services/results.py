"""Outcome of a write followed by a targeted refresh."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from foodmap.errors import FoodMapError

T = TypeVar("T")


@dataclass(frozen=True)
class MutationResult(Generic[T]):
    """A committed write and, separately, how its follow-up refresh went.

    ``refresh_error`` is set when the write succeeded but reloading the
    affected collection failed. The write is not rolled back in that case.
    """

    value: T
    refresh_error: FoodMapError | None = None

    @property
    def refreshed(self) -> bool:
        return self.refresh_error is None
