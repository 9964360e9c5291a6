"""Review models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Review(BaseModel):
    """A user's review of one restaurant."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Server-assigned identifier")
    restaurant_id: int = Field(..., description="Reviewed restaurant")
    user_id: str = Field(..., description="Owning identity id")
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    comment: str = Field(..., description="One-line comment")
    photo_urls: list[str] = Field(default_factory=list, description="Attached photos")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime | None = Field(None, description="Last edit timestamp")

    @field_validator("photo_urls", mode="before")
    @classmethod
    def _null_photos(cls, value):
        return [] if value is None else value

    @property
    def last_activity(self) -> datetime:
        """Most recent update time, falling back to creation time."""
        return self.updated_at or self.created_at
