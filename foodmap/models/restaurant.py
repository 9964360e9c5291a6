"""Restaurant listing models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Restaurant(BaseModel):
    """Restaurant listing row."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Server-assigned identifier")
    name: str = Field(..., description="Restaurant name")
    address: str = Field(..., description="Street address, e.g. 'Tokyo, Asakusa'")
    description: str | None = Field(None, description="Short introduction")
    thumbnail_url: str | None = Field(None, description="Hero image URL")
    map_url: str | None = Field(None, description="Map link as entered")
    lat: float | None = Field(None, description="Latitude parsed from the map link")
    lng: float | None = Field(None, description="Longitude parsed from the map link")
    category: str | None = Field(None, description="Food category")
    main_menu: str | None = Field(None, description="Signature dishes")
    features: str | None = Field(None, description="Notable features")
    phone: str | None = Field(None, description="Contact phone number")
    gallery_urls: list[str] = Field(
        default_factory=list, description="Extra photos in display order"
    )
    created_by: str | None = Field(None, description="Owning identity id")
    created_at: datetime = Field(..., description="Creation timestamp")

    @field_validator("gallery_urls", mode="before")
    @classmethod
    def _null_gallery(cls, value):
        return [] if value is None else value


class RestaurantDraft(BaseModel):
    """Raw form input for a new listing, before trimming and derivation."""

    name: str = ""
    address: str = ""
    description: str = ""
    thumbnail_url: str = ""
    map_url: str = ""
    category: str = ""
    main_menu: str = ""
    features: str = ""
    phone: str = ""
    gallery_text: str = Field(
        default="", description="Photo URLs separated by commas or newlines"
    )
