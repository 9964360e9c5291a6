"""Identity and session models supplied by the identity service."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """Signed-in user as reported by the identity service."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque user identifier")
    email: str | None = Field(None, description="User email address")


class Session(BaseModel):
    """Authenticated session."""

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(..., description="Bearer token for row store calls")
    refresh_token: str | None = Field(None, description="Token used to renew the session")
    expires_at: datetime | None = Field(None, description="When the access token expires")
    user: Identity = Field(..., description="Identity the session belongs to")

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the access token has expired."""
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at
