from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RefreshOutcome(str, Enum):
    ROTATED = "rotated"
    REUSE_DETECTED = "reuse_detected"
    REVOKED = "revoked"
    EXPIRED = "expired"
    INVALID_TOKEN = "invalid_token"
    NOT_FOUND = "not_found"


class RefreshResult(BaseModel):
    """Outcome of one refresh attempt.

    ``refresh_token`` is only populated on rotation and is the raw secret the
    protocol layer hands back to the client.
    """
    authorization_id: str
    reuse_detected: bool = False
    sliding_extended: bool = False
    access_token_expires_at: datetime | None = None
    refresh_token_expires_at: datetime | None = None
    outcome: RefreshOutcome
    refresh_token: str | None = Field(default=None, repr=False)


class SessionRead(BaseModel):
    authorization_id: str
    client_id: str | None = None
    client_display_name: str | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None  # nearest-expiring valid token
    status: str | None = None


class SessionPage(BaseModel):
    items: list[SessionRead]
    page: int
    page_size: int
    total: int
    pages: int


class RevokeAllResult(BaseModel):
    revoked: int


class RevokeChainRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class RevokeChainResult(BaseModel):
    authorization_id: str
    tokens_revoked: int = 0
    already_revoked: bool = False


class UserSessionRead(BaseModel):
    authorization_id: str
    client_id: str | None = None
    client_display_name: str | None = None
    absolute_expires_utc: datetime | None = None
    sliding_expires_utc: datetime | None = None
    sliding_extension_count: int = 0
    created_utc: datetime
    last_activity_utc: datetime | None = None
    revoked_utc: datetime | None = None
    revocation_reason: str | None = None

    model_config = ConfigDict(from_attributes=True)


class StartedSession(BaseModel):
    session: UserSessionRead
    refresh_token: str = Field(repr=False)
