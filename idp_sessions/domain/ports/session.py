from __future__ import annotations

from datetime import datetime
import uuid
from typing import Protocol


class UserSessionData(Protocol):
    user_id: uuid.UUID
    authorization_id: str
    client_id: str | None
    client_display_name: str | None
    current_refresh_token_hash: str | None
    previous_refresh_token_hash: str | None
    absolute_expires_utc: datetime | None
    sliding_expires_utc: datetime | None
    sliding_extension_count: int
    created_utc: datetime
    last_activity_utc: datetime | None
    revoked_utc: datetime | None
    revocation_reason: str | None
    reuse_detected_utc: datetime | None


class UserSessionPort(Protocol):
    async def get(
        self, user_id: uuid.UUID, authorization_id: str
    ) -> UserSessionData | None:
        ...

    async def create(
        self,
        user_id: uuid.UUID,
        authorization_id: str,
        *,
        refresh_token_hash: str,
        absolute_expires_utc: datetime,
        sliding_expires_utc: datetime,
        created_utc: datetime,
        client_id: str | None = None,
        client_display_name: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> UserSessionData:
        ...

    async def rotate(
        self,
        user_id: uuid.UUID,
        authorization_id: str,
        *,
        expected_hash: str,
        new_hash: str,
        sliding_expires_utc: datetime,
        activity_utc: datetime,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> bool:
        """Compare-and-swap on the current hash; False means the row moved on."""
        ...

    async def revoke(
        self,
        user_id: uuid.UUID,
        authorization_id: str,
        *,
        revoked_utc: datetime,
        reason: str,
        reuse_detected: bool = False,
    ) -> bool:
        """Tombstone the row; False when it was already revoked or is missing."""
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...
