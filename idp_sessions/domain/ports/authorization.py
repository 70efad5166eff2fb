"""Contracts for the protocol engine's grant, token and client stores.

These stores belong to the OAuth2/OIDC server; this package only consumes
them. Any backing (relational, document, in-memory) satisfies the contract as
long as per-authorization revocation and subject enumeration work.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Protocol


class AuthorizationStatus(str, Enum):
    VALID = "valid"
    REVOKED = "revoked"
    INACTIVE = "inactive"


class TokenStatus(str, Enum):
    VALID = "valid"
    REDEEMED = "redeemed"
    REVOKED = "revoked"


class AuthorizationData(Protocol):
    id: str | None
    subject: str | None
    application_id: str | None
    status: str | None
    created_at: datetime | None


class AuthorizationStore(Protocol):
    async def find_by_id(self, authorization_id: str) -> AuthorizationData | None:
        ...

    async def find_by_subject(
        self, subject: str, *, status: str | None = None
    ) -> list[AuthorizationData]:
        ...

    async def try_revoke(self, authorization: AuthorizationData) -> bool:
        ...


class TokenStore(Protocol):
    async def revoke_by_authorization_id(self, authorization_id: str) -> int:
        ...

    async def list_expirations(
        self, authorization_id: str, *, status: str | None = TokenStatus.VALID.value
    ) -> list[datetime]:
        ...


class ApplicationData(Protocol):
    id: str
    client_id: str | None
    display_name: str | None


class ApplicationDirectory(Protocol):
    async def find_by_id(self, application_id: str) -> ApplicationData | None:
        ...
