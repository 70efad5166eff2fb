from __future__ import annotations

from enum import Enum
from typing import Protocol


class AuditEventType(str, Enum):
    REFRESH_TOKEN_ROTATED = "RefreshTokenRotated"
    SLIDING_EXPIRATION_EXTENDED = "SlidingExpirationExtended"
    REFRESH_TOKEN_REUSE_DETECTED = "RefreshTokenReuseDetected"
    SESSION_CHAIN_REVOKED = "SessionChainRevoked"


class AuditSink(Protocol):
    async def log_event(
        self,
        event_type: str,
        user_id: str | None = None,
        details: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        ...
