import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UserSession(Base):
    """Local bookkeeping for one authorization's refresh-token chain.

    Rows are tombstoned through ``revoked_utc`` and never deleted.
    """

    __tablename__ = "user_sessions"
    __table_args__ = (
        UniqueConstraint("authorization_id", name="uq_user_sessions_authorization_id"),
        Index("ix_user_sessions_user_id_authorization_id", "user_id", "authorization_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    authorization_id: Mapped[str] = mapped_column(String(200), nullable=False)
    client_id: Mapped[str | None] = mapped_column(String(200))
    client_display_name: Mapped[str | None] = mapped_column(String(200))

    # SHA-256 hex digests; raw refresh tokens are never persisted
    current_refresh_token_hash: Mapped[str | None] = mapped_column(String(64))
    previous_refresh_token_hash: Mapped[str | None] = mapped_column(String(64))

    absolute_expires_utc: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sliding_expires_utc: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sliding_extension_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    created_utc: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_activity_utc: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    revoked_utc: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    revocation_reason: Mapped[str | None] = mapped_column(String(500))
    reuse_detected_utc: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    ip_address: Mapped[str | None] = mapped_column(String(45))  # IPv4/IPv6
    user_agent: Mapped[str | None] = mapped_column(Text)
