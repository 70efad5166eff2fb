from datetime import datetime
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.ports.session import UserSessionData, UserSessionPort
from ..models.user_session import UserSession


async def get_user_session(
    session: AsyncSession, user_id: uuid.UUID, authorization_id: str
) -> UserSession | None:
    # populate_existing: a retry after a lost conditional write must see the
    # row as committed by the winner, not the identity-map copy.
    stmt = (
        select(UserSession)
        .where(
            UserSession.user_id == user_id,
            UserSession.authorization_id == authorization_id,
        )
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def create_user_session(
    session: AsyncSession,
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
) -> UserSession:
    user_session = UserSession(
        user_id=user_id,
        authorization_id=authorization_id,
        client_id=client_id,
        client_display_name=client_display_name,
        current_refresh_token_hash=refresh_token_hash,
        previous_refresh_token_hash=None,
        absolute_expires_utc=absolute_expires_utc,
        sliding_expires_utc=sliding_expires_utc,
        sliding_extension_count=0,
        created_utc=created_utc,
        last_activity_utc=created_utc,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    session.add(user_session)
    await session.flush()
    return user_session


async def rotate_user_session(
    session: AsyncSession,
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
    values: dict[str, object] = {
        "previous_refresh_token_hash": expected_hash,
        "current_refresh_token_hash": new_hash,
        "sliding_expires_utc": sliding_expires_utc,
        "sliding_extension_count": UserSession.sliding_extension_count + 1,
        "last_activity_utc": activity_utc,
    }
    if ip_address is not None:
        values["ip_address"] = ip_address
    if user_agent is not None:
        values["user_agent"] = user_agent

    stmt = (
        update(UserSession)
        .where(
            UserSession.user_id == user_id,
            UserSession.authorization_id == authorization_id,
            UserSession.current_refresh_token_hash == expected_hash,
            UserSession.revoked_utc.is_(None),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount == 1


async def revoke_user_session(
    session: AsyncSession,
    user_id: uuid.UUID,
    authorization_id: str,
    *,
    revoked_utc: datetime,
    reason: str,
    reuse_detected: bool = False,
) -> bool:
    values: dict[str, object] = {
        "revoked_utc": revoked_utc,
        "revocation_reason": reason,
    }
    if reuse_detected:
        values["reuse_detected_utc"] = revoked_utc

    stmt = (
        update(UserSession)
        .where(
            UserSession.user_id == user_id,
            UserSession.authorization_id == authorization_id,
            UserSession.revoked_utc.is_(None),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount == 1


class UserSessionRepository(UserSessionPort):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, user_id: uuid.UUID, authorization_id: str
    ) -> UserSessionData | None:
        return await get_user_session(self._session, user_id, authorization_id)

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
        return await create_user_session(
            self._session,
            user_id,
            authorization_id,
            refresh_token_hash=refresh_token_hash,
            absolute_expires_utc=absolute_expires_utc,
            sliding_expires_utc=sliding_expires_utc,
            created_utc=created_utc,
            client_id=client_id,
            client_display_name=client_display_name,
            ip_address=ip_address,
            user_agent=user_agent,
        )

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
        return await rotate_user_session(
            self._session,
            user_id,
            authorization_id,
            expected_hash=expected_hash,
            new_hash=new_hash,
            sliding_expires_utc=sliding_expires_utc,
            activity_utc=activity_utc,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    async def revoke(
        self,
        user_id: uuid.UUID,
        authorization_id: str,
        *,
        revoked_utc: datetime,
        reason: str,
        reuse_detected: bool = False,
    ) -> bool:
        return await revoke_user_session(
            self._session,
            user_id,
            authorization_id,
            revoked_utc=revoked_utc,
            reason=reason,
            reuse_detected=reuse_detected,
        )

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()
