import logging
import uuid
from datetime import datetime

from ...domain.ports.authorization import AuthorizationStore, TokenStore
from ...domain.ports.clock import Clock, SystemClock, as_utc
from ...domain.ports.session import UserSessionPort
from .common import revoke_tokens_best_effort, subjects_match

logger = logging.getLogger(__name__)

USER_REVOCATION_REASON = "revoked_by_user"


async def tombstone_local_session(
    session_port: UserSessionPort | None,
    user_id: uuid.UUID,
    authorization_id: str,
    *,
    now: datetime,
    reason: str,
) -> bool:
    if session_port is None:
        return False
    try:
        revoked = await session_port.revoke(
            user_id, authorization_id, revoked_utc=now, reason=reason
        )
        await session_port.commit()
    except Exception:
        await session_port.rollback()
        logger.exception(
            "local_session_revoke_failed user_id=%s authorization_id=%s",
            user_id,
            authorization_id,
        )
        return False
    return revoked


async def revoke_session(
    authorization_store: AuthorizationStore,
    token_store: TokenStore,
    user_id: uuid.UUID,
    authorization_id: str,
    *,
    session_port: UserSessionPort | None = None,
    clock: Clock | None = None,
) -> bool:
    """
    Revoke one authorization owned by the user.

    Returns False when the authorization is missing, belongs to someone else,
    or the store refused the revocation; the caller cannot tell these apart.
    """
    authorization = await authorization_store.find_by_id(authorization_id)
    if authorization is None:
        return False

    if not subjects_match(authorization.subject, user_id):
        logger.warning(
            "session_revoke_denied reason=not_owner user_id=%s authorization_id=%s",
            user_id,
            authorization_id,
        )
        return False

    if not await authorization_store.try_revoke(authorization):
        logger.warning(
            "session_revoke_failed user_id=%s authorization_id=%s",
            user_id,
            authorization_id,
        )
        return False

    tokens_revoked = await revoke_tokens_best_effort(token_store, authorization_id)
    now = as_utc((clock or SystemClock()).now())
    await tombstone_local_session(
        session_port, user_id, authorization_id, now=now, reason=USER_REVOCATION_REASON
    )

    logger.info(
        "session_revoked user_id=%s authorization_id=%s tokens_revoked=%d",
        user_id,
        authorization_id,
        tokens_revoked,
    )
    return True
