import logging
import uuid

from ...domain.ports.authorization import (
    AuthorizationData,
    AuthorizationStatus,
    AuthorizationStore,
    TokenStore,
)
from ...domain.ports.clock import Clock, SystemClock, as_utc
from ...domain.ports.session import UserSessionPort
from .common import revoke_tokens_best_effort
from .revoke_session import USER_REVOCATION_REASON, tombstone_local_session

logger = logging.getLogger(__name__)


async def _find_revocable(
    authorization_store: AuthorizationStore, subject: str
) -> list[AuthorizationData]:
    authorizations = await authorization_store.find_by_subject(
        subject, status=AuthorizationStatus.VALID.value
    )
    if authorizations:
        return authorizations
    # Some stores do not record a status; fall back to everything the subject holds
    return await authorization_store.find_by_subject(subject)


async def revoke_all_sessions(
    authorization_store: AuthorizationStore,
    token_store: TokenStore,
    user_id: uuid.UUID,
    *,
    session_port: UserSessionPort | None = None,
    clock: Clock | None = None,
) -> int:
    """Revoke every authorization of the user and return how many succeeded.

    Each authorization is handled on its own: a failure is logged and left
    out of the count, and the remaining ones are still revoked.
    """
    now = as_utc((clock or SystemClock()).now())
    authorizations = await _find_revocable(authorization_store, str(user_id))

    revoked_count = 0
    for authorization in authorizations:
        authorization_id = authorization.id or ""
        try:
            revoked = await authorization_store.try_revoke(authorization)
        except Exception:
            logger.exception(
                "session_revoke_failed user_id=%s authorization_id=%s",
                user_id,
                authorization_id,
            )
            continue
        if not revoked:
            logger.warning(
                "session_revoke_refused user_id=%s authorization_id=%s",
                user_id,
                authorization_id,
            )
            continue

        revoked_count += 1
        if authorization_id:
            await revoke_tokens_best_effort(token_store, authorization_id)
            await tombstone_local_session(
                session_port,
                user_id,
                authorization_id,
                now=now,
                reason=USER_REVOCATION_REASON,
            )

    logger.info(
        "sessions_revoked user_id=%s revoked=%d total=%d",
        user_id,
        revoked_count,
        len(authorizations),
    )
    return revoked_count
