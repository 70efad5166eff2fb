import logging
import uuid

from ...domain.ports.audit import AuditEventType, AuditSink
from ...domain.ports.authorization import AuthorizationStore, TokenStore
from ...domain.ports.clock import Clock, SystemClock, as_utc
from ...domain.ports.session import UserSessionPort
from ...errors import ValidationError
from ...schemas.session import RevokeChainResult
from .common import emit_audit_event, subjects_match

logger = logging.getLogger(__name__)


async def revoke_chain(
    session_port: UserSessionPort,
    authorization_store: AuthorizationStore,
    token_store: TokenStore,
    audit_sink: AuditSink,
    user_id: uuid.UUID,
    authorization_id: str,
    reason: str,
    *,
    clock: Clock | None = None,
    client_ip: str | None = None,
    user_agent: str | None = None,
) -> RevokeChainResult | None:
    """
    Revoke a session's whole refresh chain: the local row, the external
    authorization and every token issued under it.

    IDEMPOTENCY KEY: (user_id, authorization_id)
    Repeated calls after the first report ``already_revoked`` and touch
    nothing. If an external store fails the local row is left untouched,
    so the call can simply be retried.

    Returns:
        RevokeChainResult, or None when the user has no such session
    """
    if not reason or not reason.strip():
        raise ValidationError("Revocation reason must not be empty")

    user_session = await session_port.get(user_id, authorization_id)
    if user_session is None:
        return None

    if user_session.revoked_utc is not None:
        return RevokeChainResult(authorization_id=authorization_id, already_revoked=True)

    now = as_utc((clock or SystemClock()).now())
    try:
        # The local row is written only after the external stores succeed
        authorization = await authorization_store.find_by_id(authorization_id)
        if authorization is not None and subjects_match(authorization.subject, user_id):
            if not await authorization_store.try_revoke(authorization):
                logger.warning(
                    "authorization_revoke_refused user_id=%s authorization_id=%s",
                    user_id,
                    authorization_id,
                )
        tokens_revoked = await token_store.revoke_by_authorization_id(authorization_id)

        won = await session_port.revoke(
            user_id, authorization_id, revoked_utc=now, reason=reason.strip()
        )
        if not won:
            await session_port.rollback()
            return RevokeChainResult(
                authorization_id=authorization_id, already_revoked=True
            )
        await session_port.commit()
    except Exception:
        await session_port.rollback()
        raise

    logger.info(
        "session_chain_revoked user_id=%s authorization_id=%s tokens_revoked=%d",
        user_id,
        authorization_id,
        tokens_revoked,
    )
    await emit_audit_event(
        audit_sink,
        AuditEventType.SESSION_CHAIN_REVOKED,
        user_id=user_id,
        client_ip=client_ip,
        user_agent=user_agent,
        authorizationId=authorization_id,
        reason=reason.strip(),
        tokensRevoked=tokens_revoked,
    )
    return RevokeChainResult(
        authorization_id=authorization_id, tokens_revoked=tokens_revoked
    )
