import logging
import uuid
from datetime import datetime

from ...domain.policy import DEFAULT_SESSION_POLICY, SessionPolicy
from ...domain.ports.audit import AuditEventType, AuditSink
from ...domain.ports.authorization import AuthorizationStore, TokenStore
from ...domain.ports.clock import Clock, SystemClock, as_utc
from ...domain.ports.session import UserSessionData, UserSessionPort
from ...errors import RotationConflictError
from ...schemas.session import RefreshOutcome, RefreshResult
from ...utils.security import create_refresh_token, hash_refresh_token, hashes_equal
from .common import emit_audit_event, revoke_tokens_best_effort, subjects_match

logger = logging.getLogger(__name__)

REUSE_REVOCATION_REASON = "refresh_token_reuse"


def _empty_result(authorization_id: str, outcome: RefreshOutcome) -> RefreshResult:
    return RefreshResult(authorization_id=authorization_id, outcome=outcome)


def _is_expired(
    now: datetime, sliding_expires: datetime | None, absolute_expires: datetime | None
) -> bool:
    if sliding_expires is not None and now >= sliding_expires:
        return True
    if absolute_expires is not None and now >= absolute_expires:
        return True
    return False


async def _contain_reuse(
    authorization_store: AuthorizationStore | None,
    token_store: TokenStore | None,
    user_id: uuid.UUID,
    authorization_id: str,
) -> None:
    try:
        if authorization_store is not None:
            authorization = await authorization_store.find_by_id(authorization_id)
            if authorization is not None and subjects_match(authorization.subject, user_id):
                await authorization_store.try_revoke(authorization)
    except Exception:
        logger.exception(
            "reuse_containment_failed step=authorization user_id=%s authorization_id=%s",
            user_id,
            authorization_id,
        )
    if token_store is not None:
        await revoke_tokens_best_effort(token_store, authorization_id)


async def _handle_reuse(
    session_port: UserSessionPort,
    audit_sink: AuditSink,
    user_id: uuid.UUID,
    authorization_id: str,
    *,
    now: datetime,
    client_ip: str | None,
    user_agent: str | None,
    authorization_store: AuthorizationStore | None,
    token_store: TokenStore | None,
) -> RefreshResult:
    try:
        revoked = await session_port.revoke(
            user_id,
            authorization_id,
            revoked_utc=now,
            reason=REUSE_REVOCATION_REASON,
            reuse_detected=True,
        )
        await session_port.commit()
    except Exception:
        await session_port.rollback()
        raise

    logger.warning(
        "refresh_token_reuse user_id=%s authorization_id=%s client_ip=%s tombstoned=%s",
        user_id,
        authorization_id,
        client_ip,
        revoked,
    )

    # False when a concurrent request already tombstoned and reported the row
    if revoked:
        await emit_audit_event(
            audit_sink,
            AuditEventType.REFRESH_TOKEN_REUSE_DETECTED,
            user_id=user_id,
            client_ip=client_ip,
            user_agent=user_agent,
            authorizationId=authorization_id,
        )
        await _contain_reuse(authorization_store, token_store, user_id, authorization_id)

    return RefreshResult(
        authorization_id=authorization_id,
        reuse_detected=True,
        outcome=RefreshOutcome.REUSE_DETECTED,
    )


async def _try_rotate(
    session_port: UserSessionPort,
    audit_sink: AuditSink,
    user_session: UserSessionData,
    *,
    now: datetime,
    policy: SessionPolicy,
    presented_hash: str,
    client_ip: str | None,
    user_agent: str | None,
) -> RefreshResult | None:
    """Rotate the chain one step; None means the conditional write lost."""
    user_id = user_session.user_id
    authorization_id = user_session.authorization_id
    old_sliding = as_utc(user_session.sliding_expires_utc)
    absolute = as_utc(user_session.absolute_expires_utc)

    if _is_expired(now, old_sliding, absolute):
        logger.info(
            "refresh_rejected reason=expired user_id=%s authorization_id=%s",
            user_id,
            authorization_id,
        )
        return _empty_result(authorization_id, RefreshOutcome.EXPIRED)

    new_sliding = now + policy.sliding_window
    if absolute is not None:
        new_sliding = min(new_sliding, absolute)

    new_token = create_refresh_token()
    try:
        won = await session_port.rotate(
            user_id,
            authorization_id,
            expected_hash=presented_hash,
            new_hash=hash_refresh_token(new_token),
            sliding_expires_utc=new_sliding,
            activity_utc=now,
            ip_address=client_ip,
            user_agent=user_agent,
        )
        if not won:
            await session_port.rollback()
            return None
        await session_port.commit()
    except Exception:
        await session_port.rollback()
        raise

    logger.info(
        "refresh_token_rotated user_id=%s authorization_id=%s sliding_expires=%s",
        user_id,
        authorization_id,
        new_sliding.isoformat(),
    )

    await emit_audit_event(
        audit_sink,
        AuditEventType.REFRESH_TOKEN_ROTATED,
        user_id=user_id,
        client_ip=client_ip,
        user_agent=user_agent,
        authorizationId=authorization_id,
    )
    if old_sliding is None or new_sliding > old_sliding:
        await emit_audit_event(
            audit_sink,
            AuditEventType.SLIDING_EXPIRATION_EXTENDED,
            user_id=user_id,
            client_ip=client_ip,
            user_agent=user_agent,
            authorizationId=authorization_id,
            slidingExpiresUtc=new_sliding.isoformat(),
        )

    return RefreshResult(
        authorization_id=authorization_id,
        sliding_extended=True,
        access_token_expires_at=min(now + policy.access_token_lifetime, new_sliding),
        refresh_token_expires_at=new_sliding,
        outcome=RefreshOutcome.ROTATED,
        refresh_token=new_token,
    )


async def refresh_session(
    session_port: UserSessionPort,
    audit_sink: AuditSink,
    user_id: uuid.UUID,
    authorization_id: str,
    presented_refresh_token: str | None,
    *,
    client_ip: str | None = None,
    user_agent: str | None = None,
    clock: Clock | None = None,
    policy: SessionPolicy = DEFAULT_SESSION_POLICY,
    authorization_store: AuthorizationStore | None = None,
    token_store: TokenStore | None = None,
) -> RefreshResult:
    """
    Validate a presented refresh token against its session and rotate it.

    The presented token is classified against the stored chain:
    the current hash rotates, the previous hash is reuse and tombstones the
    session, anything else is invalid. Rotation is a conditional write on the
    current hash, so of two concurrent refreshes with the same token exactly
    one wins; the loser re-reads the row and is reported as reuse.

    Args:
        session_port: Store holding the UserSession rows
        audit_sink: Receives rotation and reuse events
        user_id: Caller-asserted subject
        authorization_id: Caller-asserted authorization
        presented_refresh_token: Raw refresh secret from the client
        client_ip: IP address of the request
        user_agent: User agent of the request
        clock: Time source, defaults to the system clock
        policy: Window and lifetime settings
        authorization_store: When given, reuse also revokes the authorization
        token_store: When given, reuse also revokes the authorization's tokens

    Returns:
        RefreshResult describing the outcome

    Raises:
        RotationConflictError: If the conditional write kept losing
    """
    now = as_utc((clock or SystemClock()).now())
    presented_hash = (
        hash_refresh_token(presented_refresh_token) if presented_refresh_token else None
    )

    for attempt in range(1, policy.max_rotation_attempts + 1):
        user_session = await session_port.get(user_id, authorization_id)
        if user_session is None:
            return _empty_result(authorization_id, RefreshOutcome.NOT_FOUND)

        if user_session.revoked_utc is not None:
            return _empty_result(authorization_id, RefreshOutcome.REVOKED)

        current_hash = user_session.current_refresh_token_hash
        previous_hash = user_session.previous_refresh_token_hash

        if hashes_equal(presented_hash, previous_hash) and not hashes_equal(
            presented_hash, current_hash
        ):
            return await _handle_reuse(
                session_port,
                audit_sink,
                user_id,
                authorization_id,
                now=now,
                client_ip=client_ip,
                user_agent=user_agent,
                authorization_store=authorization_store,
                token_store=token_store,
            )

        if presented_hash is None or not hashes_equal(presented_hash, current_hash):
            logger.info(
                "refresh_rejected reason=invalid_token user_id=%s authorization_id=%s",
                user_id,
                authorization_id,
            )
            return _empty_result(authorization_id, RefreshOutcome.INVALID_TOKEN)

        result = await _try_rotate(
            session_port,
            audit_sink,
            user_session,
            now=now,
            policy=policy,
            presented_hash=presented_hash,
            client_ip=client_ip,
            user_agent=user_agent,
        )
        if result is not None:
            return result

        logger.info(
            "rotation_conflict user_id=%s authorization_id=%s attempt=%d",
            user_id,
            authorization_id,
            attempt,
        )

    logger.warning(
        "rotation_conflict_exhausted user_id=%s authorization_id=%s attempts=%d",
        user_id,
        authorization_id,
        policy.max_rotation_attempts,
    )
    raise RotationConflictError(details={"authorization_id": authorization_id})
