import logging
import uuid

from ...domain.policy import DEFAULT_SESSION_POLICY, SessionPolicy
from ...domain.ports.clock import Clock, SystemClock, as_utc
from ...domain.ports.session import UserSessionPort
from ...errors import ValidationError
from ...schemas.session import StartedSession, UserSessionRead
from ...utils.security import create_refresh_token, hash_refresh_token

logger = logging.getLogger(__name__)


async def start_session(
    session_port: UserSessionPort,
    user_id: uuid.UUID,
    authorization_id: str,
    *,
    clock: Clock | None = None,
    policy: SessionPolicy = DEFAULT_SESSION_POLICY,
    client_id: str | None = None,
    client_display_name: str | None = None,
    client_ip: str | None = None,
    user_agent: str | None = None,
) -> StartedSession:
    if not authorization_id or not authorization_id.strip():
        raise ValidationError("authorization_id must not be empty")

    now = as_utc((clock or SystemClock()).now())
    absolute_expires = now + policy.absolute_lifetime
    sliding_expires = min(now + policy.sliding_window, absolute_expires)
    refresh_token = create_refresh_token()

    try:
        user_session = await session_port.create(
            user_id,
            authorization_id,
            refresh_token_hash=hash_refresh_token(refresh_token),
            absolute_expires_utc=absolute_expires,
            sliding_expires_utc=sliding_expires,
            created_utc=now,
            client_id=client_id,
            client_display_name=client_display_name,
            ip_address=client_ip,
            user_agent=user_agent,
        )
        await session_port.commit()
    except Exception:
        await session_port.rollback()
        raise

    logger.info(
        "session_started user_id=%s authorization_id=%s absolute_expires=%s",
        user_id,
        authorization_id,
        absolute_expires.isoformat(),
    )
    return StartedSession(
        session=UserSessionRead.model_validate(user_session),
        refresh_token=refresh_token,
    )
