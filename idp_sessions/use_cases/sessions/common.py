import json
import logging
from typing import Any

from ...domain.ports.audit import AuditEventType, AuditSink
from ...domain.ports.authorization import TokenStore

logger = logging.getLogger(__name__)


def subjects_match(subject: str | None, user_id: object) -> bool:
    """Compare an authorization subject with a user id, ignoring case."""
    if subject is None:
        return False
    return subject.casefold() == str(user_id).casefold()


def audit_details(
    *, client_ip: str | None, user_agent: str | None, **extra: Any
) -> str:
    payload: dict[str, Any] = {"ip": client_ip, "userAgent": user_agent}
    payload.update(extra)
    return json.dumps(payload, sort_keys=True, default=str)


async def emit_audit_event(
    audit_sink: AuditSink,
    event_type: AuditEventType,
    *,
    user_id: object,
    client_ip: str | None,
    user_agent: str | None,
    **extra: Any,
) -> None:
    """Write an audit event; a failing sink is logged and never raised."""
    try:
        await audit_sink.log_event(
            event_type.value,
            user_id=str(user_id),
            details=audit_details(client_ip=client_ip, user_agent=user_agent, **extra),
            ip_address=client_ip,
            user_agent=user_agent,
        )
    except Exception:
        logger.exception(
            "audit_write_failed event_type=%s user_id=%s", event_type.value, user_id
        )


async def revoke_tokens_best_effort(
    token_store: TokenStore, authorization_id: str
) -> int:
    try:
        return await token_store.revoke_by_authorization_id(authorization_id)
    except Exception:
        logger.exception(
            "token_revocation_failed authorization_id=%s", authorization_id
        )
        return 0
