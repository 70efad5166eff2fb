import logging
import math
import uuid
from datetime import datetime

from ...domain.ports.authorization import (
    ApplicationData,
    ApplicationDirectory,
    AuthorizationData,
    AuthorizationStore,
    TokenStatus,
    TokenStore,
)
from ...domain.ports.clock import as_utc
from ...schemas.session import SessionPage, SessionRead

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


async def _find_application(
    application_directory: ApplicationDirectory, application_id: str | None
) -> ApplicationData | None:
    if not application_id:
        return None
    try:
        return await application_directory.find_by_id(application_id)
    except Exception:
        logger.exception("application_lookup_failed application_id=%s", application_id)
        return None


async def _nearest_expiry(
    token_store: TokenStore, authorization_id: str
) -> datetime | None:
    if not authorization_id:
        return None
    try:
        values = await token_store.list_expirations(
            authorization_id, status=TokenStatus.VALID.value
        )
    except Exception:
        logger.exception(
            "token_expiry_lookup_failed authorization_id=%s", authorization_id
        )
        return None
    expirations = [as_utc(value) for value in values if value is not None]
    return min(expirations) if expirations else None


async def _to_session_read(
    authorization: AuthorizationData,
    application_directory: ApplicationDirectory,
    token_store: TokenStore,
) -> SessionRead:
    authorization_id = authorization.id or ""
    application = await _find_application(
        application_directory, authorization.application_id
    )
    expires_at = await _nearest_expiry(token_store, authorization_id)

    return SessionRead(
        authorization_id=authorization_id,
        client_id=application.client_id if application else None,
        client_display_name=application.display_name if application else None,
        created_at=as_utc(authorization.created_at),
        expires_at=expires_at,
        status=authorization.status,
    )


async def list_sessions(
    authorization_store: AuthorizationStore,
    application_directory: ApplicationDirectory,
    token_store: TokenStore,
    user_id: uuid.UUID,
) -> list[SessionRead]:
    """List every authorization held by the user, whatever its status."""
    authorizations = await authorization_store.find_by_subject(str(user_id))
    return [
        await _to_session_read(authorization, application_directory, token_store)
        for authorization in authorizations
    ]


def paginate_sessions(
    sessions: list[SessionRead], page: int, page_size: int
) -> SessionPage:
    """Slice a session list into one page, clamping out-of-range paging."""
    if page_size < 1:
        page_size = DEFAULT_PAGE_SIZE
    total = len(sessions)
    pages = max(1, math.ceil(total / page_size))
    page = min(max(page, 1), pages)
    start = (page - 1) * page_size
    return SessionPage(
        items=sessions[start : start + page_size],
        page=page,
        page_size=page_size,
        total=total,
        pages=pages,
    )
