import uuid

from fastapi import APIRouter, Depends, Query, Request, Response, status

from ..dependencies import (
    get_application_directory,
    get_audit_sink,
    get_authorization_store,
    get_clock,
    get_token_store,
    get_user_session_port,
)
from ..errors import SessionNotFoundError
from ..schemas.session import (
    RevokeAllResult,
    RevokeChainRequest,
    RevokeChainResult,
    SessionPage,
)
from ..use_cases.sessions.list_sessions import (
    DEFAULT_PAGE_SIZE,
    list_sessions,
    paginate_sessions,
)
from ..use_cases.sessions.revoke_all_sessions import revoke_all_sessions
from ..use_cases.sessions.revoke_chain import revoke_chain
from ..use_cases.sessions.revoke_session import revoke_session

router = APIRouter(prefix="/admin/users/{user_id}/sessions", tags=["sessions"])


def _client_ip(request: Request) -> str:
    client_host = request.client.host if request.client else None
    return client_host or "unknown-ip"


@router.get("", response_model=SessionPage)
async def get_sessions(
    user_id: uuid.UUID,
    page: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    authorization_store=Depends(get_authorization_store),
    application_directory=Depends(get_application_directory),
    token_store=Depends(get_token_store),
) -> SessionPage:
    sessions = await list_sessions(
        authorization_store, application_directory, token_store, user_id
    )
    return paginate_sessions(sessions, page, page_size)


@router.post("/revoke-all", response_model=RevokeAllResult)
async def revoke_all(
    user_id: uuid.UUID,
    authorization_store=Depends(get_authorization_store),
    token_store=Depends(get_token_store),
    session_port=Depends(get_user_session_port),
    clock=Depends(get_clock),
) -> RevokeAllResult:
    revoked = await revoke_all_sessions(
        authorization_store, token_store, user_id, session_port=session_port, clock=clock
    )
    return RevokeAllResult(revoked=revoked)


@router.post("/{authorization_id}/revoke", status_code=status.HTTP_204_NO_CONTENT)
async def revoke(
    user_id: uuid.UUID,
    authorization_id: str,
    authorization_store=Depends(get_authorization_store),
    token_store=Depends(get_token_store),
    session_port=Depends(get_user_session_port),
    clock=Depends(get_clock),
) -> Response:
    revoked = await revoke_session(
        authorization_store,
        token_store,
        user_id,
        authorization_id,
        session_port=session_port,
        clock=clock,
    )
    if not revoked:
        raise SessionNotFoundError(
            "Authorization not found or not owned by user",
            details={"authorization_id": authorization_id},
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{authorization_id}/revoke-chain", response_model=RevokeChainResult)
async def revoke_session_chain(
    user_id: uuid.UUID,
    authorization_id: str,
    payload: RevokeChainRequest,
    request: Request,
    session_port=Depends(get_user_session_port),
    authorization_store=Depends(get_authorization_store),
    token_store=Depends(get_token_store),
    audit_sink=Depends(get_audit_sink),
    clock=Depends(get_clock),
) -> RevokeChainResult:
    result = await revoke_chain(
        session_port,
        authorization_store,
        token_store,
        audit_sink,
        user_id,
        authorization_id,
        payload.reason,
        clock=clock,
        client_ip=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    if result is None:
        raise SessionNotFoundError(details={"authorization_id": authorization_id})
    return result
