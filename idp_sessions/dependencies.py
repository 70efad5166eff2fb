from collections.abc import AsyncGenerator
from typing import Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .crud.user_session import UserSessionRepository
from .database import get_session, get_sessionmaker
from .domain.ports.audit import AuditSink
from .domain.ports.authorization import (
    ApplicationDirectory,
    AuthorizationStore,
    TokenStore,
)
from .domain.ports.clock import Clock, SystemClock
from .domain.ports.session import UserSessionPort
from .services.audit.audit_service import AuditService

_system_clock = SystemClock()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


def get_user_session_port(db: AsyncSession = Depends(get_db)) -> UserSessionPort:
    return UserSessionRepository(db)


def _app_state_component(request: Request, name: str) -> Any:
    component = getattr(request.app.state, name, None)
    if component is None:
        raise RuntimeError(f"app.state.{name} is not configured")
    return component


def get_authorization_store(request: Request) -> AuthorizationStore:
    return _app_state_component(request, "authorization_store")


def get_token_store(request: Request) -> TokenStore:
    return _app_state_component(request, "token_store")


def get_application_directory(request: Request) -> ApplicationDirectory:
    return _app_state_component(request, "application_directory")


def get_audit_sink() -> AuditSink:
    return AuditService(get_sessionmaker())


def get_clock() -> Clock:
    return _system_clock
