from .base import Base
from .audit_event import AuditEvent
from .user_session import UserSession

__all__ = [
    "Base",
    "AuditEvent",
    "UserSession",
]
