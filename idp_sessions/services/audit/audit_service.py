from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...crud.audit_event import AuditEventRepository


class AuditService:
    """Default audit sink backed by the ``audit_events`` table.

    Every event is written through its own session and committed on its own,
    so an audit write never joins (or rolls back with) the caller's
    transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def log_event(
        self,
        event_type: str,
        user_id: str | None = None,
        details: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Persist one audit event.

        Args:
            event_type: Event kind (e.g. 'RefreshTokenRotated')
            user_id: Subject the event is about
            details: Serialized JSON object
            ip_address: IP address of the request
            user_agent: User agent of the request
        """
        async with self.session_factory() as session:
            await AuditEventRepository(session).create(
                event_type=event_type,
                user_id=user_id,
                details=details,
                ip_address=ip_address,
                user_agent=user_agent,
            )
