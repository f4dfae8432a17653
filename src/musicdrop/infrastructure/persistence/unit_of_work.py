"""Short-lived transactional repository bundles for long-running services."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from musicdrop.domain.ports import IUnitOfWork, UnitOfWorkFactory

from .database import Database
from .repositories import (
    AuthSessionRepository,
    ConfigRepository,
    JobLogRepository,
    UserRepository,
)


class SqlAlchemyUnitOfWork(IUnitOfWork):
    """All repositories bound to one AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.users = UserRepository(session)
        self.config = ConfigRepository(session)
        self.job_logs = JobLogRepository(session)
        self.auth_sessions = AuthSessionRepository(session)


def unit_of_work_factory(db: Database) -> UnitOfWorkFactory:
    """Build a factory that opens one committed transaction per `async with`."""

    @asynccontextmanager
    async def _scope() -> AsyncGenerator[IUnitOfWork, None]:
        async with db.session_scope() as session:
            yield SqlAlchemyUnitOfWork(session)

    return _scope
