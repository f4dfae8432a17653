"""Persistence layer: database engine, ORM models and repositories."""

from .database import Database
from .repositories import (
    AuthSessionRepository,
    ConfigRepository,
    JobLogRepository,
    UserRepository,
)
from .unit_of_work import SqlAlchemyUnitOfWork, unit_of_work_factory

__all__ = [
    "AuthSessionRepository",
    "ConfigRepository",
    "Database",
    "JobLogRepository",
    "SqlAlchemyUnitOfWork",
    "UserRepository",
    "unit_of_work_factory",
]
