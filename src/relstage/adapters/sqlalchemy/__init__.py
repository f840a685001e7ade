"""SQLAlchemy adapter package for relstage."""

from __future__ import annotations

from .repositories import SqlAlchemyEntityRepository, SqlAlchemyRelationMembership
from .resolver import SqlAlchemyRelationResolver
from .unit_of_work import (
    SqlAlchemyRelationUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyEntityRepository",
    "SqlAlchemyRelationMembership",
    "SqlAlchemyRelationResolver",
    "SqlAlchemyRelationUnitOfWork",
    "StartupError",
    "configured_engine",
    "is_started",
    "shutdown",
    "startup",
]
