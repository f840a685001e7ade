"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    EntityRepository,
    RelationMembership,
    RelationResolver,
    Validatable,
)
from .unit_of_work import (
    RelationRepositories,
    RelationUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "EntityRepository",
    "RelationMembership",
    "RelationRepositories",
    "RelationResolver",
    "RelationUnitOfWork",
    "RepositoryCollection",
    "UnitOfWork",
    "Validatable",
]
