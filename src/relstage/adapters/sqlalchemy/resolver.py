"""Relation metadata resolved from SQLAlchemy mappers."""

from __future__ import annotations

import logging
from functools import cache
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import RelationshipDirection

from relstage.domain.errors import UnknownRelationError
from relstage.domain.relations import Cardinality, RelationDescriptor

log = logging.getLogger(__name__)


class SqlAlchemyRelationResolver:
    """Map relationship properties to relation descriptors.

    Association tables (``secondary``) resolve to through-join relations and
    plain one-to-many relationships to direct ones. Scalar and many-to-one
    relationships are not collections and are refused.
    """

    def resolve(self, parent_type: type[Any], name: str) -> RelationDescriptor:
        return _resolve(parent_type, name)


@cache
def _resolve(parent_type: type[Any], name: str) -> RelationDescriptor:
    try:
        mapper = inspect(parent_type)
    except NoInspectionAvailable:
        raise UnknownRelationError(f"{parent_type.__name__} is not a mapped class") from None

    relationships = mapper.relationships
    if name not in relationships:
        raise UnknownRelationError(f"{parent_type.__name__} has no relationship {name!r}")
    prop = relationships[name]
    target = prop.mapper.class_

    if not prop.uselist:
        raise UnknownRelationError(f"{parent_type.__name__}.{name} is not a collection")
    if prop.secondary is not None:
        descriptor = RelationDescriptor(
            name=name, target=target, cardinality=Cardinality.THROUGH_JOIN
        )
    elif prop.direction is RelationshipDirection.ONETOMANY:
        remote_columns = [remote for _local, remote in prop.local_remote_pairs]
        if len(remote_columns) != 1:
            raise UnknownRelationError(
                f"{parent_type.__name__}.{name} must link through exactly one column"
            )
        link_key = prop.mapper.get_property_by_column(remote_columns[0]).key
        descriptor = RelationDescriptor(
            name=name, target=target, cardinality=Cardinality.DIRECT, link_key=link_key
        )
    else:
        raise UnknownRelationError(
            f"{parent_type.__name__}.{name} is a {prop.direction.name} relationship"
        )

    log.debug("Resolved %s.%s as %s", parent_type.__name__, name, descriptor.cardinality)
    return descriptor
