"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect, select

from relstage.domain.errors import EntityNotFound, InvalidAssignmentPayload, ValidationFailed
from relstage.domain.ports import Validatable

if TYPE_CHECKING:
    from collections.abc import Hashable, Mapping, Sequence

    from sqlalchemy.orm import Session

    from relstage.domain.relations import RelationDescriptor


def _validate(entity: object) -> list[str]:
    if isinstance(entity, Validatable):
        return list(entity.validate())
    return []


class SqlAlchemyEntityRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def identity(self, entity: object) -> Hashable | None:
        state = inspect(entity)
        if not state.has_identity or state.identity is None:
            return None
        key = state.identity
        return key[0] if len(key) == 1 else key

    def find_by_id[T](self, entity_type: type[T], entity_id: Hashable) -> T:
        entity = self.session.get(entity_type, entity_id)
        if entity is None:
            raise EntityNotFound(entity_type, [entity_id])
        return entity

    def find_many_by_ids[T](self, entity_type: type[T], entity_ids: Sequence[Hashable]) -> list[T]:
        if not entity_ids:
            return []
        primary_key = inspect(entity_type).primary_key
        if len(primary_key) != 1:
            raise TypeError(f"{entity_type.__name__} must have a single-column primary key")
        stmt = select(entity_type).where(primary_key[0].in_(entity_ids))
        found = {self.identity(entity): entity for entity in self.session.scalars(stmt)}
        missing = [entity_id for entity_id in entity_ids if entity_id not in found]
        if missing:
            raise EntityNotFound(entity_type, missing)
        return [found[entity_id] for entity_id in dict.fromkeys(entity_ids)]

    def find_by_attribute[T](self, entity_type: type[T], attribute: str, value: Any) -> T | None:
        stmt = select(entity_type).filter_by(**{attribute: value}).limit(1)
        return self.session.scalars(stmt).first()

    def save(self, entity: object) -> None:
        messages = _validate(entity)
        if messages:
            raise ValidationFailed(entity, messages)
        self.session.add(entity)
        self.session.flush()

    def update(self, entity: object, attributes: Mapping[str, Any]) -> None:
        unknown = [name for name in attributes if not hasattr(entity, name)]
        if unknown:
            raise InvalidAssignmentPayload(
                f"{type(entity).__name__} has no attribute(s) {', '.join(unknown)}"
            )
        previous = {name: getattr(entity, name) for name in attributes}
        for name, value in attributes.items():
            setattr(entity, name, value)
        messages = _validate(entity)
        if messages:
            for name, value in previous.items():
                setattr(entity, name, value)
            raise ValidationFailed(entity, messages)
        self.session.flush()


class SqlAlchemyRelationMembership:
    """Relationship collections as relation membership.

    Removing a child from a one-to-many collection nulls its foreign key on
    flush; removing it from an association collection deletes the join row.
    """

    def members(self, parent: object, relation: RelationDescriptor) -> list[Any]:
        return list(getattr(parent, relation.name))

    def clear(self, parent: object, relation: RelationDescriptor) -> None:
        getattr(parent, relation.name).clear()

    def attach(self, parent: object, relation: RelationDescriptor, children: Sequence[Any]) -> None:
        collection = getattr(parent, relation.name)
        for child in children:
            if child not in collection:
                collection.append(child)
