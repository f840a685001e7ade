"""Ports the host persistence layer supplies to the staging engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Hashable, Mapping, Sequence

    from relstage.domain.relations import RelationDescriptor


@runtime_checkable
class Validatable(Protocol):
    """Entities may report their own validation messages (empty when valid)."""

    def validate(self) -> list[str]: ...


@runtime_checkable
class EntityRepository(Protocol):
    """Lookup and save contract for parents and children.

    ``save`` and ``update`` raise :class:`relstage.domain.errors.ValidationFailed`
    for invalid entities; lookups raise :class:`relstage.domain.errors.EntityNotFound`.
    """

    def identity(self, entity: object) -> Hashable | None:
        """Return the persisted identity of ``entity`` or ``None`` while it is new."""
        ...

    def find_by_id[T](self, entity_type: type[T], entity_id: Hashable) -> T: ...

    def find_many_by_ids[T](self, entity_type: type[T], entity_ids: Sequence[Hashable]) -> list[T]:
        """Return entities in the requested order; any missing id is fatal."""
        ...

    def find_by_attribute[T](self, entity_type: type[T], attribute: str, value: Any) -> T | None: ...

    def save(self, entity: object) -> None: ...

    def update(self, entity: object, attributes: Mapping[str, Any]) -> None:
        """Apply ``attributes`` and save; on failure the entity keeps its prior values."""
        ...


@runtime_checkable
class RelationResolver(Protocol):
    """Relation metadata contract: relation name to descriptor."""

    def resolve(self, parent_type: type[Any], name: str) -> RelationDescriptor: ...


@runtime_checkable
class RelationMembership(Protocol):
    """Read and rewrite the children currently linked through a relation."""

    def members(self, parent: object, relation: RelationDescriptor) -> list[Any]: ...

    def clear(self, parent: object, relation: RelationDescriptor) -> None:
        """Unlink every member (join rows for through-join, back-references for direct)."""
        ...

    def attach(self, parent: object, relation: RelationDescriptor, children: Sequence[Any]) -> None:
        ...
