"""Apply one assignment against a persisted parent.

The reconciler diffs desired against current membership, creates, fetches,
links and updates children through the persistence ports, and collects child
validation failures as :class:`ChildError` records. Lookup failures from the
persistence layer propagate unchanged and abort the assignment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from relstage.config import StagingConfig

from .assignments import CreateMany, IdSet, ManageMany, TextList, is_blank
from .errors import ImproperAccess, InvalidAssignmentPayload, RelationStagingError, ValidationFailed

if TYPE_CHECKING:
    from collections.abc import Hashable, Mapping

    from relstage.domain.ports import RelationRepositories

    from .assignments import Assignment, EntryKey
    from .builder import RelationRegistry
    from .relations import RelationConfig, RelationDescriptor
    from .staging import PendingAssignments

log = logging.getLogger(__name__)


@dataclass(slots=True, kw_only=True)
class ChildError:
    """A child that failed its own save or update; recoverable."""

    relation: str
    child: Any
    messages: tuple[str, ...]
    key: Hashable | None = None
    label: str | None = None

    def describe(self) -> list[str]:
        name = type(self.child).__name__
        if self.label:
            name = f"{name} {self.label!r}"
        return [f"{name} could not be saved because: {message}" for message in self.messages]


@dataclass(slots=True)
class ApplyResult:
    """Outcome of reconciling one assignment."""

    assignment: Assignment
    errors: list[ChildError] = field(default_factory=list["ChildError"])
    built: dict[EntryKey, Any] = field(default_factory=dict["EntryKey", "Any"])
    saved: list[Any] = field(default_factory=list["Any"])
    linked: list[Any] = field(default_factory=list["Any"])
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors


class Reconciler:
    """Mutate relation membership of persisted parents."""

    def __init__(
        self,
        registry: RelationRegistry,
        repositories: RelationRepositories,
        config: StagingConfig | None = None,
    ) -> None:
        self.registry = registry
        self.repositories = repositories
        self.config = config or StagingConfig()

    # Reads ------------------------------------------------------------------

    def descriptor(self, parent: object, relation: str) -> RelationDescriptor:
        return self.repositories.relations.resolve(type(parent), relation)

    def identity(self, entity: object) -> Hashable | None:
        return self.repositories.entities.identity(entity)

    def members(self, parent: object, relation: str) -> list[Any]:
        return self.repositories.membership.members(parent, self.descriptor(parent, relation))

    def canonical_ids(self, parent: object, relation: str) -> tuple[Hashable, ...]:
        return tuple(self.identity(member) for member in self.members(parent, relation))

    def canonical_text(self, parent: object, relation: str) -> str:
        attribute = self._label_attribute(self.registry.config(relation))
        labels = (getattr(member, attribute) for member in self.members(parent, relation))
        return self.config.text_joiner.join(str(label) for label in labels if not is_blank(label))

    def is_unchanged(self, parent: object, assignment: Assignment) -> bool:
        """Whether an id set or text list already matches the canonical form."""

        if isinstance(assignment, IdSet):
            return set(assignment.ids) == set(self.canonical_ids(parent, assignment.relation))
        if isinstance(assignment, TextList):
            return assignment.raw == self.canonical_text(parent, assignment.relation)
        return False

    # Writes -----------------------------------------------------------------

    def apply(
        self, parent: object, assignment: Assignment, pending: PendingAssignments
    ) -> ApplyResult:
        if self.identity(parent) is None:
            raise RelationStagingError(
                f"{type(parent).__name__} must be persisted before applying {assignment.key}"
            )
        if self.is_unchanged(parent, assignment):
            log.debug("Skipping unchanged %s on %s", assignment.key, type(parent).__name__)
            return ApplyResult(assignment, skipped=True)

        log.debug("Applying %s to %s", assignment.key, type(parent).__name__)
        match assignment:
            case IdSet():
                result = self._replace_by_ids(parent, assignment)
            case TextList():
                result = self._replace_by_text(parent, assignment)
            case CreateMany():
                result = self._create(parent, assignment, detached=False)
            case ManageMany():
                result = self._manage(parent, assignment)
        pending.record(result.errors)
        return result

    def create_detached(
        self, parent: object, assignment: CreateMany, pending: PendingAssignments
    ) -> ApplyResult:
        """Create children without linking them; the parent may still be new."""

        result = self._create(parent, assignment, detached=True)
        pending.record(result.errors)
        return result

    def _replace_by_ids(self, parent: object, assignment: IdSet) -> ApplyResult:
        descriptor = self.descriptor(parent, assignment.relation)
        entities = self.repositories.entities
        children = (
            entities.find_many_by_ids(descriptor.target, list(assignment.ids))
            if assignment.ids
            else []
        )
        self._replace(parent, descriptor, children)
        return ApplyResult(assignment, linked=children)

    def _replace_by_text(self, parent: object, assignment: TextList) -> ApplyResult:
        config = self.registry.config(assignment.relation)
        descriptor = self.descriptor(parent, assignment.relation)
        attribute = self._label_attribute(config)
        entities = self.repositories.entities
        result = ApplyResult(assignment)

        members: dict[int, Any] = {}
        for segment in assignment.segments():
            child = entities.find_by_attribute(descriptor.target, attribute, segment)
            if child is None:
                values = self._link_values(parent, descriptor, {attribute: segment})
                child = self._construct(descriptor, values)
                self._before_create(config, parent, child)
            try:
                entities.save(child)
            except ValidationFailed as exc:
                result.errors.append(self._child_error(config, child, exc, key=segment))
                continue
            members.setdefault(id(child), child)

        children = list(members.values())
        self._replace(parent, descriptor, children)
        result.saved = children
        result.linked = children
        return result

    def _create(self, parent: object, assignment: CreateMany, *, detached: bool) -> ApplyResult:
        config = self.registry.config(assignment.relation)
        descriptor = self.descriptor(parent, assignment.relation)
        entities = self.repositories.entities
        membership = self.repositories.membership
        result = ApplyResult(assignment)

        for key, attributes in assignment.entries.items():
            values = dict(attributes)
            if not detached:
                values = self._link_values(parent, descriptor, values)
            child = self._construct(descriptor, values)
            result.built[key] = child
            self._before_create(config, parent, child)
            try:
                entities.save(child)
            except ValidationFailed as exc:
                result.errors.append(self._child_error(config, child, exc, key=key))
                continue
            result.saved.append(child)
            if detached:
                log.info(
                    "Created %s for %s.%s ahead of its parent",
                    type(child).__name__,
                    type(parent).__name__,
                    assignment.relation,
                )
                continue
            membership.attach(parent, descriptor, [child])
            result.linked.append(child)
        return result

    def _manage(self, parent: object, assignment: ManageMany) -> ApplyResult:
        config = self.registry.config(assignment.relation)
        current = {self.identity(member): member for member in self.members(parent, config.name)}
        for child_id in assignment.updates:
            if child_id not in current:
                raise ImproperAccess(assignment.relation, child_id)

        result = ApplyResult(assignment)
        for child_id, attributes in assignment.updates.items():
            child = current[child_id]
            try:
                self.repositories.entities.update(child, attributes)
            except ValidationFailed as exc:
                result.errors.append(self._child_error(config, child, exc, key=child_id))
                continue
            result.saved.append(child)
        return result

    def _replace(self, parent: object, descriptor: RelationDescriptor, children: list[Any]) -> None:
        membership = self.repositories.membership
        membership.clear(parent, descriptor)
        if children:
            membership.attach(parent, descriptor, children)

    def _link_values(
        self, parent: object, descriptor: RelationDescriptor, values: dict[str, Any]
    ) -> dict[str, Any]:
        parent_id = self.identity(parent)
        if descriptor.is_direct and descriptor.link_key and parent_id is not None:
            return {**values, descriptor.link_key: parent_id}
        return values

    def _child_error(
        self, config: RelationConfig, child: Any, exc: ValidationFailed, *, key: Hashable
    ) -> ChildError:
        label = getattr(child, config.label_attribute, None) if config.label_attribute else None
        error = ChildError(
            relation=config.name,
            child=child,
            messages=exc.messages,
            key=key,
            label=None if is_blank(label) else str(label),
        )
        log.warning("Rejected child for %s: %s", config.name, "; ".join(exc.messages))
        return error

    @staticmethod
    def _construct(descriptor: RelationDescriptor, values: Mapping[str, Any]) -> Any:
        try:
            return descriptor.target(**values)
        except TypeError as exc:
            raise InvalidAssignmentPayload(
                f"Cannot build {descriptor.target.__name__} for {descriptor.name!r}: {exc}"
            ) from exc

    @staticmethod
    def _before_create(config: RelationConfig, parent: object, child: object) -> None:
        for callback in config.before_create:
            callback(parent, child)

    @staticmethod
    def _label_attribute(config: RelationConfig) -> str:
        if config.label_attribute is None:
            raise RelationStagingError(f"Relation {config.name!r} has no label attribute")
        return config.label_attribute
