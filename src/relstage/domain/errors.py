"""Error taxonomy for staging and replaying relation assignments.

Child validation failures are not exceptions at the domain level: they are
collected as :class:`relstage.domain.reconcile.ChildError` records and only
escalated through :class:`InvalidChildAssignment` once every pending
assignment of a save attempt has been replayed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, Sequence


class RelationStagingError(RuntimeError):
    """Base class for errors raised by the staging engine."""


class RelationConfigError(RelationStagingError):
    """Raised when relations are declared inconsistently."""


class UnknownRelationError(RelationStagingError):
    """Raised when a relation name cannot be resolved for a parent type."""


class UnknownAssignmentKind(RelationStagingError, ValueError):
    """Raised when an assignment key matches no configured relation mode."""

    def __init__(self, key: str, parent_type: type | None = None) -> None:
        owner = f" on {parent_type.__name__}" if parent_type is not None else ""
        super().__init__(f"Unknown assignment key {key!r}{owner}")
        self.key = key


class InvalidAssignmentPayload(RelationStagingError, ValueError):
    """Raised when an assignment payload has the wrong shape for its kind."""


class ImproperAccess(RelationStagingError, LookupError):
    """Raised when a managed child is looked up outside current membership."""

    def __init__(self, relation: str, child_id: Hashable | None) -> None:
        super().__init__(f"No member with id {child_id!r} in relation {relation!r}")
        self.relation = relation
        self.child_id = child_id


class InvalidChildAssignment(RelationStagingError):
    """Raised after replay when strict error handling collected child failures.

    Partial successes are retained; this signal is not a rollback.
    """

    def __init__(self, messages: Iterable[str]) -> None:
        self.messages: tuple[str, ...] = tuple(messages)
        super().__init__("; ".join(self.messages) or "Invalid child assignment")


class ValidationFailed(Exception):  # noqa: N818
    """Raised by persistence ports when an entity fails its own validation."""

    def __init__(self, entity: object, messages: Sequence[str]) -> None:
        self.entity = entity
        self.messages: tuple[str, ...] = tuple(messages)
        super().__init__(f"{type(entity).__name__} is invalid: {'; '.join(self.messages)}")


class EntityNotFound(LookupError):  # noqa: N818
    """Raised by persistence ports when a lookup by identity misses."""

    def __init__(self, entity_type: type, missing: Sequence[Hashable]) -> None:
        self.entity_type = entity_type
        self.missing: tuple[Hashable, ...] = tuple(missing)
        ids = ", ".join(repr(value) for value in self.missing)
        super().__init__(f"{entity_type.__name__} not found for id(s): {ids}")
