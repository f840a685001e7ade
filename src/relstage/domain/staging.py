"""Pending assignments owned by one save operation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .assignments import AssignmentKind, CreateMany, IdSet, StagingKey

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable

    from .assignments import Assignment
    from .reconcile import ChildError

log = logging.getLogger(__name__)


@dataclass(slots=True)
class PendingAssignments:
    """Staged assignments plus the error policy of a single save attempt.

    ``postponed`` is replayed after the parent's first successful save,
    ``postponed_forced`` before the parent is validated. Insertion order is
    replay order; re-staging a key overwrites in place.
    """

    strict: bool = False
    postponed: dict[StagingKey, Assignment] = field(
        default_factory=dict["StagingKey", "Assignment"]
    )
    postponed_forced: dict[StagingKey, Assignment] = field(
        default_factory=dict["StagingKey", "Assignment"]
    )
    accumulated_errors: list[str] = field(default_factory=list[str])

    @property
    def is_empty(self) -> bool:
        return not self.postponed and not self.postponed_forced

    def stage(self, assignment: Assignment, *, forced: bool = False) -> None:
        if forced and isinstance(assignment, CreateMany):
            self.postponed_forced[assignment.key] = assignment
        else:
            self.postponed[assignment.key] = assignment
        log.debug("Staged %s (forced=%s)", assignment.key, forced)

    def discard(self, key: StagingKey) -> None:
        """Forget whatever is staged under ``key``."""

        self.postponed.pop(key, None)
        self.postponed_forced.pop(key, None)

    def staged(self, key: StagingKey) -> Assignment | None:
        found = self.postponed.get(key)
        if found is None:
            found = self.postponed_forced.get(key)
        return found

    def staged_ids(self, relation: str) -> IdSet | None:
        found = self.postponed.get(StagingKey(relation, AssignmentKind.ID_SET))
        return found if isinstance(found, IdSet) else None

    def fold_created_ids(self, relation: str, ids: Iterable[Hashable]) -> IdSet:
        """Union freshly created child ids into the relation's staged id set."""

        created = tuple(ids)
        existing = self.staged_ids(relation)
        folded = existing.merged_with(created) if existing else IdSet(relation, created)
        self.postponed[folded.key] = folded
        return folded

    def record(self, errors: Iterable[ChildError]) -> None:
        """Keep child failures for the aggregated report only under strict policy."""

        if not self.strict:
            return
        for error in errors:
            self.accumulated_errors.extend(error.describe())

    def clear(self) -> None:
        self.postponed.clear()
        self.postponed_forced.clear()
        self.accumulated_errors.clear()
