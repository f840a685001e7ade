"""Save-lifecycle hooks that replay staged assignments around the parent save.

Ordering per save attempt::

    before_validation -> parent save -> after_persist -> signal

Forced children are created before the parent is validated so a parent whose
validity depends on having children can pass; everything else waits until
the parent has an identity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .assignments import CreateMany
from .errors import InvalidChildAssignment

if TYPE_CHECKING:
    from .reconcile import ApplyResult, Reconciler
    from .staging import PendingAssignments

log = logging.getLogger(__name__)


@dataclass(slots=True)
class SaveLifecycle:
    """Drive replay of one parent's pending assignments."""

    reconciler: Reconciler
    forced_results: list[ApplyResult] = field(default_factory=list["ApplyResult"])

    def before_validation(self, parent: object, pending: PendingAssignments) -> list[ApplyResult]:
        """Create forced children unlinked and fold their ids into ``postponed``."""

        forced = list(pending.postponed_forced.values())
        pending.postponed_forced.clear()
        results: list[ApplyResult] = []
        failed: list[str] = []
        for assignment in forced:
            if not isinstance(assignment, CreateMany):
                pending.stage(assignment)
                continue
            log.debug("Replaying forced %s", assignment.key)
            result = self.reconciler.create_detached(parent, assignment, pending)
            created = [self.reconciler.identity(child) for child in result.saved]
            if created:
                pending.fold_created_ids(assignment.relation, created)
            for error in result.errors:
                failed.extend(error.describe())
            results.append(result)
            self.forced_results.append(result)
        if failed and pending.strict:
            raise InvalidChildAssignment(failed)
        return results

    def after_persist(self, parent: object, pending: PendingAssignments) -> list[ApplyResult]:
        """Replay ``postponed`` in staging order once the parent is persisted."""

        staged = list(pending.postponed.values())
        results: list[ApplyResult] = []
        for assignment in staged:
            log.debug("Replaying %s", assignment.key)
            results.append(self.reconciler.apply(parent, assignment, pending))
        pending.postponed.clear()
        return results

    @staticmethod
    def signal(pending: PendingAssignments) -> None:
        if pending.accumulated_errors:
            raise InvalidChildAssignment(pending.accumulated_errors)
