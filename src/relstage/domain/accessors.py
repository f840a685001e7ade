"""Generic relation accessors for one parent instance.

:class:`StagedParent` wraps a parent entity and a unit of work and exposes
every configured relation through a single getter/setter keyed by relation
name and assignment kind (or by form key). Setters stage while the parent is
new and reconcile immediately once it is persisted; getters prefer staged
values so a form can be redisplayed after a failed save.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Final

from relstage.config import StagingConfig, get_staging_config

from .assignments import AssignmentKind, CreateMany, TextList
from .builder import registry_for
from .classify import AssignmentClassifier, classify_all
from .errors import ImproperAccess, InvalidAssignmentPayload, InvalidChildAssignment, ValidationFailed
from .lifecycle import SaveLifecycle
from .reconcile import Reconciler
from .staging import PendingAssignments

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, Iterator

    from relstage.domain.ports import RelationRepositories, RelationUnitOfWork

    from .assignments import Assignment, EntryKey
    from .builder import RelationRegistry
    from .reconcile import ApplyResult
    from .relations import RelationDescriptor

log = logging.getLogger(__name__)

BASE_ERRORS_KEY: Final[str] = "base"
CHILD_ERRORS_KEY: Final[str] = "relation_children"


class MemberLookup(Mapping["Hashable", Any]):
    """Current members of one relation keyed by id; other ids are refused."""

    def __init__(
        self,
        relation: str,
        members: Mapping[Hashable, Any],
        classifier: AssignmentClassifier,
    ) -> None:
        self.relation = relation
        self._members = dict(members)
        self._classifier = classifier

    def _key(self, key: object) -> Hashable:
        try:
            return self._classifier.coerce_id(key, relation=self.relation)
        except InvalidAssignmentPayload:
            raise ImproperAccess(self.relation, key) from None  # pyright: ignore[reportArgumentType]

    def __getitem__(self, key: object) -> Any:
        child_id = self._key(key)
        try:
            return self._members[child_id]
        except KeyError:
            raise ImproperAccess(self.relation, child_id) from None

    def __contains__(self, key: object) -> bool:
        try:
            return self._key(key) in self._members
        except ImproperAccess:
            return False

    def get(self, key: object, default: Any = None) -> Any:
        return self[key] if key in self else default

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._members)

    def __len__(self) -> int:
        return len(self._members)


class StagedParent[TParent]:
    """Relation accessors and save driver for one parent entity.

    The unit of work must be entered by the caller; repositories are looked
    up on each call.
    """

    def __init__(
        self,
        parent: TParent,
        unit_of_work: RelationUnitOfWork,
        *,
        registry: RelationRegistry | None = None,
        config: StagingConfig | None = None,
        strict: bool | None = None,
    ) -> None:
        self.parent = parent
        self.unit_of_work = unit_of_work
        self.registry = registry or registry_for(type(parent))
        self.config = config or get_staging_config()
        if strict is None:
            strict = self.registry.strict if self.registry.strict is not None else self.config.strict
        self.pending = PendingAssignments(strict=strict)
        self.classifier = AssignmentClassifier(self.registry, self.config)
        self.errors: dict[str, list[str]] = {}
        self._requested: dict[str, CreateMany] = {}
        self._built: dict[str, dict[EntryKey, Any]] = {}

    @property
    def repositories(self) -> RelationRepositories:
        return self.unit_of_work.repositories

    @property
    def reconciler(self) -> Reconciler:
        return Reconciler(self.registry, self.repositories, self.config)

    @property
    def is_new(self) -> bool:
        return self.repositories.entities.identity(self.parent) is None

    # Setters ----------------------------------------------------------------

    def assign(self, key: str, payload: object) -> None:
        """Classify one form pair and stage or apply it."""

        self._dispatch(self.classifier.classify(key, payload))

    def set(self, relation: str, kind: AssignmentKind | str, payload: object) -> None:
        self._dispatch(self.classifier.build(relation, AssignmentKind(kind), payload))

    def assign_all(self, params: Mapping[str, object]) -> dict[str, object]:
        """Assign every relation key of ``params`` and return the other pairs."""

        relation_params = {k: v for k, v in params.items() if self.classifier.is_assignment_key(k)}
        for assignment in classify_all(self.classifier, relation_params):
            self._dispatch(assignment)
        return {k: v for k, v in params.items() if k not in relation_params}

    def __setitem__(self, key: str, payload: object) -> None:
        self.assign(key, payload)

    def _dispatch(self, assignment: Assignment) -> None:
        config = self.registry.config(assignment.relation)
        if isinstance(assignment, CreateMany):
            self._requested[assignment.relation] = assignment
            self._built.pop(assignment.relation, None)
            if assignment.is_empty:
                log.debug("Ignoring blank %s", assignment.key)
                if self.is_new:
                    self.pending.discard(assignment.key)
                return
        if self.is_new:
            self.pending.stage(assignment, forced=config.forced)
            return
        self._remember([self.reconciler.apply(self.parent, assignment, self.pending)])

    def _remember(self, results: Iterable[ApplyResult]) -> None:
        for result in results:
            if isinstance(result.assignment, CreateMany):
                self._built[result.assignment.relation] = result.built

    def _remember_forced(self, results: Iterable[ApplyResult]) -> None:
        # forced payloads are consumed; only rejected children stay for redisplay
        for result in results:
            relation = result.assignment.relation
            saved = {id(child) for child in result.saved}
            rejected = {key: child for key, child in result.built.items() if id(child) not in saved}
            if rejected:
                self._built[relation] = rejected
            else:
                self._requested.pop(relation, None)
                self._built.pop(relation, None)

    # Getters ----------------------------------------------------------------

    def get(self, relation: str, kind: AssignmentKind | str) -> Any:
        kind = AssignmentKind(kind)
        self.registry.require(relation, kind)
        if kind is AssignmentKind.ID_SET:
            return self.ids(relation)
        if kind is AssignmentKind.TEXT_LIST:
            return self.as_string(relation)
        if kind is AssignmentKind.CREATE_MANY:
            return self.add(relation)
        return self.manage(relation)

    def read(self, key: str) -> Any:
        route = self.registry.route(key)
        if route.postponed:
            return self.postponed_ids(route.relation)
        return self.get(route.relation, route.kind)

    def __getitem__(self, key: str) -> Any:
        return self.read(key)

    def persisted_members(self, relation: str) -> list[Any]:
        """Current membership, ignoring anything staged."""

        return list(self.reconciler.members(self.parent, self.registry.config(relation).name))

    def members(self, relation: str) -> list[Any]:
        staged = self.pending.staged_ids(relation) if self.is_new else None
        if staged is None:
            return self.persisted_members(relation)
        if not staged.ids:
            return []
        target = self._descriptor(relation).target
        return self.repositories.entities.find_many_by_ids(target, list(staged.ids))

    def ids(self, relation: str) -> list[Hashable]:
        staged = self.pending.staged_ids(relation)
        if staged is not None:
            return list(staged.ids)
        return list(self.reconciler.canonical_ids(self.parent, relation))

    def as_string(self, relation: str) -> str:
        staged = self.pending.staged(TextList(relation, "", self.config.text_separator).key)
        if isinstance(staged, TextList):
            return staged.raw
        if self.is_new:
            return ""
        return self.reconciler.canonical_text(self.parent, relation)

    def postponed_ids(self, relation: str) -> str:
        return self.config.text_separator.join(str(child_id) for child_id in self.ids(relation))

    def add(self, relation: str) -> Any:
        """Children for redisplaying a create form.

        Returns the children built by the last create (rejected ones keep their
        submitted attributes), unsaved children built from the last requested
        attributes, or a single empty child.
        """

        target = self._descriptor(relation).target
        requested = self._requested.get(relation)
        children = self._built.get(relation)
        if not children and requested is not None and requested.requested:
            children = {key: target(**attrs) for key, attrs in requested.requested.items()}
        if not children:
            return target()
        if requested is None or requested.single:
            return next(iter(children.values()))
        return children

    def manage(self, relation: str) -> MemberLookup:
        config = self.registry.config(relation)
        identity = self.repositories.entities.identity
        members = {identity(member): member for member in self.persisted_members(config.name)}
        return MemberLookup(config.name, members, self.classifier)

    def _descriptor(self, relation: str) -> RelationDescriptor:
        return self.reconciler.descriptor(self.parent, self.registry.config(relation).name)

    # Save -------------------------------------------------------------------

    def save(self) -> bool:
        """Save the parent and replay staged assignments around it.

        Returns ``False`` when the parent itself is invalid; staged values are
        kept for redisplay. Raises :class:`InvalidChildAssignment` under strict
        error handling once every replay has run.
        """

        lifecycle = SaveLifecycle(self.reconciler)
        self.errors.clear()
        try:
            forced = lifecycle.before_validation(self.parent, self.pending)
        except InvalidChildAssignment as exc:
            self._remember_forced(lifecycle.forced_results)
            self.unit_of_work.commit()
            self._fail_children(exc.messages)
            raise
        self._remember_forced(forced)
        if any(result.saved for result in forced):
            self.unit_of_work.commit()

        try:
            self.repositories.entities.save(self.parent)
        except ValidationFailed as exc:
            log.info("%s failed validation: %s", type(self.parent).__name__, exc)
            self.errors[BASE_ERRORS_KEY] = list(exc.messages)
            self.pending.accumulated_errors.clear()
            return False

        self._remember(lifecycle.after_persist(self.parent, self.pending))
        self.unit_of_work.commit()
        try:
            lifecycle.signal(self.pending)
        except InvalidChildAssignment as exc:
            self._fail_children(exc.messages)
            raise
        finally:
            self.pending.clear()
        return True

    def _fail_children(self, messages: Iterable[str]) -> None:
        self.errors[CHILD_ERRORS_KEY] = list(messages)
        self.pending.accumulated_errors.clear()

    def reset(self) -> None:
        """Drop staged assignments, errors and remembered create payloads."""

        self.pending.clear()
        self.errors.clear()
        self._requested.clear()
        self._built.clear()
