"""Declarative relation setup and the per-parent-type registration table.

A parent type declares its relations once::

    RelationBuilder(Document).by_ids("categories").by_string(tags="title").build()

The resulting :class:`RelationRegistry` is immutable and shared by every
staged instance of that type. Accessors dispatch through it by relation name
and assignment kind instead of generating per-relation methods.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .assignments import AssignmentKind, form_key
from .errors import RelationConfigError, UnknownAssignmentKind
from .relations import BlankPolicy, RelationConfig, RelationMode, singularize

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from .relations import BeforeCreate

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KeyRoute:
    """Where a form key leads: one relation, one assignment kind."""

    relation: str
    kind: AssignmentKind
    postponed: bool = False


@dataclass(frozen=True, slots=True)
class RelationRegistry:
    """Static ``{relation_name: RelationConfig}`` table for one parent type."""

    parent_type: type[Any]
    relations: Mapping[str, RelationConfig]
    strict: bool | None = None
    id_type: type[Any] = int
    routes: Mapping[str, KeyRoute] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "relations", MappingProxyType(dict(self.relations)))
        object.__setattr__(self, "routes", MappingProxyType(_build_routes(self.relations)))

    def __contains__(self, name: object) -> bool:
        return name in self.relations

    def __iter__(self) -> Iterator[RelationConfig]:
        return iter(self.relations.values())

    def config(self, name: str) -> RelationConfig:
        try:
            return self.relations[name]
        except KeyError:
            raise UnknownAssignmentKind(name, self.parent_type) from None

    def route(self, key: str) -> KeyRoute:
        try:
            return self.routes[key]
        except KeyError:
            raise UnknownAssignmentKind(key, self.parent_type) from None

    def require(self, name: str, kind: AssignmentKind) -> RelationConfig:
        """Return the relation config, rejecting kinds its mode does not accept."""

        config = self.config(name)
        if kind is AssignmentKind.ID_SET and not config.accepts_ids:
            raise UnknownAssignmentKind(
                form_key(kind, name=name, singular=config.singular), self.parent_type
            )
        if kind is AssignmentKind.TEXT_LIST and not config.accepts_text:
            raise UnknownAssignmentKind(
                form_key(kind, name=name, singular=config.singular), self.parent_type
            )
        return config


def _build_routes(relations: Mapping[str, RelationConfig]) -> dict[str, KeyRoute]:
    routes: dict[str, KeyRoute] = {}

    def add(key: str, route: KeyRoute) -> None:
        existing = routes.get(key)
        if existing is not None and existing != route:
            raise RelationConfigError(
                f"Form key {key!r} is ambiguous between {existing.relation!r} and {route.relation!r}"
            )
        routes[key] = route

    for config in relations.values():
        stems = {"name": config.name, "singular": config.singular}
        kinds = [AssignmentKind.CREATE_MANY, AssignmentKind.MANAGE_MANY]
        if config.accepts_ids:
            kinds.append(AssignmentKind.ID_SET)
        if config.accepts_text:
            kinds.append(AssignmentKind.TEXT_LIST)
        for kind in kinds:
            add(form_key(kind, **stems), KeyRoute(config.name, kind))
        if config.forced:
            add(
                form_key(AssignmentKind.ID_SET, postponed=True, **stems),
                KeyRoute(config.name, AssignmentKind.ID_SET, postponed=True),
            )
    return routes


_REGISTRIES: dict[type[Any], RelationRegistry] = {}


def register(registry: RelationRegistry, *, replace: bool = False) -> RelationRegistry:
    """Add ``registry`` to the registration table."""

    if registry.parent_type in _REGISTRIES and not replace:
        raise RelationConfigError(
            f"Relations for {registry.parent_type.__name__} are already registered"
        )
    _REGISTRIES[registry.parent_type] = registry
    log.debug(
        "Registered %d relation(s) for %s", len(registry.relations), registry.parent_type.__name__
    )
    return registry


def registry_for(parent_type: type[Any]) -> RelationRegistry:
    """Return the registry of ``parent_type`` or of its nearest registered base."""

    for klass in parent_type.__mro__:
        registry = _REGISTRIES.get(klass)
        if registry is not None:
            return registry
    raise RelationConfigError(f"No relations registered for {parent_type.__name__}")


def unregister(parent_type: type[Any]) -> None:
    _REGISTRIES.pop(parent_type, None)


class RelationBuilder:
    """Chainable declaration of the relations a parent type stages."""

    def __init__(self, parent_type: type[Any]) -> None:
        self.parent_type = parent_type
        self._relations: dict[str, RelationConfig] = {}
        self._strict: bool | None = None
        self._id_type: type[Any] = int

    def by_ids(self, *names: str) -> RelationBuilder:
        for name in names:
            self._declare(name, RelationMode.BY_IDS)
        return self

    def by_string(self, **labels: str) -> RelationBuilder:
        for name, attribute in labels.items():
            self._declare(name, RelationMode.BY_STRING, label_attribute=attribute)
        return self

    def by_force(self, *names: str) -> RelationBuilder:
        for name in names:
            self._declare(name, RelationMode.BY_FORCE)
        return self

    def just_defaults(self, *names: str) -> RelationBuilder:
        for name in names:
            self._declare(name, RelationMode.JUST_DEFAULTS)
        return self

    def before_create(self, name: str, callback: BeforeCreate) -> RelationBuilder:
        """Run ``callback(parent, child)`` on each new child right before it is saved."""

        config = self._declared(name)
        self._relations[name] = replace(config, before_create=(*config.before_create, callback))
        return self

    def singular(self, name: str, stem: str) -> RelationBuilder:
        self._relations[name] = replace(self._declared(name), singular=stem)
        return self

    def blank_policy(self, name: str, policy: BlankPolicy) -> RelationBuilder:
        self._relations[name] = replace(self._declared(name), blank_policy=policy)
        return self

    def strict(self, flag: bool = True) -> RelationBuilder:  # noqa: FBT001, FBT002
        """Aggregate and raise child failures instead of discarding them."""

        self._strict = flag
        return self

    def id_type(self, id_type: type[Any]) -> RelationBuilder:
        self._id_type = id_type
        return self

    def build(self, *, register_as_default: bool = True) -> RelationRegistry:
        if not self._relations:
            raise RelationConfigError(f"No relations declared for {self.parent_type.__name__}")
        registry = RelationRegistry(
            parent_type=self.parent_type,
            relations=self._relations,
            strict=self._strict,
            id_type=self._id_type,
        )
        if register_as_default:
            register(registry)
        return registry

    def _declare(self, name: str, mode: RelationMode, *, label_attribute: str | None = None) -> None:
        if name in self._relations:
            raise RelationConfigError(f"Relation {name!r} is already declared")
        try:
            self._relations[name] = RelationConfig(
                name=name,
                mode=mode,
                singular=singularize(name),
                label_attribute=label_attribute,
            )
        except ValueError as exc:
            raise RelationConfigError(str(exc)) from exc

    def _declared(self, name: str) -> RelationConfig:
        try:
            return self._relations[name]
        except KeyError:
            raise RelationConfigError(f"Relation {name!r} is not declared") from None
