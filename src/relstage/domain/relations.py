"""Relation descriptors and per-relation staging configuration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    type BeforeCreate = Callable[[Any, Any], None]


class Cardinality(StrEnum):
    """How children are linked to the parent."""

    DIRECT = "direct"
    THROUGH_JOIN = "through_join"


class RelationMode(StrEnum):
    """Which accessors and assignment kinds a relation accepts."""

    BY_IDS = "by_ids"
    BY_STRING = "by_string"
    BY_FORCE = "by_force"
    JUST_DEFAULTS = "just_defaults"


class BlankPolicy(StrEnum):
    """Where blank attribute maps are dropped from create payloads."""

    EACH_ENTRY = "each_entry"
    WHOLE_PAYLOAD = "whole_payload"


@dataclass(frozen=True, slots=True, kw_only=True)
class RelationDescriptor:
    """Resolved shape of one relation, supplied by a relation resolver.

    ``link_key`` names the child attribute holding the parent's identity and is
    only set for direct relations.
    """

    name: str
    target: type[Any]
    cardinality: Cardinality
    link_key: str | None = None

    @property
    def is_direct(self) -> bool:
        return self.cardinality is Cardinality.DIRECT

    def __post_init__(self) -> None:
        if self.is_direct and not self.link_key:
            raise ValueError(f"direct relation {self.name!r} requires a link_key")


@dataclass(frozen=True, slots=True, kw_only=True)
class RelationConfig:
    """Declared staging behaviour for one relation of a parent type."""

    name: str
    mode: RelationMode
    singular: str
    label_attribute: str | None = None
    blank_policy: BlankPolicy = BlankPolicy.EACH_ENTRY
    before_create: tuple[BeforeCreate, ...] = ()

    def __post_init__(self) -> None:
        if self.mode is RelationMode.BY_STRING and not self.label_attribute:
            raise ValueError(f"string relation {self.name!r} requires a label_attribute")

    @property
    def forced(self) -> bool:
        return self.mode is RelationMode.BY_FORCE

    @property
    def accepts_ids(self) -> bool:
        return self.mode in (RelationMode.BY_IDS, RelationMode.BY_FORCE)

    @property
    def accepts_text(self) -> bool:
        return self.mode is RelationMode.BY_STRING


def singularize(name: str) -> str:
    """Derive the form-key stem for a plural relation name."""

    if name.endswith("ies") and len(name) > 3:
        return name[:-3] + "y"
    if name.endswith(("ses", "xes", "zes", "ches", "shes")):
        return name[:-2]
    if name.endswith("s") and not name.endswith("ss"):
        return name[:-1]
    return name
