"""Assignment variants produced by the classifier and consumed by the reconciler."""

from __future__ import annotations

from collections.abc import Mapping, Sized
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar, Final

if TYPE_CHECKING:
    from collections.abc import Hashable

ID_SET_SUFFIX: Final[str] = "_ids"
TEXT_SUFFIX: Final[str] = "_as_string"
CREATE_PREFIX: Final[str] = "add_"
MANAGE_PREFIX: Final[str] = "manage_"
POSTPONED_PREFIX: Final[str] = "postponed_"

IMPLICIT_ENTRY_KEY: Final[int] = 0

type EntryKey = int | str
type Attributes = Mapping[str, Any]


class AssignmentKind(StrEnum):
    ID_SET = "id_set"
    TEXT_LIST = "text_list"
    CREATE_MANY = "create_many"
    MANAGE_MANY = "manage_many"


@dataclass(frozen=True, slots=True)
class StagingKey:
    """Relation + kind pair; staging overwrites per key."""

    relation: str
    kind: AssignmentKind

    def __str__(self) -> str:
        return f"{self.relation}:{self.kind}"


def is_blank(value: object) -> bool:
    """Return whether a submitted value carries no information."""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Sized):
        return len(value) == 0
    return False


def all_blank(attributes: Attributes) -> bool:
    return all(is_blank(value) for value in attributes.values())


@dataclass(frozen=True, slots=True)
class IdSet:
    """Replace membership with exactly these existing children."""

    relation: str
    ids: tuple[Hashable, ...]
    kind: ClassVar[AssignmentKind] = AssignmentKind.ID_SET

    @property
    def key(self) -> StagingKey:
        return StagingKey(self.relation, self.kind)

    def merged_with(self, ids: tuple[Hashable, ...]) -> IdSet:
        return IdSet(self.relation, tuple(dict.fromkeys((*self.ids, *ids))))


@dataclass(frozen=True, slots=True)
class TextList:
    """Replace membership with children found or created from a label string.

    ``raw`` is kept verbatim so it can be redisplayed; splitting happens only
    when the assignment is reconciled.
    """

    relation: str
    raw: str
    separator: str
    kind: ClassVar[AssignmentKind] = AssignmentKind.TEXT_LIST

    @property
    def key(self) -> StagingKey:
        return StagingKey(self.relation, self.kind)

    def segments(self) -> tuple[str, ...]:
        stripped = (segment.strip() for segment in self.raw.split(self.separator))
        return tuple(dict.fromkeys(segment for segment in stripped if segment))


@dataclass(frozen=True, slots=True)
class CreateMany:
    """Create and link new children from attribute maps keyed by caller keys."""

    relation: str
    entries: Mapping[EntryKey, Attributes] = field(default_factory=dict["EntryKey", "Attributes"])
    single: bool = False
    submitted: Mapping[EntryKey, Attributes] = field(
        default_factory=dict["EntryKey", "Attributes"], compare=False
    )
    kind: ClassVar[AssignmentKind] = AssignmentKind.CREATE_MANY

    @property
    def key(self) -> StagingKey:
        return StagingKey(self.relation, self.kind)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @property
    def requested(self) -> Mapping[EntryKey, Attributes]:
        """Attribute maps as submitted, blank entries included."""

        return self.submitted or self.entries


@dataclass(frozen=True, slots=True)
class ManageMany:
    """Apply partial updates to existing members by id."""

    relation: str
    updates: Mapping[Hashable, Attributes]
    kind: ClassVar[AssignmentKind] = AssignmentKind.MANAGE_MANY

    @property
    def key(self) -> StagingKey:
        return StagingKey(self.relation, self.kind)


type Assignment = IdSet | TextList | CreateMany | ManageMany


def form_key(kind: AssignmentKind, *, name: str, singular: str, postponed: bool = False) -> str:
    """Return the form key that classifies to ``kind`` for a relation."""

    if kind is AssignmentKind.ID_SET:
        prefix = POSTPONED_PREFIX if postponed else ""
        return f"{prefix}{singular}{ID_SET_SUFFIX}"
    if kind is AssignmentKind.TEXT_LIST:
        return f"{name}{TEXT_SUFFIX}"
    if kind is AssignmentKind.CREATE_MANY:
        return f"{CREATE_PREFIX}{singular}"
    return f"{MANAGE_PREFIX}{singular}"
