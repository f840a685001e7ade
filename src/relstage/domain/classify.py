"""Turn untyped ``(key, payload)`` form input into typed assignments."""

from __future__ import annotations

from collections.abc import Mapping
from functools import cache
from typing import TYPE_CHECKING, Any, Final

from pydantic import TypeAdapter, ValidationError

from relstage.config import StagingConfig

from .assignments import (
    IMPLICIT_ENTRY_KEY,
    AssignmentKind,
    CreateMany,
    IdSet,
    ManageMany,
    TextList,
    all_blank,
)
from .errors import InvalidAssignmentPayload
from .relations import BlankPolicy

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable

    from .assignments import Assignment, Attributes, EntryKey
    from .builder import RelationRegistry
    from .relations import RelationConfig

_SENTINEL_IDS: Final[tuple[object, ...]] = (None, 0, "0", "")


@cache
def _id_adapter(id_type: type[Any]) -> TypeAdapter[Any]:
    return TypeAdapter(id_type)


@cache
def _ids_adapter(id_type: type[Any]) -> TypeAdapter[list[Any]]:
    return TypeAdapter(list[id_type])


class AssignmentClassifier:
    """Dispatch form keys through a relation registry's route table."""

    def __init__(self, registry: RelationRegistry, config: StagingConfig | None = None) -> None:
        self.registry = registry
        self.config = config or StagingConfig()

    def is_assignment_key(self, key: str) -> bool:
        return key in self.registry.routes

    def classify(self, key: str, payload: object) -> Assignment:
        route = self.registry.route(key)
        if route.postponed:
            return self.build(route.relation, route.kind, self._split_ids(payload))
        return self.build(route.relation, route.kind, payload)

    def build(self, relation: str, kind: AssignmentKind, payload: object) -> Assignment:
        """Classify a payload addressed by relation name and kind."""

        config = self.registry.require(relation, kind)
        if kind is AssignmentKind.ID_SET:
            return IdSet(relation, self.coerce_ids(payload, relation=relation))
        if kind is AssignmentKind.TEXT_LIST:
            return TextList(relation, _text(payload, relation), self.config.text_separator)
        if kind is AssignmentKind.CREATE_MANY:
            return _create_many(config, payload)
        return ManageMany(relation, self._managed(payload, relation))

    def coerce_ids(self, payload: object, *, relation: str) -> tuple[Hashable, ...]:
        if payload is None:
            return ()
        if isinstance(payload, str | bytes) or not _is_iterable(payload):
            raise InvalidAssignmentPayload(f"Expected a collection of ids for {relation!r}")
        raw = [value for value in payload if value not in _SENTINEL_IDS]  # type: ignore[union-attr]
        try:
            ids = _ids_adapter(self.registry.id_type).validate_python(raw)
        except ValidationError as exc:
            raise InvalidAssignmentPayload(f"Invalid ids for {relation!r}: {exc}") from exc
        return tuple(dict.fromkeys(value for value in ids if value not in _SENTINEL_IDS))

    def coerce_id(self, value: object, *, relation: str) -> Hashable:
        """Coerce one id without dropping sentinels; an invalid id is fatal."""

        try:
            return _id_adapter(self.registry.id_type).validate_python(value)
        except ValidationError as exc:
            raise InvalidAssignmentPayload(f"Invalid id for {relation!r}: {exc}") from exc

    def _split_ids(self, payload: object) -> list[str]:
        if payload is None:
            return []
        if not isinstance(payload, str | int):
            raise InvalidAssignmentPayload("Postponed ids must be a separated string")
        return [part.strip() for part in str(payload).split(self.config.text_separator)]

    def _managed(self, payload: object, relation: str) -> dict[Hashable, Attributes]:
        if not isinstance(payload, Mapping):
            raise InvalidAssignmentPayload(f"Expected id -> attributes for {relation!r}")
        updates: dict[Hashable, Attributes] = {}
        for raw_id, attributes in payload.items():  # pyright: ignore[reportUnknownVariableType]
            if not isinstance(attributes, Mapping):
                raise InvalidAssignmentPayload(f"Expected attributes for {relation!r}[{raw_id!r}]")
            updates[self.coerce_id(raw_id, relation=relation)] = dict(attributes)  # pyright: ignore[reportUnknownArgumentType]
        return updates


def _create_many(config: RelationConfig, payload: object) -> CreateMany:
    if payload is None:
        return CreateMany(config.name)
    if not isinstance(payload, Mapping):
        raise InvalidAssignmentPayload(f"Expected attributes for {config.name!r}")
    values = list(payload.values())  # pyright: ignore[reportUnknownArgumentType]
    keyed = bool(values) and all(isinstance(value, Mapping) for value in values)
    if not keyed:
        entries: dict[EntryKey, Attributes] = {IMPLICIT_ENTRY_KEY: dict(payload)}  # pyright: ignore[reportUnknownArgumentType]
        return CreateMany(
            config.name, _drop_blank(entries, config.blank_policy), single=True, submitted=entries
        )
    entries = {
        _entry_key(key): dict(attributes)  # pyright: ignore[reportUnknownArgumentType]
        for key, attributes in payload.items()  # pyright: ignore[reportUnknownVariableType]
    }
    return CreateMany(config.name, _drop_blank(entries, config.blank_policy), submitted=entries)


def _drop_blank(
    entries: dict[EntryKey, Attributes], policy: BlankPolicy
) -> dict[EntryKey, Attributes]:
    if policy is BlankPolicy.WHOLE_PAYLOAD:
        if all(all_blank(attributes) for attributes in entries.values()):
            return {}
        return entries
    return {key: attributes for key, attributes in entries.items() if not all_blank(attributes)}


def _entry_key(key: object) -> EntryKey:
    if isinstance(key, int):
        return key
    text = str(key)
    return int(text) if text.isdigit() else text


def _text(payload: object, relation: str) -> str:
    if payload is None:
        return ""
    if not isinstance(payload, str):
        raise InvalidAssignmentPayload(f"Expected a string for {relation!r}")
    return payload


def _is_iterable(value: object) -> bool:
    try:
        iter(value)  # type: ignore[call-overload]
    except TypeError:
        return False
    return True


def classify_all(
    classifier: AssignmentClassifier, params: Mapping[str, object]
) -> Iterable[Assignment]:
    """Classify every pair of a form submission in submission order."""

    for key, payload in params.items():
        yield classifier.classify(key, payload)
