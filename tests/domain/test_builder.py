from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from relstage.domain.assignments import AssignmentKind
from relstage.domain.builder import (
    KeyRoute,
    RelationBuilder,
    register,
    registry_for,
    unregister,
)
from relstage.domain.errors import RelationConfigError, UnknownAssignmentKind
from relstage.domain.relations import BlankPolicy, RelationMode, singularize

if TYPE_CHECKING:
    from collections.abc import Iterator


class Gallery:
    pass


class Exhibition(Gallery):
    pass


@pytest.fixture(autouse=True)
def clean_registrations() -> Iterator[None]:
    unregister(Gallery)
    unregister(Exhibition)
    yield
    unregister(Gallery)
    unregister(Exhibition)


def test_routes_cover_every_mode() -> None:
    registry = (
        RelationBuilder(Gallery)
        .by_ids("paintings")
        .by_string(visitors="name")
        .by_force("photos")
        .just_defaults("frames")
        .build(register_as_default=False)
    )

    assert registry.routes["painting_ids"] == KeyRoute("paintings", AssignmentKind.ID_SET)
    assert registry.routes["visitors_as_string"] == KeyRoute(
        "visitors", AssignmentKind.TEXT_LIST
    )
    assert registry.routes["postponed_photo_ids"] == KeyRoute(
        "photos", AssignmentKind.ID_SET, postponed=True
    )
    assert registry.routes["add_frame"] == KeyRoute("frames", AssignmentKind.CREATE_MANY)
    assert registry.routes["manage_visitor"] == KeyRoute("visitors", AssignmentKind.MANAGE_MANY)
    assert "frame_ids" not in registry.routes
    assert "paintings_as_string" not in registry.routes


def test_build_registers_by_default() -> None:
    registry = RelationBuilder(Gallery).by_ids("paintings").build()

    assert registry_for(Gallery) is registry


def test_registry_lookup_walks_base_classes() -> None:
    registry = RelationBuilder(Gallery).by_ids("paintings").build()

    assert registry_for(Exhibition) is registry


def test_registering_twice_requires_replace() -> None:
    RelationBuilder(Gallery).by_ids("paintings").build()
    replacement = RelationBuilder(Gallery).by_ids("photos").build(register_as_default=False)

    with pytest.raises(RelationConfigError, match="already registered"):
        register(replacement)

    register(replacement, replace=True)
    assert registry_for(Gallery) is replacement


def test_missing_registration_is_reported() -> None:
    with pytest.raises(RelationConfigError, match="Gallery"):
        registry_for(Gallery)


def test_declaring_a_relation_twice_is_rejected() -> None:
    builder = RelationBuilder(Gallery).by_ids("paintings")

    with pytest.raises(RelationConfigError, match="already declared"):
        builder.by_string(paintings="title")


def test_options_require_a_declared_relation() -> None:
    builder = RelationBuilder(Gallery)

    with pytest.raises(RelationConfigError, match="not declared"):
        builder.before_create("paintings", lambda parent, child: None)


def test_empty_builder_cannot_build() -> None:
    with pytest.raises(RelationConfigError):
        RelationBuilder(Gallery).build()


def test_ambiguous_form_keys_are_rejected() -> None:
    builder = RelationBuilder(Gallery).by_ids("paintings").by_ids("artworks")
    builder.singular("artworks", "painting")

    with pytest.raises(RelationConfigError, match="ambiguous"):
        builder.build(register_as_default=False)


def test_options_are_stored_on_the_relation_config() -> None:
    def stamp(parent: object, child: object) -> None:
        _ = parent, child

    registry = (
        RelationBuilder(Gallery)
        .by_force("photos")
        .before_create("photos", stamp)
        .blank_policy("photos", BlankPolicy.WHOLE_PAYLOAD)
        .strict()
        .id_type(str)
        .build(register_as_default=False)
    )

    config = registry.config("photos")
    assert config.mode is RelationMode.BY_FORCE
    assert config.forced
    assert config.before_create == (stamp,)
    assert config.blank_policy is BlankPolicy.WHOLE_PAYLOAD
    assert registry.strict is True
    assert registry.id_type is str


def test_require_rejects_kinds_outside_the_mode() -> None:
    registry = RelationBuilder(Gallery).by_ids("paintings").build(register_as_default=False)

    assert registry.require("paintings", AssignmentKind.CREATE_MANY).name == "paintings"
    with pytest.raises(UnknownAssignmentKind):
        registry.require("paintings", AssignmentKind.TEXT_LIST)
    with pytest.raises(UnknownAssignmentKind):
        registry.config("sculptures")


def test_registry_is_immutable() -> None:
    registry = RelationBuilder(Gallery).by_ids("paintings").build(register_as_default=False)

    with pytest.raises(TypeError):
        registry.relations["photos"] = registry.config("paintings")  # type: ignore[index]
    assert [config.name for config in registry] == ["paintings"]
    assert "paintings" in registry


@pytest.mark.parametrize(
    ("plural", "singular"),
    [
        ("categories", "category"),
        ("tags", "tag"),
        ("boxes", "box"),
        ("batches", "batch"),
        ("mystery_meats", "mystery_meat"),
        ("glass", "glass"),
        ("staff", "staff"),
    ],
)
def test_singularize(plural: str, singular: str) -> None:
    assert singularize(plural) == singular
