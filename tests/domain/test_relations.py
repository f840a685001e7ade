from __future__ import annotations

import pytest

from relstage.domain.assignments import AssignmentKind, form_key, is_blank
from relstage.domain.relations import (
    Cardinality,
    RelationConfig,
    RelationDescriptor,
    RelationMode,
)
from tests.support.shelves import Note


def test_direct_relations_require_a_link_key() -> None:
    with pytest.raises(ValueError, match="link_key"):
        RelationDescriptor(name="notes", target=Note, cardinality=Cardinality.DIRECT)


def test_string_relations_require_a_label_attribute() -> None:
    with pytest.raises(ValueError, match="label_attribute"):
        RelationConfig(name="tags", mode=RelationMode.BY_STRING, singular="tag")


@pytest.mark.parametrize(
    ("mode", "accepts_ids", "accepts_text", "forced"),
    [
        (RelationMode.BY_IDS, True, False, False),
        (RelationMode.BY_FORCE, True, False, True),
        (RelationMode.JUST_DEFAULTS, False, False, False),
    ],
)
def test_modes_decide_accepted_kinds(
    mode: RelationMode, accepts_ids: bool, accepts_text: bool, forced: bool
) -> None:
    config = RelationConfig(name="notes", mode=mode, singular="note")

    assert config.accepts_ids is accepts_ids
    assert config.accepts_text is accepts_text
    assert config.forced is forced


def test_form_keys_follow_the_naming_conventions() -> None:
    stems = {"name": "mystery_meats", "singular": "mystery_meat"}

    assert form_key(AssignmentKind.ID_SET, **stems) == "mystery_meat_ids"
    assert form_key(AssignmentKind.ID_SET, postponed=True, **stems) == "postponed_mystery_meat_ids"
    assert form_key(AssignmentKind.TEXT_LIST, **stems) == "mystery_meats_as_string"
    assert form_key(AssignmentKind.CREATE_MANY, **stems) == "add_mystery_meat"
    assert form_key(AssignmentKind.MANAGE_MANY, **stems) == "manage_mystery_meat"


@pytest.mark.parametrize(
    ("value", "blank"),
    [(None, True), ("", True), ("  ", True), ([], True), ({}, True), ("x", False), (0, False)],
)
def test_is_blank(value: object, blank: bool) -> None:  # noqa: FBT001
    assert is_blank(value) is blank
