from __future__ import annotations

from relstage.domain.assignments import AssignmentKind, CreateMany, IdSet, StagingKey, TextList
from relstage.domain.reconcile import ChildError
from relstage.domain.staging import PendingAssignments
from tests.support.shelves import Book


def test_restaging_a_key_overwrites_in_place() -> None:
    pending = PendingAssignments()
    pending.stage(IdSet("notes", (1,)))
    pending.stage(TextList("labels", "a", ","))
    pending.stage(IdSet("notes", (2, 3)))

    assert list(pending.postponed) == [
        StagingKey("notes", AssignmentKind.ID_SET),
        StagingKey("labels", AssignmentKind.TEXT_LIST),
    ]
    assert pending.staged_ids("notes") == IdSet("notes", (2, 3))


def test_forced_creates_are_staged_apart() -> None:
    pending = PendingAssignments()
    create = CreateMany("books", {0: {"title": "Dune"}}, single=True)
    pending.stage(create, forced=True)
    pending.stage(IdSet("books", (4,)), forced=True)

    assert pending.postponed_forced == {create.key: create}
    assert pending.staged(create.key) is create
    assert pending.staged_ids("books") == IdSet("books", (4,))


def test_fold_created_ids_unions_into_staged_id_set() -> None:
    pending = PendingAssignments()
    pending.stage(IdSet("books", (4, 5)))

    folded = pending.fold_created_ids("books", [5, 9])

    assert folded == IdSet("books", (4, 5, 9))
    assert pending.staged_ids("books") == folded


def test_fold_created_ids_creates_missing_id_set() -> None:
    pending = PendingAssignments()

    assert pending.fold_created_ids("books", [1]) == IdSet("books", (1,))


def test_errors_are_recorded_only_when_strict() -> None:
    error = ChildError(relation="books", child=Book(), messages=("title can't be blank",))
    lenient = PendingAssignments()
    strict = PendingAssignments(strict=True)

    lenient.record([error])
    strict.record([error])

    assert lenient.accumulated_errors == []
    assert strict.accumulated_errors == ["Book could not be saved because: title can't be blank"]


def test_clear_empties_everything() -> None:
    pending = PendingAssignments(strict=True)
    pending.stage(IdSet("notes", (1,)))
    pending.stage(CreateMany("books", {0: {"title": "x"}}), forced=True)
    pending.accumulated_errors.append("boom")

    pending.clear()

    assert pending.is_empty
    assert pending.accumulated_errors == []


def test_discard_forgets_either_store() -> None:
    pending = PendingAssignments()
    create = CreateMany("books", {0: {"title": "x"}})
    pending.stage(create, forced=True)
    pending.stage(IdSet("notes", (1,)))

    pending.discard(create.key)
    pending.discard(StagingKey("notes", AssignmentKind.ID_SET))

    assert pending.is_empty
