"""Tests for the sync predicate."""

import pytest

from flux_sync.manifest import SYNC_AT_ANNOTATION, ObjectMeta
from flux_sync.predicate import SyncAtPredicate, UpdateEvent


def meta(generation: int = 1, **annotations: str) -> ObjectMeta:
    return ObjectMeta(name="apps", generation=generation, annotations=annotations)


def sync_at(value: str, generation: int = 1) -> ObjectMeta:
    return ObjectMeta(
        name="apps", generation=generation, annotations={SYNC_AT_ANNOTATION: value}
    )


@pytest.mark.parametrize(
    ("old", "new", "expected"),
    [
        (None, meta(), False),
        (meta(), None, False),
        (meta(), meta(), False),
        (meta(1), meta(2), True),
        (meta(), sync_at("1"), True),
        (sync_at("1"), sync_at("2"), True),
        (sync_at("1"), sync_at("1"), False),
        (sync_at("1"), meta(), False),
        (meta(), meta(owner="me"), False),
        (sync_at("1"), sync_at("1", generation=2), True),
    ],
)
def test_update(
    old: ObjectMeta | None, new: ObjectMeta | None, expected: bool
) -> None:
    """Test which updates trigger a sync."""
    assert SyncAtPredicate().update(UpdateEvent(old=old, new=new)) == expected


def test_other_events() -> None:
    """Test create and delete events always trigger."""
    predicate = SyncAtPredicate()
    assert predicate.create(meta())
    assert predicate.delete(meta())
