"""Tests for Entry and the packed position code."""

import gc
import weakref

from weaklru.entry import (
    NOT_RESIDENT,
    Entry,
    encode_position,
    evicted_position,
    pinned_position,
)


class Owner:
    pass


class Value:
    pass


class TestPositionCode:
    """Tests for the position helpers."""

    def test_new_entry_is_not_resident(self) -> None:
        entry = Entry("k", Value())
        assert entry.position == NOT_RESIDENT
        assert entry.is_resident is False
        assert entry.is_pinned is False
        assert entry.tier is None
        assert entry.slot is None
        assert entry.priority_level == 0

    def test_resident_fields_decode(self) -> None:
        entry = Entry("k", Value())
        entry.position = encode_position(tier=2, generation=17, slot=4095, level=5)
        assert entry.is_resident is True
        assert entry.is_pinned is False
        assert entry.tier == 2
        assert entry.generation == 17
        assert entry.slot == 4095
        assert entry.priority_level == 5

    def test_eviction_keeps_priority_level(self) -> None:
        position = encode_position(tier=1, generation=3, slot=9, level=4)
        evicted = evicted_position(position)
        entry = Entry("k", Value())
        entry.position = evicted
        assert entry.is_resident is False
        assert entry.priority_level == 4

    def test_pinned_is_exclusive_with_resident(self) -> None:
        entry = Entry("k", Value())
        entry.position = pinned_position(encode_position(3, 0, 1, 2))
        assert entry.is_pinned is True
        assert entry.is_resident is False
        assert entry.tier is None
        assert entry.priority_level == 2


class TestResolve:
    """Tests for Entry.resolve."""

    def test_strong_value(self) -> None:
        value = Value()
        entry = Entry("k", value, weakref.ref(value))
        assert entry.resolve() is value

    def test_weak_only_value(self) -> None:
        value = Value()
        entry = Entry("k", None, weakref.ref(value))
        assert entry.resolve() is value

    def test_dead_weak_value(self) -> None:
        value = Value()
        entry = Entry("k", None, weakref.ref(value))
        del value
        gc.collect()
        assert entry.resolve() is None

    def test_scalar_has_no_weak_path(self) -> None:
        entry = Entry("k", 42)
        assert entry.resolve() == 42
        entry.value = None
        assert entry.resolve() is None


class TestOwner:
    """Tests for the owner back-reference."""

    def test_owner_is_not_kept_alive(self) -> None:
        owner = Owner()
        entry = Entry("k", 1, owner=owner)
        assert entry.owner is owner
        del owner
        gc.collect()
        assert entry.owner is None

    def test_bind(self) -> None:
        owner = Owner()
        entry = Entry("k", 1)
        assert entry.owner is None
        entry.bind(owner)
        assert entry.owner is owner

    def test_repr_mentions_state(self) -> None:
        entry = Entry("k", 1)
        assert "not-resident" in repr(entry)
        entry.position = pinned_position(entry.position)
        assert "pinned" in repr(entry)
