"""
Cache entry and its packed position code.

An :class:`Entry` wraps one cached value.  While the cache owns the
value outright it sits in ``value``; once soft-demoted only ``weak``
(a ``weakref.ref``) remains and the value lives only as long as some
other owner keeps it alive.

The ``position`` integer packs all of the eviction state:

====================  ======================================
bits 0-15             slot offset inside the tier ring
bits 16-21            generation marker of the tier
bits 22-23            tier index (0-3)
bits 24-27            priority level
bit 28                resident in a tier
bit 29                pinned (no tier membership)
====================  ======================================

Exactly one of resident, pinned, or neither holds at any time.  The
slot, generation and tier fields are only meaningful while resident;
the priority level survives eviction so a later admission can reuse it.
"""

import weakref
from typing import Any, Hashable, Optional

SLOT_MASK = 0xFFFF
GENERATION_SHIFT = 16
GENERATION_MASK = 0x3F
TIER_SHIFT = 22
TIER_MASK = 0x3
PRIORITY_SHIFT = 24
PRIORITY_MASK = 0xF
RESIDENT = 1 << 28
PINNED = 1 << 29

NOT_RESIDENT = 0
MAX_PRIORITY_LEVEL = PRIORITY_MASK


def encode_position(tier: int, generation: int, slot: int, level: int) -> int:
    """Pack a resident position."""
    return (
        RESIDENT
        | ((level & PRIORITY_MASK) << PRIORITY_SHIFT)
        | ((tier & TIER_MASK) << TIER_SHIFT)
        | ((generation & GENERATION_MASK) << GENERATION_SHIFT)
        | (slot & SLOT_MASK)
    )


def evicted_position(position: int) -> int:
    """Drop residency/pin flags, keeping only the priority level."""
    return position & (PRIORITY_MASK << PRIORITY_SHIFT)


def pinned_position(position: int) -> int:
    return PINNED | evicted_position(position)


class Entry:
    """The unit of storage held in a :class:`~weaklru.store.WeakLRUCache`.

    Attributes:
        key: Map key, used to re-locate the slot from eviction and
            reclamation callbacks.
        value: Strong hold on the cached value, ``None`` once soft-demoted.
        weak: ``weakref.ref`` to the value, or ``None`` for values that
            cannot be weakly referenced (ints, strings, tuples, and in
            CPython also plain lists and dicts).  Such values are removed
            outright on eviction instead of being soft-demoted.
        position: Packed eviction state (see module docstring).
        usage: Decaying usage counter, only used by ``SweepPolicy``.
        watch: The armed ``weakref.finalize`` reclamation watch, if any.
    """

    __slots__ = ("key", "value", "weak", "position", "usage", "watch", "_owner", "__weakref__")

    def __init__(
        self,
        key: Hashable,
        value: Any,
        weak: Optional[weakref.ref] = None,
        owner: Any = None,
    ) -> None:
        self.key = key
        self.value = value
        self.weak = weak
        self.position: int = NOT_RESIDENT
        self.usage: int = 0
        self.watch: Optional[weakref.finalize] = None
        self._owner = weakref.ref(owner) if owner is not None else None

    @property
    def owner(self) -> Any:
        """The owning cache, or ``None`` if it has been collected."""
        return self._owner() if self._owner is not None else None

    def bind(self, owner: Any) -> None:
        self._owner = weakref.ref(owner)

    def resolve(self) -> Any:
        """Return the value from the strong hold or, failing that, the weak handle."""
        if self.value is not None:
            return self.value
        if self.weak is not None:
            return self.weak()
        return None

    @property
    def is_resident(self) -> bool:
        return bool(self.position & RESIDENT)

    @property
    def is_pinned(self) -> bool:
        return bool(self.position & PINNED)

    @property
    def tier(self) -> Optional[int]:
        if not self.is_resident:
            return None
        return (self.position >> TIER_SHIFT) & TIER_MASK

    @property
    def generation(self) -> Optional[int]:
        if not self.is_resident:
            return None
        return (self.position >> GENERATION_SHIFT) & GENERATION_MASK

    @property
    def slot(self) -> Optional[int]:
        if not self.is_resident:
            return None
        return self.position & SLOT_MASK

    @property
    def priority_level(self) -> int:
        return (self.position >> PRIORITY_SHIFT) & PRIORITY_MASK

    def __repr__(self) -> str:
        if self.is_pinned:
            state = "pinned"
        elif self.is_resident:
            state = f"tier={self.tier} slot={self.slot} gen={self.generation}"
        else:
            state = "not-resident"
        held = "strong" if self.value is not None else ("weak" if self.weak is not None else "empty")
        return f"Entry(key={self.key!r}, {held}, {state})"
