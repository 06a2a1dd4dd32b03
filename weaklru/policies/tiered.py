"""
Tiered promotion policy: the default eviction engine for weaklru.

Four tiers, each a fixed ring of ``capacity`` slots with a monotonically
advancing write cursor.  A use of an entry in tier ``t`` moves it to
tier ``t + 1`` provided the tier's generation (derived from its cursor)
has moved on since the entry was written there; repeated uses inside a
single generation are ignored so a burst cannot over-promote.

Writing into a slot displaces its occupant one tier down, which may in
turn displace another occupant, and so on.  An entry pushed below tier
0 is evicted and handed back to its cache.  The total number of
resident entries is therefore bounded by ``4 * capacity`` and every
access costs O(1).

Priority widens the grace window of an entry: an occupant with priority
level ``L`` is only overwritten on ring passes where
``lap & ((1 << L) - 1) == 0``, otherwise the cursor skips past it.
"""

import logging
from typing import Any, Dict, List, Optional

from weaklru.entry import (
    GENERATION_MASK,
    MAX_PRIORITY_LEVEL,
    PRIORITY_MASK,
    PRIORITY_SHIFT,
    SLOT_MASK,
    Entry,
    encode_position,
    evicted_position,
    pinned_position,
)
from weaklru.exceptions import ConfigurationError
from weaklru.policies.base import BasePolicy

logger = logging.getLogger(__name__)

TIER_COUNT = 4
TOP_TIER = TIER_COUNT - 1
DEFAULT_CAPACITY = 8192
MAX_CAPACITY = SLOT_MASK + 1

# Upper bound on slots the cursor may skip for one write.
_MAX_PROBES = 8


def grace_mask(level: int) -> int:
    """Displacement mask for a priority level (0 for the default level)."""
    return (1 << level) - 1


class Tier:
    """One fixed-capacity ring of entry slots.

    Args:
        index: Tier index, 0 (least retained) to 3 (most retained).
        capacity: Number of slots in the ring.
    """

    __slots__ = ("index", "capacity", "slots", "cursor", "occupied", "_generation_length")

    def __init__(self, index: int, capacity: int) -> None:
        self.index = index
        self.capacity = capacity
        self.slots: List[Optional[Entry]] = [None] * capacity
        self.cursor: int = 0
        self.occupied: int = 0
        self._generation_length = max(1, capacity // 2)

    @property
    def generation(self) -> int:
        """Current generation window; moves on every half ring of writes."""
        return (self.cursor // self._generation_length) & GENERATION_MASK

    def claim(self) -> int:
        """Advance the cursor to the next overwritable slot and return it."""
        slot = 0
        for _ in range(_MAX_PROBES):
            slot = self.cursor % self.capacity
            lap = self.cursor // self.capacity
            self.cursor += 1
            occupant = self.slots[slot]
            if occupant is None or (lap & grace_mask(occupant.priority_level)) == 0:
                break
        return slot

    def put(self, slot: int, entry: Entry) -> Optional[Entry]:
        """Store *entry* in *slot*, returning the displaced occupant."""
        displaced = self.slots[slot]
        self.slots[slot] = entry
        if displaced is None:
            self.occupied += 1
        return displaced

    def remove(self, slot: int, entry: Entry) -> bool:
        if self.slots[slot] is not entry:
            return False
        self.slots[slot] = None
        self.occupied -= 1
        return True


class TieredPromotionPolicy(BasePolicy):
    """Generational four-tier promotion/cascade eviction engine.

    The tiers belong to exactly one cache; attaching a second cache
    raises :class:`ConfigurationError`.

    Args:
        capacity: Slots per tier (1 to 65536).  Defaults to 8192.

    Raises:
        ConfigurationError: If ``capacity`` is not a positive int within range.
    """

    single_owner = True

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        super().__init__()
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            raise ConfigurationError(f"capacity must be an int, got {capacity!r}")
        if capacity <= 0 or capacity > MAX_CAPACITY:
            raise ConfigurationError(
                f"capacity must be between 1 and {MAX_CAPACITY}, got {capacity}"
            )
        self._capacity = capacity
        self._tiers: List[Tier] = []
        self._promotions: int = 0
        self._evictions: int = 0
        self.reset()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def tiers(self) -> List[Tier]:
        return self._tiers

    # ------------------------------------------------------------------
    # Engine contract
    # ------------------------------------------------------------------

    def admit(self, entry: Entry, priority: Optional[int] = None) -> None:
        """Start tracking a new entry in tier 0 (or pin it)."""
        self.touch(entry, priority)

    def touch(self, entry: Entry, priority: Optional[int] = None) -> None:
        """Record a use of *entry*, promoting it and cascading as needed.

        A negative priority pins the entry outside the tiers.  A pinned
        entry touched without a priority stays pinned.  Omitting the
        priority otherwise reuses the level recorded on the entry.

        Raises:
            OwnershipError: If the entry's cache is not attached here.
        """
        self._check_owner(entry)
        if entry.value is None:
            return

        if priority is not None and priority < 0:
            self._unlink(entry)
            entry.position = pinned_position(entry.position)
            return
        if entry.is_pinned and priority is None:
            return

        level = entry.priority_level if priority is None else self._level_for(priority)

        if entry.is_resident:
            tier_index = entry.tier
            tier = self._tiers[tier_index]
            if tier_index >= TOP_TIER or entry.generation == tier.generation:
                entry.position = self._with_level(entry.position, level)
                return
            tier.remove(entry.slot, entry)
            target = tier_index + 1
            self._promotions += 1
        else:
            target = 0

        self._insert(entry, target, level)

    def release(self, entry: Entry) -> None:
        """Clear *entry*'s slot and pin state without evicting it."""
        self._unlink(entry)

    def reset(self) -> None:
        """Start over with empty tiers.

        Entries still sitting in the old tiers are marked not-resident,
        but their cache is not asked to release them.
        """
        for tier in self._tiers:
            for entry in tier.slots:
                if entry is not None:
                    entry.position = evicted_position(entry.position)
        self._tiers = [Tier(index, self._capacity) for index in range(TIER_COUNT)]

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def resident_count(self) -> int:
        return sum(tier.occupied for tier in self._tiers)

    def tier_of(self, entry: Entry) -> Optional[int]:
        """Tier index holding *entry*, verified against the slot itself."""
        if not entry.is_resident:
            return None
        tier = self._tiers[entry.tier]
        return tier.index if tier.slots[entry.slot] is entry else None

    def stats(self) -> Dict[str, Any]:
        """Return per-tier occupancy and promotion/eviction counts."""
        return {
            "capacity": self._capacity,
            "resident": self.resident_count(),
            "max_resident": self._capacity * TIER_COUNT,
            "tiers": [
                {
                    "tier": tier.index,
                    "occupied": tier.occupied,
                    "generation": tier.generation,
                }
                for tier in self._tiers
            ],
            "promotions": self._promotions,
            "evictions": self._evictions,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _level_for(self, priority: int) -> int:
        priority = min(int(priority), self._capacity >> 2)
        return min(priority.bit_length(), MAX_PRIORITY_LEVEL)

    @staticmethod
    def _with_level(position: int, level: int) -> int:
        return (position & ~(PRIORITY_MASK << PRIORITY_SHIFT)) | (level << PRIORITY_SHIFT)

    def _unlink(self, entry: Entry) -> None:
        if entry.is_resident:
            self._tiers[entry.tier].remove(entry.slot, entry)
        entry.position = evicted_position(entry.position)

    def _insert(self, entry: Entry, tier_index: int, level: int) -> None:
        """Write *entry* into *tier_index*, cascading displacements downward."""
        while True:
            tier = self._tiers[tier_index]
            slot = tier.claim()
            displaced = tier.put(slot, entry)
            entry.position = encode_position(tier_index, tier.generation, slot, level)
            if displaced is None:
                return

            entry = displaced
            level = displaced.priority_level
            tier_index -= 1
            if tier_index < 0:
                entry.position = evicted_position(entry.position)
                self._evictions += 1
                logger.debug(
                    "Entry evicted from tiers",
                    extra={"cache_key": repr(entry.key)},
                )
                self._evict(entry)
                return
