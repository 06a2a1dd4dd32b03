"""
Weak-backed LRFU cache for weaklru.

:class:`WeakLRUCache` maps keys to :class:`~weaklru.entry.Entry` objects
and delegates residency decisions to an eviction engine.  When the
engine lets go of an entry, the cache does not delete it outright: if
the value can still be reached through its weak handle the strong hold
is dropped and a reclamation watch is armed, so the value stays
retrievable for as long as something else keeps it alive.  Only once
the garbage collector confirms the value is gone is the key removed.

Mutation is single-threaded by contract; callers sharing a cache across
threads must serialise ``set``/``get``/``delete``/``used`` themselves.
"""

import logging
from enum import Enum
from typing import Any, Dict, Hashable, Iterator, List, Optional, Tuple

from pydantic import BaseModel

from weaklru.config import get_settings
from weaklru.entry import Entry
from weaklru.exceptions import OwnershipError
from weaklru.policies.base import EvictionEngine
from weaklru.policies.factory import PolicySpec, build_policy
from weaklru.reclamation import arm_watch, disarm_watch, make_weak_handle

logger = logging.getLogger(__name__)


class GetMode(str, Enum):
    """What :meth:`WeakLRUCache.get` returns and whether it signals use.

    ``PEEK`` returns the value without telling the engine; ``RAW``
    returns the entry and ``VALUE`` the value, both counting as a use.
    """

    PEEK = "peek"
    RAW = "raw"
    VALUE = "value"


class CacheStats(BaseModel):
    """Aggregate cache statistics.

    Attributes:
        hits: Lookups that found a live value.
        misses: Lookups for absent keys or dead weak handles.
        hit_rate: Ratio of hits to total lookups (0.0 if no lookups).
        revivals: Hits served from a soft-demoted entry's weak handle.
        soft_demotions: Entries reduced to a weak handle by the engine.
        evictions: Entries removed outright because nothing else held them.
        reclaimed: Entries removed after the collector disposed of the value.
        entry_count: Current number of map slots.
    """

    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0
    revivals: int = 0
    soft_demotions: int = 0
    evictions: int = 0
    reclaimed: int = 0
    entry_count: int = 0


class WeakLRUCache:
    """In-process object cache with weak-reference fallback.

    Args:
        capacity: Slots per tier for the default tiered policy.
        eviction_policy: An eviction engine instance, a policy name
            (``"tiered"``, ``"null"``, ``"disabled"``, ``"sweep"``) or
            ``False`` to disable retention.
        defer_weak_registration: Arm reclamation watches only when an
            entry is soft-demoted instead of on insertion.

    Arguments left as ``None`` fall back to the ``cache`` settings section.

    Raises:
        ConfigurationError: On invalid capacity or policy.
    """

    def __init__(
        self,
        capacity: Optional[int] = None,
        eviction_policy: PolicySpec = None,
        defer_weak_registration: Optional[bool] = None,
    ) -> None:
        if capacity is None or eviction_policy is None or defer_weak_registration is None:
            settings = get_settings().cache
            capacity = settings.capacity if capacity is None else capacity
            if eviction_policy is None:
                eviction_policy = settings.eviction_policy
            if defer_weak_registration is None:
                defer_weak_registration = settings.defer_weak_registration

        self._store: Dict[Hashable, Entry] = {}
        self._policy: EvictionEngine = build_policy(eviction_policy, capacity)
        attach = getattr(self._policy, "attach", None)
        if attach is not None:
            attach(self)
        self._defer_weak_registration = bool(defer_weak_registration)

        self._hits: int = 0
        self._misses: int = 0
        self._revivals: int = 0
        self._soft_demotions: int = 0
        self._evictions: int = 0
        self._reclaimed: int = 0

        logger.info(
            "WeakLRUCache initialised",
            extra={
                "policy": type(self._policy).__name__,
                "capacity": capacity,
                "defer_weak_registration": self._defer_weak_registration,
            },
        )

    @property
    def policy(self) -> EvictionEngine:
        return self._policy

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(
        self,
        key: Hashable,
        mode: GetMode = GetMode.RAW,
        priority: Optional[int] = None,
    ) -> Any:
        """Look up *key*, reviving a soft-demoted entry if its value is alive.

        Args:
            key: The key to look up.
            mode: See :class:`GetMode`.
            priority: Optional priority passed to the engine on use.

        Returns:
            The entry (``RAW``) or value (``VALUE``/``PEEK``), or ``None``
            on a miss.  A dead weak handle is a miss and drops the key.
        """
        mode = GetMode(mode)
        entry = self._store.get(key)
        if entry is None:
            self._misses += 1
            return None

        value = entry.value
        if value is None:
            value = entry.weak() if entry.weak is not None else None
            if value is None:
                self._discard(key, entry)
                self._misses += 1
                logger.debug(
                    "Weak handle dead on lookup",
                    extra={"cache_key": repr(key)},
                )
                return None
            if mode is GetMode.PEEK:
                self._hits += 1
                return value
            entry.value = value
            self._revivals += 1
            logger.debug("Entry revived", extra={"cache_key": repr(key)})

        self._hits += 1
        if mode is GetMode.PEEK:
            return value
        self._policy.touch(entry, priority)
        return value if mode is GetMode.VALUE else entry

    def get_value(self, key: Hashable, priority: Optional[int] = None) -> Any:
        """Return the value for *key*, or ``None`` on a miss."""
        return self.get(key, GetMode.VALUE, priority)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_value(self, key: Hashable, value: Any, priority: Optional[int] = None) -> None:
        """Cache *value* under *key*.

        Values that support weak references get a weak handle next to
        the strong hold; anything else is stored strongly only.  Storing
        ``None`` is a no-op.

        Args:
            key: The key.
            value: The value to cache.
            priority: Engine priority; negative pins the entry.
        """
        if value is None:
            return
        entry = Entry(key, value, make_weak_handle(value), owner=self)
        self.set(key, entry, priority)

    def set(self, key: Hashable, entry: Entry, priority: Optional[int] = None) -> None:
        """Replace whatever is stored under *key* with *entry*.

        Raises:
            OwnershipError: If *entry* belongs to another cache.
        """
        self._adopt(entry)
        previous = self._store.get(key)
        if previous is not None:
            self._policy.release(previous)
        self.insert(key, entry, priority)

    def insert(self, key: Hashable, entry: Entry, priority: Optional[int] = None) -> None:
        """Store *entry* under *key* and hand it to the engine.

        A different entry previously stored under *key* loses its
        reclamation watch.
        """
        self._adopt(entry)
        previous = self._store.get(key)
        if previous is not None and previous is not entry:
            disarm_watch(previous)
        entry.key = key
        self._store[key] = entry
        if not self._defer_weak_registration:
            arm_watch(self, entry)
        if entry.value is not None:
            self._policy.admit(entry, priority)

    def set_manually(self, key: Hashable, entry: Entry) -> None:
        """Store *entry* without admission or a reclamation watch."""
        self._adopt(entry)
        entry.key = key
        self._store[key] = entry

    def delete(self, key: Hashable) -> bool:
        """Remove *key*.

        Returns:
            ``True`` if a mapping existed, ``False`` otherwise.
        """
        entry = self._store.pop(key, None)
        if entry is None:
            return False
        self._policy.release(entry)
        disarm_watch(entry)
        logger.debug("Entry deleted", extra={"cache_key": repr(key)})
        return True

    def clear(self) -> int:
        """Reset the engine and drop every mapping.

        Entries are not released to the engine one by one; the reset
        discards their positions wholesale.  Their reclamation watches
        are detached.

        Returns:
            Number of mappings removed.
        """
        self._policy.reset()
        count = len(self._store)
        for entry in self._store.values():
            disarm_watch(entry)
        self._store.clear()
        logger.info("Cache cleared", extra={"entries_removed": count})
        return count

    def used(self, entry: Entry, priority: Optional[int] = None) -> None:
        """Signal a use of an entry obtained earlier, without a lookup.

        Raises:
            OwnershipError: If *entry* is not owned by this cache.
        """
        if entry.owner is not self:
            raise OwnershipError(f"Entry {entry.key!r} is not owned by this cache")
        if entry.value is None:
            value = entry.weak() if entry.weak is not None else None
            if value is None:
                return
            entry.value = value
            self._revivals += 1
        self._policy.touch(entry, priority)

    # ------------------------------------------------------------------
    # Engine and collector callbacks
    # ------------------------------------------------------------------

    def release(self, entry: Entry) -> None:
        """Let go of an entry the engine no longer retains.

        If the value is still reachable through the weak handle, only
        the strong hold is dropped and a reclamation watch is armed.
        Otherwise the key is removed, provided it still maps to *entry*.
        """
        value = entry.weak() if entry.weak is not None else None
        if value is not None:
            entry.value = None
            self._soft_demotions += 1
            arm_watch(self, entry)
            logger.debug("Entry soft-demoted", extra={"cache_key": repr(entry.key)})
        elif self._discard(entry.key, entry):
            self._evictions += 1
            logger.debug("Entry evicted", extra={"cache_key": repr(entry.key)})

    def reclaimed(self, key: Hashable, entry: Optional[Entry]) -> None:
        """Remove *key* once the collector has disposed of *entry*'s value."""
        if entry is None:
            return
        if self._discard(key, entry):
            self._reclaimed += 1
            logger.debug("Entry reclaimed", extra={"cache_key": repr(key)})

    def _discard(self, key: Hashable, entry: Entry) -> bool:
        if self._store.get(key) is not entry:
            return False
        del self._store[key]
        return True

    def _adopt(self, entry: Entry) -> None:
        owner = entry.owner
        if owner is None:
            entry.bind(self)
        elif owner is not self:
            raise OwnershipError(f"Entry {entry.key!r} belongs to another cache")

    # ------------------------------------------------------------------
    # Map reads
    # ------------------------------------------------------------------

    def __contains__(self, key: Hashable) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._store))

    def keys(self) -> List[Hashable]:
        return list(self._store)

    def items(self) -> List[Tuple[Hashable, Entry]]:
        """Snapshot of ``(key, entry)`` pairs."""
        return list(self._store.items())

    @property
    def size(self) -> int:
        """Current number of map slots."""
        return len(self._store)

    def stats(self) -> CacheStats:
        """Return aggregate cache statistics."""
        total = self._hits + self._misses
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            hit_rate=self._hits / total if total > 0 else 0.0,
            revivals=self._revivals,
            soft_demotions=self._soft_demotions,
            evictions=self._evictions,
            reclaimed=self._reclaimed,
            entry_count=len(self._store),
        )

    def __repr__(self) -> str:
        return f"WeakLRUCache(size={len(self._store)}, policy={type(self._policy).__name__})"
