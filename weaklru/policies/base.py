"""
Eviction engine contract for weaklru.

Provides the backend-agnostic :class:`EvictionEngine` Protocol plus a
small base class that handles cache attachment and ownership checks
for the built-in policies.
"""

import logging
import weakref
from typing import Any, Optional, Protocol, runtime_checkable

from weaklru.entry import Entry
from weaklru.exceptions import ConfigurationError, OwnershipError

logger = logging.getLogger(__name__)


@runtime_checkable
class EvictionEngine(Protocol):
    """Protocol for eviction policies.

    Any policy must implement admit, touch, release and reset.
    When a policy decides an entry should no longer be strongly held it
    calls ``entry.owner.release(entry)``.  Engines that need to know
    their caches may also define ``attach(cache)``, which the cache
    calls once on construction.
    """

    def admit(self, entry: Entry, priority: Optional[int] = None) -> None:
        """Start tracking a freshly inserted entry."""
        ...

    def touch(self, entry: Entry, priority: Optional[int] = None) -> None:
        """Record a use of *entry*."""
        ...

    def release(self, entry: Entry) -> None:
        """Forget *entry*'s positional state without evicting it."""
        ...

    def reset(self) -> None:
        """Drop all positional history."""
        ...


class BasePolicy:
    """Shared attachment bookkeeping for the built-in policies.

    Caches are tracked in a ``weakref.WeakSet`` so a policy never keeps a
    cache alive.  Policies with ``single_owner = True`` refuse to serve
    more than one live cache.
    """

    single_owner: bool = False

    def __init__(self) -> None:
        self._caches: "weakref.WeakSet[Any]" = weakref.WeakSet()

    def attach(self, cache: Any) -> None:
        """Bind *cache* to this policy.

        Raises:
            ConfigurationError: If the policy is single-owner and already
                attached to a different live cache.
        """
        if self.single_owner and any(other is not cache for other in self._caches):
            raise ConfigurationError(
                f"{type(self).__name__} is already attached to another cache"
            )
        self._caches.add(cache)

    @property
    def caches(self) -> list:
        return list(self._caches)

    def owns(self, entry: Entry) -> bool:
        owner = entry.owner
        return owner is not None and owner in self._caches

    def _check_owner(self, entry: Entry) -> None:
        if not self.owns(entry):
            raise OwnershipError(
                f"Entry {entry.key!r} is not owned by a cache attached to "
                f"{type(self).__name__}"
            )

    def _evict(self, entry: Entry) -> None:
        """Hand a fully evicted entry back to its cache."""
        owner = entry.owner
        if owner is not None:
            owner.release(entry)
