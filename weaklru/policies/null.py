"""
Null policy: no retention.

Every admission and every use hands the entry straight back to its
cache for release, so weakly-observable values are held only through
their weak handle and everything else is dropped on insert.
"""

from typing import Optional

from weaklru.entry import Entry, evicted_position
from weaklru.policies.base import BasePolicy


class NullPolicy(BasePolicy):
    """Eviction policy that disables strong retention entirely."""

    def admit(self, entry: Entry, priority: Optional[int] = None) -> None:
        self._check_owner(entry)
        self._evict(entry)

    def touch(self, entry: Entry, priority: Optional[int] = None) -> None:
        self._check_owner(entry)
        self._evict(entry)

    def release(self, entry: Entry) -> None:
        entry.position = evicted_position(entry.position)

    def reset(self) -> None:
        pass
