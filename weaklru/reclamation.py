"""
Weak-handle construction and reclamation watches.

A reclamation watch is a ``weakref.finalize`` armed on the cached value.
When the garbage collector disposes of the value, the watch calls back
into the owning cache with the entry's key so the stale map slot can be
removed.  The callback only holds weak references to the cache and the
entry; the key itself is the only strong payload that can outlive them.

Delivery timing is up to the interpreter: immediate under reference
counting, deferred until a cyclic collection for values caught in
reference cycles, and never at interpreter shutdown (``atexit`` is
disabled on every watch).
"""

import logging
import weakref
from typing import Any, Hashable, Optional

from weaklru.entry import Entry

logger = logging.getLogger(__name__)


def make_weak_handle(value: Any) -> Optional[weakref.ref]:
    """Return a weak reference to *value*, or ``None`` if it cannot be weakly observed."""
    try:
        return weakref.ref(value)
    except TypeError:
        return None


def arm_watch(cache: Any, entry: Entry) -> bool:
    """Arm a reclamation watch on the value behind *entry*.

    Returns:
        ``True`` if a new watch was armed, ``False`` if one is already
        armed or the entry has no live weakly-observable value.
    """
    if entry.watch is not None and entry.watch.alive:
        return False
    if entry.weak is None:
        return False
    target = entry.weak()
    if target is None:
        return False
    watch = weakref.finalize(
        target, _on_reclaimed, weakref.ref(cache), entry.key, weakref.ref(entry)
    )
    watch.atexit = False
    entry.watch = watch
    return True


def disarm_watch(entry: Entry) -> bool:
    """Detach *entry*'s reclamation watch so it never fires.

    Returns:
        ``True`` if a live watch was detached.
    """
    watch = entry.watch
    entry.watch = None
    if watch is None:
        return False
    return watch.detach() is not None


def _on_reclaimed(
    cache_ref: "weakref.ref[Any]",
    key: Hashable,
    entry_ref: "weakref.ref[Entry]",
) -> None:
    cache = cache_ref()
    if cache is None:
        return
    cache.reclaimed(key, entry_ref())
