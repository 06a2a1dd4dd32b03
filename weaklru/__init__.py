"""Weak-backed LRFU object cache.

Bounds retained memory with a generational multi-tier eviction engine,
falling back to weak references for evicted values so they stay
retrievable while anything else keeps them alive.
"""

import logging

from weaklru.entry import Entry
from weaklru.exceptions import ConfigurationError, OwnershipError, WeakLRUException
from weaklru.policies import (
    EvictionEngine,
    NullPolicy,
    SweepConfig,
    SweepPolicy,
    TieredPromotionPolicy,
    build_policy,
)
from weaklru.store import CacheStats, GetMode, WeakLRUCache

__version__ = "0.1.0"

# Library convention: no handlers unless the application configures them.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "CacheStats",
    "ConfigurationError",
    "Entry",
    "EvictionEngine",
    "GetMode",
    "NullPolicy",
    "OwnershipError",
    "SweepConfig",
    "SweepPolicy",
    "TieredPromotionPolicy",
    "WeakLRUCache",
    "WeakLRUException",
    "build_policy",
]
