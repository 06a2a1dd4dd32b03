"""Eviction engines (tiered promotion, null, sweep)."""

from weaklru.policies.base import BasePolicy, EvictionEngine
from weaklru.policies.factory import POLICY_NAMES, build_policy
from weaklru.policies.null import NullPolicy
from weaklru.policies.sweep import FULL_USAGE, SweepConfig, SweepPolicy
from weaklru.policies.tiered import (
    DEFAULT_CAPACITY,
    MAX_CAPACITY,
    TIER_COUNT,
    Tier,
    TieredPromotionPolicy,
)

__all__ = [
    "BasePolicy",
    "EvictionEngine",
    "POLICY_NAMES",
    "build_policy",
    "NullPolicy",
    "FULL_USAGE",
    "SweepConfig",
    "SweepPolicy",
    "DEFAULT_CAPACITY",
    "MAX_CAPACITY",
    "TIER_COUNT",
    "Tier",
    "TieredPromotionPolicy",
]
