"""Construction of eviction policies from names or settings."""

import logging
from typing import Optional, Union

from weaklru.exceptions import ConfigurationError
from weaklru.policies.base import EvictionEngine
from weaklru.policies.null import NullPolicy
from weaklru.policies.sweep import SweepPolicy
from weaklru.policies.tiered import DEFAULT_CAPACITY, TieredPromotionPolicy

logger = logging.getLogger(__name__)

POLICY_NAMES = ("tiered", "null", "disabled", "sweep")

PolicySpec = Union[EvictionEngine, str, bool, None]


def build_policy(policy: PolicySpec, capacity: Optional[int] = None) -> EvictionEngine:
    """Resolve *policy* into an eviction engine instance.

    Args:
        policy: An engine instance (returned unchanged), a policy name
            from :data:`POLICY_NAMES`, or ``False`` for ``"disabled"``.
        capacity: Tier slot count used when building a tiered policy.

    Returns:
        The eviction engine.

    Raises:
        ConfigurationError: For unknown names or invalid capacity.
    """
    if policy is False:
        policy = "disabled"
    if isinstance(policy, str):
        name = policy.strip().lower()
        if name == "tiered":
            return TieredPromotionPolicy(DEFAULT_CAPACITY if capacity is None else capacity)
        if name in ("null", "disabled"):
            return NullPolicy()
        if name == "sweep":
            return SweepPolicy()
        raise ConfigurationError(
            f"Unknown eviction policy {policy!r}; expected one of {', '.join(POLICY_NAMES)}"
        )
    if isinstance(policy, EvictionEngine):
        return policy
    raise ConfigurationError(f"Unsupported eviction policy: {policy!r}")
