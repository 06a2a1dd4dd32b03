"""
Sweep policy: amortised usage decay shared by many caches.

Instead of moving entries on every access, each entry carries a usage
counter.  Admission sets it to full, a use ORs the full mark back in.
Every ``sweep_threshold`` operations a sweep is scheduled for the next
idle point (the running asyncio loop, or an injected scheduler); if
operations keep coming past ``force_threshold`` the sweep runs inline.

A sweep walks every registered cache once.  Entries whose usage has
decayed below ``retain_threshold`` are released to their cache
(soft-demoted, or dropped when nothing else holds the value), and
soft-demoted entries whose weak handle has died are dropped.  Usage
then decays by roughly a quarter plus half of the latest use mark.
"""

import asyncio
import logging
from dataclasses import asdict
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from weaklru.config import get_settings
from weaklru.entry import Entry, evicted_position, pinned_position
from weaklru.exceptions import ConfigurationError
from weaklru.policies.base import BasePolicy

logger = logging.getLogger(__name__)

FULL_USAGE = 0x10000

# A scheduler receives a zero-argument callback and returns a handle
# exposing ``cancel()`` (``asyncio.Handle``, ``threading.Timer``...).
Scheduler = Callable[[Callable[[], None]], Any]


class SweepConfig(BaseModel):
    """Configuration for :class:`SweepPolicy`.

    Attributes:
        sweep_threshold: Operations after which a deferred sweep is scheduled.
        force_threshold: Operations after which a sweep runs inline.
        retain_threshold: Usage below which an entry is released.
    """

    sweep_threshold: int = Field(default=2000, ge=1)
    force_threshold: int = Field(default=3000, ge=1)
    retain_threshold: int = Field(default=20000, ge=0)


class SweepPolicy(BasePolicy):
    """Usage-decay policy that may be shared by any number of caches.

    Args:
        config: Thresholds; defaults to the ``sweep`` settings section.
        schedule: Optional scheduler used to defer sweeps.  When omitted,
            sweeps are deferred with ``loop.call_soon`` if an asyncio
            loop is running, and otherwise wait for the force threshold.

    Raises:
        ConfigurationError: If the thresholds are invalid.
    """

    def __init__(
        self,
        config: Optional[SweepConfig] = None,
        schedule: Optional[Scheduler] = None,
    ) -> None:
        super().__init__()
        try:
            self._config = config or SweepConfig(**asdict(get_settings().sweep))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid sweep settings: {exc}") from exc
        if self._config.force_threshold <= self._config.sweep_threshold:
            raise ConfigurationError("force_threshold must exceed sweep_threshold")
        self._schedule = schedule
        self._operations: int = 0
        self._pending: Any = None
        self._sweeps: int = 0

    @property
    def config(self) -> SweepConfig:
        return self._config

    @property
    def pending(self) -> bool:
        """Whether a deferred sweep is waiting to run."""
        return self._pending is not None

    def register(self, cache: Any) -> None:
        """Add *cache* to the set of caches visited by each sweep."""
        self.attach(cache)

    # ------------------------------------------------------------------
    # Engine contract
    # ------------------------------------------------------------------

    def admit(self, entry: Entry, priority: Optional[int] = None) -> None:
        self._check_owner(entry)
        entry.usage = FULL_USAGE
        self._apply_priority(entry, priority)
        self._count_operation()

    def touch(self, entry: Entry, priority: Optional[int] = None) -> None:
        self._check_owner(entry)
        entry.usage |= FULL_USAGE
        self._apply_priority(entry, priority)
        if entry.value is None and entry.weak is not None:
            entry.value = entry.weak()

    def release(self, entry: Entry) -> None:
        entry.usage = 0
        entry.position = evicted_position(entry.position)

    def reset(self) -> None:
        self._cancel_pending()
        self._operations = 0

    # ------------------------------------------------------------------
    # Sweeping
    # ------------------------------------------------------------------

    def sweep(self) -> Dict[str, int]:
        """Decay usage across every registered cache.

        Returns:
            Counts of entries examined, released and found dead.
        """
        self._cancel_pending()
        self._operations = 0
        retain = self._config.retain_threshold
        examined = released = dead = 0

        for cache in list(self._caches):
            for _, entry in cache.items():
                examined += 1
                if entry.is_pinned:
                    continue
                usage = entry.usage
                if entry.value is None:
                    if entry.resolve() is None:
                        dead += 1
                        cache.release(entry)
                elif usage < retain:
                    released += 1
                    cache.release(entry)
                entry.usage = (usage >> 2) + ((usage & 0xFFFF) >> 1)

        self._sweeps += 1
        logger.info(
            "Sweep completed",
            extra={
                "caches": len(self._caches),
                "examined": examined,
                "released": released,
                "dead": dead,
            },
        )
        return {"examined": examined, "released": released, "dead": dead}

    def stats(self) -> Dict[str, Any]:
        return {
            "caches": len(self._caches),
            "operations": self._operations,
            "pending": self.pending,
            "sweeps": self._sweeps,
        }

    def _apply_priority(self, entry: Entry, priority: Optional[int]) -> None:
        if priority is None:
            return
        if priority < 0:
            entry.position = pinned_position(entry.position)
        else:
            entry.position = evicted_position(entry.position)

    def _count_operation(self) -> None:
        self._operations += 1
        if self._operations <= self._config.sweep_threshold:
            return
        if self._pending is None:
            self._pending = self._defer()
        if self._operations > self._config.force_threshold:
            self.sweep()

    def _defer(self) -> Any:
        if self._schedule is not None:
            return self._schedule(self._run_deferred)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        return loop.call_soon(self._run_deferred)

    def _run_deferred(self) -> None:
        self._pending = None
        self.sweep()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
