"""
CLI entry point for weaklru.

Usage:
    python main.py simulate --keys 20000 --capacity 1024 --reuse 0.3
    python main.py simulate --policy sweep --hold 0.5
    python main.py config
"""

import argparse
import gc
import json
import random
import sys

from weaklru import WeakLRUCache
from weaklru.config import configure_logging, get_settings
from weaklru.policies import POLICY_NAMES


class Payload:
    """Stand-in for a cached object; weakly referenceable."""

    def __init__(self, index: int) -> None:
        self.index = index


def cmd_simulate(args):
    """Run a synthetic workload and print cache statistics."""
    rng = random.Random(args.seed)
    cache = WeakLRUCache(capacity=args.capacity, eviction_policy=args.policy)
    held = []

    for i in range(args.keys):
        payload = Payload(i)
        cache.set_value(i, payload)
        if rng.random() < args.hold:
            held.append(payload)
        del payload
        if i and rng.random() < args.reuse:
            cache.get_value(rng.randrange(i))

    gc.collect()
    result = {"cache": cache.stats().model_dump()}
    if hasattr(cache.policy, "stats"):
        result["policy"] = cache.policy.stats()
    result["externally_held"] = len(held)
    print(json.dumps(result, indent=2))


def cmd_config(args):
    """Print the effective settings."""
    print(json.dumps(get_settings().to_dict(), indent=2))


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="weaklru - weak-backed LRFU object cache"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable package logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # simulate
    p_sim = subparsers.add_parser("simulate", help="Run a synthetic workload")
    p_sim.add_argument("--keys", type=int, default=20000)
    p_sim.add_argument("--capacity", type=int, default=None)
    p_sim.add_argument("--policy", choices=POLICY_NAMES, default=None)
    p_sim.add_argument("--reuse", type=float, default=0.2, help="Chance of re-reading an older key")
    p_sim.add_argument("--hold", type=float, default=0.1, help="Fraction of values kept alive externally")
    p_sim.add_argument("--seed", type=int, default=0)

    # config
    subparsers.add_parser("config", help="Show effective settings")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.verbose:
        configure_logging()

    commands = {
        "simulate": cmd_simulate,
        "config": cmd_config,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
