#!/usr/bin/env python3
"""Command line entry for the world latency checker.

Usage examples:
  - worldping                  # bisect every world in worlds.txt, 10 trials
  - worldping 20               # same with 20 trials
  - worldping --https 20       # probe port 443 instead of 43594
  - worldping --single         # prompt for worlds, verbose bisection
  - worldping -m 500           # prompt for worlds, measure tick length
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from typing import List, Optional

from worldping.app.report import format_summary
from worldping.config.settings import Settings
from worldping.config.worlds import Target, load_worlds
from worldping.measure.coordinator import BISECT, TICKS, FanOutCoordinator
from worldping.utils.logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="worldping",
        description="Measure round-trip latency and tick length of game worlds",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "-m", "--measure-ticks",
        action="store_true",
        help="Prompt for worlds and measure the server tick length",
    )
    mode.add_argument(
        "-s", "--single",
        action="store_true",
        help="Prompt for worlds and run a verbose bisection on each",
    )
    parser.add_argument(
        "--https", "--443",
        dest="secure",
        action="store_true",
        help="Probe the alternate port (443). No TLS is negotiated",
    )
    parser.add_argument(
        "--worlds",
        default=None,
        help="Path to the worlds file (default: worlds.txt)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level for diagnostics on stderr (default: WARNING)",
    )
    parser.add_argument(
        "trials",
        nargs="?",
        type=int,
        default=None,
        help="Number of trials per world",
    )
    return parser


def _trials(requested: Optional[int], default: int) -> int:
    if requested is None or requested < 1:
        return default
    return requested


def _prompt_loop(coordinator: FanOutCoordinator, trials: int) -> int:
    while True:
        try:
            world = input("Enter a world: ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        if not world:
            continue
        target = Target(identifier=world)
        outcome = asyncio.run(coordinator.measure(target, trials, progress=print))
        if outcome.failed:
            host = target.hostname(coordinator.settings.DOMAIN_SUFFIX)
            print(f"An error occurred while connecting to {host}. Try again.\n")


def _run_all(coordinator: FanOutCoordinator, targets: List[Target], trials: int) -> int:
    print(
        f"Measuring latency from {len(targets)} servers ({trials} trials) "
        f"on port {coordinator.port}..."
    )
    started = time.perf_counter()
    outcomes = asyncio.run(coordinator.run(targets, trials))
    elapsed = time.perf_counter() - started
    for outcome in outcomes:
        if outcome.failed:
            print(f"Failed to connect to world {outcome.target}: {outcome.error}")
    print(format_summary(outcomes, elapsed))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = Settings()
    setup_logging(level=args.log_level or cfg.LOG_LEVEL, component="cli")
    port = cfg.port_for(secure=args.secure)

    if args.measure_ticks:
        coordinator = FanOutCoordinator(cfg, port=port, algorithm=TICKS)
        return _prompt_loop(coordinator, _trials(args.trials, cfg.DEFAULT_TICK_TRIALS))

    coordinator = FanOutCoordinator(cfg, port=port, algorithm=BISECT)
    trials = _trials(args.trials, cfg.DEFAULT_TRIALS)
    if args.single:
        return _prompt_loop(coordinator, trials)

    worlds_file = args.worlds or cfg.WORLDS_FILE
    try:
        targets = load_worlds(worlds_file)
    except FileNotFoundError:
        print(
            f"Please create a file called '{worlds_file}' with a list of worlds "
            "you want to test, and try again."
        )
        return 1
    except ValueError as e:
        print(str(e))
        return 1
    return _run_all(coordinator, targets, trials)


if __name__ == "__main__":
    sys.exit(main())
