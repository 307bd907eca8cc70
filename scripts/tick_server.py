#!/usr/bin/env python3
"""Run local tick servers to try the checker without real worlds.

Each port answers every probe byte with 9 bytes at the next tick boundary.

Usage examples:
  # Two fake worlds on 43601 and 43602 with a 600 ms tick
  python scripts/tick_server.py --ports 43601,43602

  # A world that accepts connections but never answers
  python scripts/tick_server.py --ports 43603 --silent

Point the checker at it with an empty domain suffix:
  WORLDPING_DOMAIN_SUFFIX= WORLDPING_PLAIN_PORT=43601 worldping --single
  Enter a world: localhost
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List

# Ensure src is importable when running from a checkout
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from worldping.probe.tick_server import TickServer  # noqa: E402
from worldping.utils.logging_config import setup_logging  # noqa: E402


async def start_servers(host: str, ports: List[int], tick_ms: float, silent: bool) -> None:
    servers = [TickServer(host, port, tick_ms=tick_ms, silent=silent) for port in ports]
    for server in servers:
        await server.start()
        print(f"listening on {host}:{server.port} (tick {tick_ms:g} ms{', silent' if silent else ''})")
    try:
        await asyncio.gather(*(s.serve_forever() for s in servers))
    finally:
        for s in servers:
            await s.stop()


def main() -> None:
    parser = argparse.ArgumentParser(description="Local tick-driven probe server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host (default 127.0.0.1)")
    parser.add_argument("--ports", required=True, help="Comma-separated port list, e.g. 43601,43602")
    parser.add_argument("--tick-ms", type=float, default=600.0, help="Tick length in ms (default 600)")
    parser.add_argument("--silent", action="store_true", help="Accept probes but never answer")
    parser.add_argument("--log-level", default="INFO", help="Log level (default INFO)")
    args = parser.parse_args()

    setup_logging(level=args.log_level, component="tick_server")
    ports = [int(p.strip()) for p in args.ports.split(",") if p.strip()]
    try:
        asyncio.run(start_servers(args.host, ports, args.tick_ms, args.silent))
    except KeyboardInterrupt:
        print("\nshutting down...")


if __name__ == "__main__":
    main()
