#!/usr/bin/env python3
"""Interactive walkthrough of a channel bus.

Registers one channel with either a simulated producer or an HTTP JSON
producer, subscribes a printer, and invokes the channel a few times so the
loading/success/error phases are visible on stdout.

Examples:
    python scripts/demo_bus.py --invocations 3
    python scripts/demo_bus.py --fail
    python scripts/demo_bus.py --test-mode
    python scripts/demo_bus.py --url https://jsonplaceholder.typicode.com/todos/1
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import aiohttp  # noqa: E402

from channelbus import BusConfig, ChannelBus, ConcurrencyPolicy, phase_of  # noqa: E402
from channelbus.producers import http_json_producer  # noqa: E402

CHANNEL = "COUNTER_EVENT"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Channel bus walkthrough")
    parser.add_argument("--invocations", type=int, default=2, help="number of invocations")
    parser.add_argument("--delay", type=float, default=0.2, help="simulated producer latency (s)")
    parser.add_argument("--fail", action="store_true", help="make the simulated producer raise")
    parser.add_argument("--test-mode", action="store_true", help="enable the test-mode bypass")
    parser.add_argument(
        "--concurrency",
        choices=[policy.value for policy in ConcurrencyPolicy],
        default=ConcurrencyPolicy.RACE.value,
    )
    parser.add_argument("--parallel", action="store_true", help="fire all invocations at once")
    parser.add_argument("--url", help="fetch JSON from this URL instead of simulating")
    parser.add_argument("-v", "--verbose", action="store_true", help="DEBUG logging")
    return parser.parse_args(argv)


def _print_value(value: dict[str, Any]) -> None:
    print(f"[{phase_of(value).value:>7}] {json.dumps(value, sort_keys=True, default=str)}")


async def _run(args: argparse.Namespace) -> int:
    config = BusConfig.from_env(
        test_mode=args.test_mode,
        concurrency=args.concurrency,
        log_payloads=args.verbose,
    )
    bus = ChannelBus(config)

    async with aiohttp.ClientSession() as http:
        if args.url:
            bus.register_channel(
                CHANNEL,
                on_fetch=http_json_producer(http, args.url),
                on_response_transform=lambda raw: {"count": raw.get("id", 0), "source": args.url},
                default_value={"count": 0},
            )
        else:
            step = 0

            async def _simulate(*, user: str) -> dict[str, Any]:
                nonlocal step
                step += 1
                await asyncio.sleep(args.delay)
                if args.fail:
                    raise RuntimeError(f"simulated failure #{step}")
                return {"id": step, "userId": user, "timestamp": time.time()}

            bus.register_channel(
                CHANNEL,
                on_fetch=_simulate,
                on_response_transform=lambda raw: {
                    "count": raw["id"],
                    "userId": raw["userId"],
                    "timestamp": raw["timestamp"],
                    "action": "increment",
                },
                default_value={"count": 0, "userId": "", "action": "reset"},
            )

        unsubscribe = bus.subscribe(CHANNEL, _print_value)
        try:
            calls = [bus.invoke(CHANNEL, user=f"user{n}") for n in range(args.invocations)]
            if args.parallel:
                results = await asyncio.gather(*calls)
            else:
                results = [await call for call in calls]
        finally:
            unsubscribe()

    failed = [r for r in results if r.get("error") not in (False, None)]
    print(f"{len(results)} invocation(s), {len(failed)} error record(s)")
    print(f"final value: {json.dumps(bus.read(CHANNEL), sort_keys=True, default=str)}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
