#!/usr/bin/env python3
"""Live telemetry watcher for a Bevvy controller.

Loads the device page once, then polls ``/values`` and prints every change
set the dashboard produces. Timeouts are counted but stay quiet, exactly as
they do on the page.

Configuration comes from ``BEVVY_BASE_URL``, ``BEVVY_POLL_INTERVAL`` and
``BEVVY_REQUEST_TIMEOUT``; command-line flags override them.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pybevvy import BevvyClient, BevvyConfig, BevvyError, Dashboard  # noqa: E402


@dataclass
class WatchStats:
    started_at: float
    updates: int = 0
    last_update_at: float | None = None


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Watch live telemetry from a Bevvy controller.")
    parser.add_argument("--url", help="Device base URL (default: BEVVY_BASE_URL or http://192.168.4.1).")
    parser.add_argument("--interval", type=float, help="Seconds between polls.")
    parser.add_argument("--timeout", type=float, help="Seconds before a poll is abandoned.")
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--html",
        action="store_true",
        help="Print the initial page HTML before watching.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    return parser.parse_args()


def _print_changes(stats: WatchStats, changes: dict[str, Any]) -> None:
    stats.updates += 1
    stats.last_update_at = time.time()
    for key, value in sorted(changes.items()):
        if key == "status":
            value = f"{value.text} ({value.css_class})"
        print(f"[watch] #{stats.updates} {key:<22}: {value}")


async def _watch(config: BevvyConfig, args: argparse.Namespace) -> WatchStats:
    stats = WatchStats(started_at=time.time())
    async with BevvyClient(config) as client:
        dashboard = Dashboard(client, on_change=lambda changes: _print_changes(stats, changes))
        page = await dashboard.load()
        if dashboard.info is None:
            raise BevvyError(page)
        info = dashboard.info
        print(f"[watch] {info.name or 'n/a'} - {info.product_name} v{info.formatted_version}")
        if args.html:
            print(page)

        async with dashboard:
            if args.duration > 0:
                await asyncio.sleep(args.duration)
                print(f"[watch] Reached --duration={args.duration}s, stopping.")
            else:
                await asyncio.Event().wait()
        state = dashboard.poller.state
        print(f"[watch] polls={state.polls} timeouts={state.timeouts} errors={state.errors}")
    return stats


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, Any] = {}
    if args.url:
        overrides["base_url"] = args.url
    if args.interval is not None:
        overrides["poll_interval"] = args.interval
    if args.timeout is not None:
        overrides["request_timeout"] = args.timeout

    try:
        config = BevvyConfig.from_env(**overrides)
        stats = asyncio.run(_watch(config, args))
    except KeyboardInterrupt:
        return 0
    except BevvyError as exc:
        print(f"[watch] Failed: {exc}", file=sys.stderr)
        return 2

    print(f"[watch] runtime_s={time.time() - stats.started_at:.1f} updates={stats.updates}")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
