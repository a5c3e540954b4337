"""Scan for BLE peripherals the way a Scratch ``discover`` request does.

Usage:
    python examples/discover_peripherals.py --duration 10
    python examples/discover_peripherals.py --name-prefix "BBC micro:bit"
    python examples/discover_peripherals.py --service 0xf005 --all
"""

from __future__ import annotations

import argparse
import asyncio
from collections import Counter
from datetime import datetime

from scratchlink import BleakAdapter, Device, DiscoverFilter, DiscoveryEngine
from scratchlink.protocol import normalize_uuid


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _service(value: str) -> str:
    return normalize_uuid(int(value, 16) if value.lower().startswith("0x") else value)


async def discover(duration: float, filters: list[DiscoverFilter], print_all: bool) -> None:
    """Run one discovery scan and print every reported peripheral."""
    seen: Counter[str] = Counter()

    def on_device(device: Device) -> None:
        seen[device.peripheral_id] += 1
        if not print_all and seen[device.peripheral_id] > 1:
            return
        print(f"[{_timestamp()}] {device.name} ({device.peripheral_id}) rssi={device.rssi}")

    adapter = BleakAdapter()
    await adapter.enable()
    engine = DiscoveryEngine(adapter)

    print(f"Discovering with {len(filters) or 'no'} filter(s)...")
    if duration > 0:
        print(f"Duration: {duration:.1f}s")
    else:
        print("Duration: unlimited (Ctrl+C to stop)")

    await engine.discover("example", filters, on_device)
    try:
        if duration > 0:
            await asyncio.sleep(duration)
        else:
            while True:
                await asyncio.sleep(1)
    finally:
        await engine.stop()

    print("\nSummary:")
    print(f"  devices_seen={len(seen)}")
    for address, count in sorted(seen.items()):
        print(f"  {address}: reports={count}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Discover BLE peripherals with Scratch filters.")
    parser.add_argument("--duration", type=float, default=10.0,
                        help="Scan duration in seconds (0 = run until Ctrl+C). Default: 10")
    parser.add_argument("--name", help="Exact local name to match")
    parser.add_argument("--name-prefix", help="Local name prefix to match")
    parser.add_argument("--service", action="append", default=[],
                        help="Required service UUID (repeatable; 0x180f, 180f or full form)")
    parser.add_argument("--all", action="store_true",
                        help="Print every report (default: first report per device).")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    filters = []
    if args.name or args.name_prefix or args.service:
        filters.append(DiscoverFilter(
            name=args.name,
            name_prefix=args.name_prefix,
            services=frozenset(_service(s) for s in args.service),
        ))
    try:
        asyncio.run(discover(duration=args.duration, filters=filters, print_all=args.all))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
