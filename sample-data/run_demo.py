#!/usr/bin/env python3
"""
Hospital Wait Board — Filter & Counter Demo

Runs the visitor-facing pipeline on the sample hospitals:
  1. Browse: every hospital, ordered by name
  2. Nearby: hospitals within the default radius of a visitor
  3. Postal code: exact postal-code match
  4. Check-ins: a few self-check-ins and staff adjustments

Usage:
    python sample-data/run_demo.py [--lat 12.97 --lon 77.59] [--postal-code 560001]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from waitboard.algorithms import (
    AllMode,
    Coordinates,
    NearbyMode,
    PostalCodeMode,
    filter_and_sort,
    get_rules,
    wait_level,
)
from waitboard.api.store import MemoryStore

ROOT = Path(__file__).resolve().parent.parent


def print_hospitals(rows: list[dict]) -> None:
    if not rows:
        print("  (no hospitals)")
    for h in rows:
        dist = f"{h['distance_km']:>8.2f} km" if "distance_km" in h else " " * 11
        print(
            f"  {dist}  {h['name']:<32} waiting={h['waiting_count']:<3}"
            f" [{wait_level(h['waiting_count'])}]  {h.get('postal_code') or '-'}"
        )
    print()


def main():
    parser = argparse.ArgumentParser(description="Run the wait board demo on sample data")
    parser.add_argument("--lat", type=float, default=12.9716, help="Visitor latitude")
    parser.add_argument("--lon", type=float, default=77.5946, help="Visitor longitude")
    parser.add_argument("--postal-code", default="560001", help="Postal code to search")
    args = parser.parse_args()

    seed = ROOT / "sample-data" / "hospitals.json"
    if not seed.exists():
        print(f"Sample data not found: {seed}")
        sys.exit(1)

    store = MemoryStore.from_json(seed)
    snapshot = store.fetch_hospitals_with_waiting_counts()
    radius = get_rules().nearby_radius_km

    print()
    print("  Hospital Wait Board — Demo")
    print()

    print("=" * 65)
    print("STEP 1: ALL HOSPITALS")
    print("=" * 65)
    print_hospitals(filter_and_sort(snapshot, AllMode()))

    print("=" * 65)
    print(f"STEP 2: NEARBY ({radius:g} km of {args.lat}, {args.lon})")
    print("=" * 65)
    origin = Coordinates(latitude=args.lat, longitude=args.lon)
    print_hospitals(filter_and_sort(snapshot, NearbyMode(origin=origin, radius_km=radius)))

    print("=" * 65)
    print(f"STEP 3: POSTAL CODE {args.postal_code}")
    print("=" * 65)
    print_hospitals(filter_and_sort(snapshot, PostalCodeMode(code=args.postal_code)))

    print("=" * 65)
    print("STEP 4: CHECK-INS")
    print("=" * 65)
    target = snapshot[0]
    print(f"  {target['name']}: starting at {target['waiting_count']}")
    for delta in (1, 1, -1, 1):
        entry = store.adjust_waiting_count(target["id"], delta)
        print(f"    {delta:+d} → {entry.count}")
    print("=" * 65)


if __name__ == "__main__":
    main()
