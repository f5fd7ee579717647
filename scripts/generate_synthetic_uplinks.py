#!/usr/bin/env python3
"""
Synthetic ChirpStack uplink generator for the sensor ingest service.

- Builds realistic "up" event bodies for a handful of soil and weather devices.
- Optionally injects edge cases: duplicate deliveries, string-encoded numbers,
  unknown sensor keys, a missing devEui, a bad timestamp and an uplink with no
  decoded payload.
- Either POSTs the events to a running ingress or writes them as JSON lines.

Usage:
  python scripts/generate_synthetic_uplinks.py --count 50 --include-edge-cases \
    --url http://localhost:8080/

  python scripts/generate_synthetic_uplinks.py --count 20 --output data/uplinks.jsonl
"""

from __future__ import annotations

import argparse
import copy
import json
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List

import httpx
import numpy as np

DEVICES = [
    {"devEui": "2CF7F1C0530004B2", "deviceName": "field-a-soil-1", "applicationName": "soil-sensors"},
    {"devEui": "2CF7F1C0530004B3", "deviceName": "field-a-soil-2", "applicationName": "soil-sensors"},
    {"devEui": "A84041000181C4F1", "deviceName": "field-b-weather", "applicationName": "weather"},
]

APPLICATION_IDS = {
    "soil-sensors": "0b4f6a4e-9c7e-4c3b-a2f4-bd8b3b9a8f10",
    "weather": "5d2e1c90-7a44-4f0f-9a61-0c3e2b7f6d21",
}


def synth_parsed(application: str, rng: np.random.Generator) -> Dict[str, float]:
    """Decoded payload values for one uplink."""
    if application == "soil-sensors":
        return {
            "soil-moisture": round(float(rng.normal(35, 8)), 1),
            "soil-temperature": round(float(rng.normal(21, 4)), 1),
            "soil-ec": round(float(rng.uniform(0.2, 2.5)), 2),
        }
    return {
        "air-temperature": round(float(rng.normal(24, 6)), 1),
        "humidity": round(float(np.clip(rng.normal(55, 15), 0, 100)), 1),
        "precipitation": round(float(rng.exponential(0.4)), 2),
        "wind-speed": round(float(rng.gamma(2.0, 1.5)), 1),
        "solar-radiation": round(float(rng.uniform(0, 900)), 0),
    }


def synth_uplink(device: Dict[str, str], time: datetime, rng: np.random.Generator) -> Dict:
    application = device["applicationName"]
    body = {
        "deduplicationId": str(uuid.UUID(bytes=rng.bytes(16))),
        "time": time.isoformat().replace("+00:00", "Z"),
        "deviceInfo": {
            "tenantId": "52f14cd4-c6f1-4fbd-8f87-4025e1d49242",
            "devEui": device["devEui"],
            "deviceName": device["deviceName"],
            "applicationId": APPLICATION_IDS[application],
            "applicationName": application,
        },
        "fPort": 3,
        "object": {"parsed": synth_parsed(application, rng)},
    }
    if rng.random() < 0.3:
        body["batteryLevel"] = round(float(rng.uniform(20, 100)), 1)
    return body


def synth_edge_cases(base: Dict) -> List[Dict]:
    """Variants of one valid uplink that exercise the normalizer."""
    duplicate = copy.deepcopy(base)

    string_values = copy.deepcopy(base)
    string_values["deduplicationId"] = str(uuid.uuid4())
    string_values["object"]["parsed"] = {"soil-moisture": "41.5", "soil-temperature": "n/a"}
    string_values["batteryLevel"] = "87"

    unknown_keys = copy.deepcopy(base)
    unknown_keys["deduplicationId"] = str(uuid.uuid4())
    unknown_keys["object"]["parsed"]["leaf-wetness"] = 0.3

    missing_eui = copy.deepcopy(base)
    missing_eui["deduplicationId"] = str(uuid.uuid4())
    del missing_eui["deviceInfo"]["devEui"]

    bad_time = copy.deepcopy(base)
    bad_time["deduplicationId"] = str(uuid.uuid4())
    bad_time["time"] = "yesterday"

    no_payload = copy.deepcopy(base)
    no_payload["deduplicationId"] = str(uuid.uuid4())
    del no_payload["object"]

    return [duplicate, string_values, unknown_keys, missing_eui, bad_time, no_payload]


def generate(count: int, include_edge_cases: bool, seed: int = 42) -> List[Dict]:
    rng = np.random.default_rng(seed)
    start = datetime.now(timezone.utc).replace(microsecond=0) - timedelta(minutes=15 * count)

    events = []
    for i in range(count):
        device = DEVICES[i % len(DEVICES)]
        events.append(synth_uplink(device, start + timedelta(minutes=15 * i), rng))

    if include_edge_cases and events:
        events.extend(synth_edge_cases(events[0]))
    return events


def post_events(url: str, events: List[Dict], event_type: str) -> None:
    with httpx.Client(timeout=10.0) as client:
        for body in events:
            response = client.post(url, params={"event": event_type}, json=body)
            response.raise_for_status()
    print(f"✓ Posted {len(events)} {event_type} events to {url}")


def write_jsonl(path: Path, events: List[Dict]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        for body in events:
            f.write(json.dumps(body) + "\n")
    print(f"✓ Wrote {len(events)} events to {path}")


def main():
    parser = argparse.ArgumentParser(description="Generate synthetic ChirpStack uplink events")
    parser.add_argument("--count", type=int, default=30, help="Number of valid uplinks")
    parser.add_argument("--include-edge-cases", action="store_true",
                        help="Also emit duplicates and malformed events")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--event", default="up", help="Value for the ?event= query parameter")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--url", help="Ingress URL to POST events to")
    target.add_argument("--output", type=Path, help="JSON lines file to write events to")
    args = parser.parse_args()

    events = generate(args.count, args.include_edge_cases, args.seed)

    if args.url:
        post_events(args.url, events, args.event)
    else:
        write_jsonl(args.output, events)


if __name__ == "__main__":
    main()
