# scripts/test/simulate_scan.py
"""Send test scans to the backend, the way a gate kiosk or the info desk would."""

import argparse
import requests

BACKEND_URL = "http://127.0.0.1:8080/api/v1"


def _headers(api_key):
    return {"X-API-Key": api_key} if api_key else {}


def _show(label, resp):
    icon = "✅" if resp.ok else "❌"
    print(f"{icon} {label} → HTTP {resp.status_code}: {resp.json()}")


def enroll(registration_id, name, api_key):
    resp = requests.post(f"{BACKEND_URL}/registrants",
                         json={"registration_id": registration_id, "display_name": name},
                         headers=_headers(api_key), timeout=10)
    _show(f"enroll {registration_id}", resp)


def scan(registration_id, zone, mode, scanner, api_key):
    resp = requests.post(f"{BACKEND_URL}/attendance/{registration_id}/scan",
                         json={"zone_id": zone, "mode": mode, "scanner_id": scanner},
                         headers=_headers(api_key), timeout=10)
    _show(f"scan {registration_id} @ {zone} ({mode})", resp)


def batch_exit(zone, api_key):
    resp = requests.post(f"{BACKEND_URL}/attendance/batch-exit",
                         json={"zone_id": zone, "scanner_id": "simulator"},
                         headers=_headers(api_key), timeout=30)
    _show(f"batch exit {zone or 'ALL'}", resp)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulate attendance scans for testing")
    parser.add_argument("--action", default="scan", choices=["enroll", "scan", "batch-exit"])
    parser.add_argument("--id", default="REG-0001", help="Registration id")
    parser.add_argument("--name", default="Test Attendee")
    parser.add_argument("--zone", default="hall-a")
    parser.add_argument("--mode", default="AUTO", choices=["ENTER_ONLY", "EXIT_ONLY", "AUTO"])
    parser.add_argument("--scanner", default="SIM-GATE-1")
    parser.add_argument("--url", default=None, help="Override backend base URL")
    parser.add_argument("--api-key", default=None)
    args = parser.parse_args()

    if args.url:
        BACKEND_URL = args.url.rstrip("/")

    if args.action == "enroll":
        enroll(args.id, args.name, args.api_key)
    elif args.action == "batch-exit":
        batch_exit(args.zone if args.zone != "ALL" else None, args.api_key)
    else:
        scan(args.id, args.zone, args.mode, args.scanner, args.api_key)
