#!/usr/bin/env python3
"""Send a signed sample Sesami booking event to a running server.

Usage:
    # Create a booking for tomorrow:
    python scripts/send_test_webhook.py --url http://localhost:8000

    # Then cancel it:
    python scripts/send_test_webhook.py --event appointment.cancelled --booking-id test_booking_1736500000000

Requires:
    SESAMI_WEBHOOK_SECRET environment variable when the server verifies signatures
"""

import argparse
import json
import os
import sys

import httpx

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from app.api.v1.endpoints.webhooks import build_sample_booking  # noqa: E402
from app.schemas.webhook import WebhookEvent  # noqa: E402
from app.services.webhook_security import SIGNATURE_HEADER, compute_signature  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Send a sample Sesami booking webhook")
    parser.add_argument("--url", default="http://localhost:8000", help="Base URL of the API")
    parser.add_argument(
        "--event",
        default=WebhookEvent.CREATED.value,
        choices=[event.value for event in WebhookEvent],
    )
    parser.add_argument("--booking-id", help="Reuse an existing external booking id")
    parser.add_argument("--secret", default=os.environ.get("SESAMI_WEBHOOK_SECRET", ""))
    args = parser.parse_args()

    payload = build_sample_booking()
    payload["event"] = args.event
    if args.booking_id:
        payload["booking"]["id"] = args.booking_id
    if args.event == WebhookEvent.CANCELLED.value:
        payload["booking"]["status"] = "cancelled"

    body = json.dumps(payload).encode("utf-8")
    headers = {"Content-Type": "application/json"}
    if args.secret:
        headers[SIGNATURE_HEADER] = compute_signature(body, args.secret)
    else:
        print("WARNING: no secret given, sending unsigned")

    url = f"{args.url.rstrip('/')}/api/v1/webhooks/bookings"
    print(f"POST {url} ({args.event}, booking {payload['booking']['id']})")
    try:
        resp = httpx.post(url, content=body, headers=headers, timeout=10.0)
    except httpx.HTTPError as e:
        print(f"ERROR: {e}")
        return 1

    print(f"{resp.status_code}: {json.dumps(resp.json(), indent=2)}")
    return 0 if resp.is_success else 1


if __name__ == "__main__":
    sys.exit(main())
