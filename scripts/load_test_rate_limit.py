#!/usr/bin/env python3
"""Load test script: demonstrates the sign-in rate limit.

RUN:  python scripts/load_test_rate_limit.py

Sends TOTAL_REQUESTS sign-in attempts to POST /auth in rapid succession
and prints how many were answered (200/401) vs. throttled (429).

Prerequisites:
  - The API must be running: uvicorn credservice.main:app --port 8000

This script is educational, not a production load testing tool.
For real load testing, use tools like locust, k6, or wrk.
"""

from __future__ import annotations

import time

import httpx

BASE_URL = "http://localhost:8000"
TOTAL_REQUESTS = 20
WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


def main() -> None:
    print("Rate Limit Load Test")
    print("=" * 50)
    print(f"Target: {BASE_URL}/auth")
    print(f"Total requests: {TOTAL_REQUESTS}")
    print()

    with httpx.Client(base_url=BASE_URL, timeout=10) as client:
        results: dict[int, int] = {}
        retry_after: str | None = None
        start = time.monotonic()

        for i in range(TOTAL_REQUESTS):
            resp = client.post(
                "/auth",
                json={"walletAddress": WALLET, "signature": f"load-test-signature-{i}"},
            )
            results[resp.status_code] = results.get(resp.status_code, 0) + 1
            if resp.status_code == 429 and retry_after is None:
                retry_after = resp.headers.get("Retry-After")

        elapsed = time.monotonic() - start

        print(f"Results after {TOTAL_REQUESTS} requests ({elapsed:.2f}s):")
        print("─" * 40)

        throttled = results.get(429, 0)
        for code, count in sorted(results.items()):
            label = "Throttled" if code == 429 else "Answered"
            print(f"  {label:<9}({code}): {count:>4}")

        print()
        print("Window: 5 attempts per 15 minutes per client address (default)")
        print()

        if throttled > 0:
            print("Rate limiting is working correctly.")
            print(f"Throttled responses carry Retry-After: {retry_after}s")
        else:
            print("WARNING: No requests were throttled.")
            print("Check AUTH_RATE_LIMIT_MAX and AUTH_RATE_LIMIT_WINDOW_SECONDS.")


if __name__ == "__main__":
    main()
