"""Smoke test: drive a real Sparkle session against a running backend.

Logs in, loads the discovery queue, passes on a handful of candidates, and
lists matches.  Nothing is liked, so no matches are created as a side effect.
Usage: python -m scripts.smoke_session --email ada@example.com --password secret1 [--base-url http://localhost:8000] [--swipes 3]
"""
import argparse
import asyncio
import sys
import time
from typing import Any

from sparkle.config import Settings
from sparkle.errors import SparkleError
from sparkle.session import SparkleSession

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_SWIPES = 3


async def run_smoke(base_url: str, email: str, password: str, swipes: int) -> dict[str, Any]:
    print(f"\n{'='*60}")
    print("Sparkle Session Smoke Test")
    print(f"Target: {base_url}")
    print(f"{'='*60}\n")

    results: dict[str, Any] = {"ok": False, "passed": 0, "timings": {}, "errors": []}
    settings = Settings(API_BASE_URL=base_url, COOKIE_JAR_PATH="")

    async with SparkleSession.create(settings=settings) as session:
        print("[1/3] Logging in...")
        start = time.perf_counter()
        try:
            user = await session.auth.login(email, password)
        except SparkleError as e:
            results["errors"].append(f"login: {e.message}")
            return results
        results["timings"]["login"] = time.perf_counter() - start
        print(f"  -> {user.name} (profile complete: {user.is_profile_complete})\n")

        print("[2/3] Loading discovery queue...")
        start = time.perf_counter()
        added = await session.discovery.load_candidates()
        results["timings"]["cards"] = time.perf_counter() - start
        print(f"  -> {added} candidates, state {session.discovery.state.value}")

        for _ in range(swipes):
            head = session.discovery.head
            if head is None:
                break
            if await session.discovery.pass_(head.id) is not None:
                results["passed"] += 1
        await session.discovery.wait_for_replenishment()
        print(f"  -> passed on {results['passed']}, {len(session.discovery.queue)} left\n")

        print("[3/3] Listing matches...")
        start = time.perf_counter()
        matches = await session.matches.refresh()
        results["timings"]["matches"] = time.perf_counter() - start
        print(f"  -> {len(matches)} matches\n")

        results["errors"].extend(session.notifier.errors)
        await session.logout()

    results["ok"] = not results["errors"]
    print(f"{'='*60}")
    for phase, seconds in results["timings"].items():
        print(f"{phase:<8} {seconds:.2f}s")
    if results["errors"]:
        print(f"\nErrors ({len(results['errors'])}):")
        for e in results["errors"]:
            print(f"  - {e}")
    print(f"{'='*60}\n")
    return results


def main():
    parser = argparse.ArgumentParser(description="Sparkle Session Smoke Test")
    parser.add_argument("--email", type=str, required=True, help="Account email")
    parser.add_argument("--password", type=str, required=True, help="Account password")
    parser.add_argument("--base-url", type=str, default=DEFAULT_BASE_URL, help="API base URL")
    parser.add_argument("--swipes", type=int, default=DEFAULT_SWIPES, help="Candidates to pass on")
    args = parser.parse_args()

    results = asyncio.run(run_smoke(args.base_url, args.email, args.password, args.swipes))
    if not results["ok"]:
        print("FAIL")
        sys.exit(1)
    print("PASS")


if __name__ == "__main__":
    main()
