"""vidsearch - video meta-search

Simple CLI for running one search and watching results arrive.
"""

import argparse
import asyncio
import sys

from vidsearch.api.deps import Runtime
from vidsearch.config import settings
from vidsearch.engines.catalog import build_default_engines
from vidsearch.engines.http_client import shutdown_shared_http_client
from vidsearch.errors import InvalidQueryError


async def run_search(query: str, page: int = 1, engines: list[str] | None = None, limit: int = 0):
    """Run the query and print events as they stream in."""
    runtime = Runtime.build(build_default_engines(), settings)
    service = runtime.search_service()

    try:
        parsed = service.parse(query, page=page, engines=engines)
    except InvalidQueryError as e:
        print(f"[!] {e.message}")
        return 2

    print(f"Search: {parsed.text} (page {parsed.page})")
    print(f"Engines: {', '.join(parsed.engines) or 'none'}")
    print("-" * 50)

    shown = 0
    try:
        async for event in service.stream(parsed):
            event_type = event.event.value
            data = event.data

            if event_type == "result":
                shown += 1
                if not limit or shown <= limit:
                    duration = data.get("duration") or "--:--"
                    print(f"  [{data['source']}] {data['title'][:70]} ({duration})")
                    print(f"      {data['url']}")

            elif event_type == "engine_done":
                if data.get("skipped"):
                    print(f"[-] {data['engine']} skipped (circuit open)")
                else:
                    print(f"[+] {data['engine']} done: {data.get('results', 0)} results")

            elif event_type == "error":
                print(f"[!] {data.get('engine', 'search')}: {data.get('error', 'Unknown error')}")

            elif event_type == "done":
                print(f"\n[*] Search Complete!")
                print(f"   Results: {data.get('results', 0)}")
                print(f"   Engines used: {len(data.get('engines_used', []))}")
                print(f"   Engines failed: {', '.join(data.get('engines_failed', [])) or 'none'}")
                print(f"   Time: {data.get('search_time_ms')}ms")
    finally:
        await shutdown_shared_http_client()
    return 0


def main():
    parser = argparse.ArgumentParser(description="vidsearch video meta-search")
    parser.add_argument("--query", "-q", required=True, help="Search query, bangs allowed (!ph !rt ...)")
    parser.add_argument("--page", "-p", type=int, default=1, help="Results page")
    parser.add_argument("--engines", "-e", help="Comma-separated engine names (ignored when bangs are used)")
    parser.add_argument("--limit", "-n", type=int, default=0, help="Print at most this many results")

    args = parser.parse_args()
    engines = [name.strip() for name in args.engines.split(",")] if args.engines else None

    sys.exit(asyncio.run(run_search(args.query, args.page, engines, args.limit)))


if __name__ == "__main__":
    main()
