"""
Resolve slugs recorded by write_load.py against a running Minify server.

    python read_load.py --count 15000 --concurrency 200

Redirects are not followed; a healthy run is all 307s. Latency percentiles
are measured per request.
"""
import argparse
import asyncio
import json
import random
import statistics
import time
from collections import Counter

import httpx


def _slugs(path: str):
    with open(path, encoding="utf-8") as fh:
        return [json.loads(line)["slug"] for line in fh if line.strip()]


async def run(args, slugs):
    statuses: Counter = Counter()
    latencies = []
    sem = asyncio.Semaphore(args.concurrency)
    limits = httpx.Limits(max_connections=args.concurrency)

    async with httpx.AsyncClient(base_url=args.base, limits=limits, follow_redirects=False) as client:

        async def resolve():
            async with sem:
                start = time.perf_counter()
                try:
                    resp = await client.get(f"/{random.choice(slugs)}", timeout=10)
                except httpx.HTTPError as exc:
                    statuses[type(exc).__name__] += 1
                    return
                latencies.append((time.perf_counter() - start) * 1000.0)
            statuses[resp.status_code] += 1

        await asyncio.gather(*(resolve() for _ in range(args.count)))
    return statuses, latencies


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--base", default="http://127.0.0.1:8000")
    parser.add_argument("--in", dest="slugs_file", default="links_created.jsonl")
    parser.add_argument("--count", type=int, default=15000)
    parser.add_argument("--concurrency", type=int, default=200)
    args = parser.parse_args()

    slugs = _slugs(args.slugs_file)
    if not slugs:
        raise SystemExit(f"{args.slugs_file} has no slugs; run write_load.py first")

    started = time.perf_counter()
    statuses, latencies = asyncio.run(run(args, slugs))
    elapsed = time.perf_counter() - started

    print(f"{args.count} resolves in {elapsed:.2f}s ({args.count / elapsed:.0f} req/s)")
    if len(latencies) >= 2:
        cuts = statistics.quantiles(latencies, n=100)
        print(f"  p50={cuts[49]:.1f}ms p95={cuts[94]:.1f}ms max={max(latencies):.1f}ms")
    for key, n in sorted(statuses.items(), key=lambda kv: str(kv[0])):
        print(f"  {key}: {n}")


if __name__ == "__main__":
    main()
