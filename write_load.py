"""
Create links against a running Minify server and record their slugs.

    python write_load.py --count 2000 --concurrency 100 --custom-share 0.2

A share of requests asks for a custom slug drawn from a small pool, so the
run also exercises the 409 path when two creators want the same slug. The
summary counts responses by status code.
"""
import argparse
import asyncio
import json
import random
import time
from collections import Counter

import httpx

CUSTOM_POOL = [f"load-{n:03d}" for n in range(200)]


def _payload(i: int, custom_share: float) -> dict:
    body = {"url": f"https://example.com/load/{i}?r={random.randrange(10**6)}"}
    if random.random() < custom_share:
        body["custom_slug"] = random.choice(CUSTOM_POOL)
    return body


async def run(args) -> Counter:
    statuses: Counter = Counter()
    sem = asyncio.Semaphore(args.concurrency)
    limits = httpx.Limits(max_connections=args.concurrency)

    async with httpx.AsyncClient(base_url=args.base, auth=(args.user, args.password), limits=limits) as client:
        with open(args.out, "w", encoding="utf-8") as out:

            async def create(i: int):
                async with sem:
                    try:
                        resp = await client.post("/links", json=_payload(i, args.custom_share), timeout=10)
                    except httpx.HTTPError as exc:
                        statuses[type(exc).__name__] += 1
                        return
                statuses[resp.status_code] += 1
                if resp.status_code == 201:
                    out.write(json.dumps({"slug": resp.json()["slug"]}) + "\n")

            await asyncio.gather(*(create(i) for i in range(args.count)))
    return statuses


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--base", default="http://127.0.0.1:8000")
    parser.add_argument("--user", default="minify_demo")
    parser.add_argument("--password", default="minify_demo")
    parser.add_argument("--count", type=int, default=2000)
    parser.add_argument("--concurrency", type=int, default=100)
    parser.add_argument("--custom-share", type=float, default=0.0)
    parser.add_argument("--out", default="links_created.jsonl")
    args = parser.parse_args()

    started = time.perf_counter()
    statuses = asyncio.run(run(args))
    elapsed = time.perf_counter() - started

    print(f"{args.count} create requests in {elapsed:.2f}s ({args.count / elapsed:.0f} req/s)")
    for key, n in sorted(statuses.items(), key=lambda kv: str(kv[0])):
        print(f"  {key}: {n}")


if __name__ == "__main__":
    main()
