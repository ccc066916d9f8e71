#!/usr/bin/env python3
"""Print a run's ledger and follow it live.

Replays the ledger from --after, then keeps the push stream open and
reconnects on failure until interrupted. With --poll, fetches one bounded
page for every given run in a single batch request and exits.

Usage:
    tail-ledger.py <run_id> [--after N] [--once] [--json]
    tail-ledger.py --poll <run_id> [<run_id> ...] [--limit N]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path

# Ensures `import gateway_ledger` works when invoked as `python3 scripts/tail-ledger.py`.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import aiohttp

from gateway_ledger.follow import LedgerFollower
from gateway_ledger.formatting import format_entry_line
from gateway_ledger.gateway import GatewayClient, GatewayConfig, GatewayError, LedgerCursor, LedgerEntry


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Tail a gateway run ledger")
    parser.add_argument("run_ids", nargs="+", metavar="run_id", help="run id(s) to read")
    parser.add_argument("--url", default=None, help="gateway base URL (default: GATEWAY_URL)")
    parser.add_argument("--token", default=None, help="bearer token (default: GATEWAY_AUTH_TOKEN)")
    parser.add_argument("--after", type=int, default=0, help="start after this cursor")
    parser.add_argument("--limit", type=int, default=200, help="entries per poll request")
    parser.add_argument(
        "--poll",
        action="store_true",
        help="fetch one page per run with a single batch request, then exit",
    )
    parser.add_argument("--once", action="store_true", help="do not reconnect when the stream ends")
    parser.add_argument("--json", action="store_true", help="print entries as JSON lines")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def _printer(as_json: bool, run_id: str | None = None):
    def _print(entry: LedgerEntry) -> None:
        if as_json:
            payload = entry.to_dict()
            if run_id:
                payload = {"run_id": run_id, **payload}
            print(json.dumps(payload, ensure_ascii=False, default=str), flush=True)
        else:
            prefix = f"[{run_id}] " if run_id else ""
            print(prefix + format_entry_line(entry), flush=True)

    return _print


async def _poll(client: GatewayClient, args: argparse.Namespace) -> int:
    runs = [LedgerCursor(run_id=rid, after=args.after) for rid in args.run_ids]
    async with aiohttp.ClientSession() as session:
        pages = await client.get_ledger_batch(session, runs, limit=args.limit)
    for cursor in runs:
        page = pages.get(cursor.run_id)
        if page is None:
            continue
        show = _printer(args.json, cursor.run_id if len(runs) > 1 else None)
        for entry in page.items:
            show(entry)
        print(f"# {cursor.run_id} next_after={page.next_after}", file=sys.stderr)
    return 0


async def _follow(client: GatewayClient, args: argparse.Namespace) -> int:
    if len(args.run_ids) != 1:
        print("Error: follow mode takes exactly one run id (use --poll for several)", file=sys.stderr)
        return 2

    follower = LedgerFollower(
        client,
        args.run_ids[0],
        _printer(args.json),
        after=args.after,
        replay_limit=args.limit,
        reconnect=not args.once,
    )

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, follower.cancel)
    except (NotImplementedError, RuntimeError):
        pass

    async with aiohttp.ClientSession() as session:
        cursor = await follower.run(session)
    print(f"# {cursor.run_id} after={cursor.after}", file=sys.stderr)
    return 0


async def main(argv: list[str]) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    client = GatewayClient(GatewayConfig(server_url=args.url, auth_token=args.token))
    try:
        if args.poll:
            return await _poll(client, args)
        return await _follow(client, args)
    except (GatewayError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    try:
        raise SystemExit(asyncio.run(main(sys.argv[1:])))
    except KeyboardInterrupt:
        raise SystemExit(130)
