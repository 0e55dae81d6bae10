#!/usr/bin/env python3
"""
CLI tool to find the token mints traded by a liquidity pool.

Usage:
    python -m pool_tracker.scripts.find_mints_cli [pool_address] [--json]
"""

import argparse
import asyncio
import json
import sys

from pool_tracker.config import get_pool_config, get_solana_config
from pool_tracker.mints import discover_pool_mints
from pool_tracker.models import PoolMintReport
from pool_tracker.solana_client import get_solana_client


def display_report(report: PoolMintReport) -> None:
    """Display a mint report in a human-readable format.

    Args:
        report: Result of the pool inspection
    """
    print(f"Pool Address: {report.pool}")
    print(f"Owner Program: {report.owner}")
    print(f"Data Size: {report.data_size} bytes\n")

    print(f"Token Accounts ({len(report.token_accounts)}):")
    if not report.token_accounts:
        print("  None found. The pool might use a different token program.")
    for i, account in enumerate(report.token_accounts, 1):
        print(f"  {i}. Account: {account['account']}")
        print(f"     Mint:    {account['mint']}")
        print(f"     Amount:  {account['amount']}")

    print("\nRecent Transactions:")
    for signature, mints in report.transaction_mints.items():
        print(f"  {signature[:16]}...")
        for mint in mints:
            print(f"     - {mint}")

    print("\nSet BASE_MINT and TOKEN_MINT to two of:")
    for mint in report.mints:
        print(f"  {mint}")


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Find the token mints of a pool")
    parser.add_argument("pool", nargs="?", default=None, help="Pool address (defaults to POOL_ID)")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args()

    pool = (args.pool or get_pool_config().pool_id).strip()
    solana_config = get_solana_config()
    if not args.json:
        print(f"\nFinding token mints for pool {pool}")
        print(f"RPC: {solana_config.rpc_url}\n")

    try:
        async with get_solana_client(solana_config) as client:
            report = await discover_pool_mints(client, pool)
    except Exception as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(report.model_dump(), indent=2))
    else:
        display_report(report)


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
