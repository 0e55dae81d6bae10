"""Tests for the find-mints command line tool."""

import json
import sys
from contextlib import asynccontextmanager

import pytest
from unittest.mock import AsyncMock, patch

from pool_tracker.constants import DEFAULT_TOKEN_MINT, NATIVE_MINT
from pool_tracker.models import PoolMintReport
from pool_tracker.scripts import find_mints_cli


@pytest.fixture
def report(pool_address):
    return PoolMintReport(
        pool=pool_address,
        owner="AMMprogram",
        data_size=324,
        token_accounts=[{"account": "vaultA", "mint": NATIVE_MINT, "amount": 10}],
        transaction_mints={"sig0000000000000000": [DEFAULT_TOKEN_MINT]},
    )


@asynccontextmanager
async def fake_client(config=None):
    yield object()


def test_display_report(report, capsys):
    find_mints_cli.display_report(report)

    out = capsys.readouterr().out
    assert "Owner Program: AMMprogram" in out
    assert "Mint:    " + NATIVE_MINT in out
    assert out.rstrip().endswith(sorted([NATIVE_MINT, DEFAULT_TOKEN_MINT])[-1])


@pytest.mark.asyncio
async def test_main_json_output(report, pool_address, capsys):
    discover = AsyncMock(return_value=report)

    with patch.object(sys, "argv", ["find-mints", pool_address, "--json"]), \
            patch.object(find_mints_cli, "get_solana_client", fake_client), \
            patch.object(find_mints_cli, "discover_pool_mints", discover):
        await find_mints_cli.main()

    body = json.loads(capsys.readouterr().out)
    assert body["pool"] == pool_address
    assert body["token_accounts"][0]["mint"] == NATIVE_MINT
    assert discover.await_args.args[1] == pool_address


@pytest.mark.asyncio
async def test_main_reports_errors(pool_address, capsys):
    discover = AsyncMock(side_effect=LookupError("Pool account not found"))

    with patch.object(sys, "argv", ["find-mints", pool_address]), \
            patch.object(find_mints_cli, "get_solana_client", fake_client), \
            patch.object(find_mints_cli, "discover_pool_mints", discover):
        with pytest.raises(SystemExit) as exc_info:
            await find_mints_cli.main()

    assert exc_info.value.code == 1
    assert "Pool account not found" in capsys.readouterr().err
