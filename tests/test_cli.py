"""
Tests for marketplay/cli.py
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from marketplay import cli
from marketplay.accounts import Account
from marketplay.errors import ExternalFailure


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "usage: marketplay" in capsys.readouterr().out


def test_parser():
    args = cli.build_parser().parse_args(["--network", "localnet", "swap", "--asset", "42", "--price", "5"])
    assert args.network == "localnet"
    assert args.cmd == "swap"
    assert args.asset == 42
    assert args.price == 5.0
    assert args.amount == 1


def test_new_account(capsys):
    assert cli.main(["--network", "localnet", "new-account"]) == 0
    out = capsys.readouterr().out
    assert "Address" in out
    assert "Mnemonic" in out


def test_load_account_missing_env(monkeypatch):
    monkeypatch.delenv("MARKETPLAY_MNEMONIC", raising=False)
    with pytest.raises(SystemExit):
        cli.load_account()


def test_load_account(monkeypatch):
    acct = Account.generate()
    monkeypatch.setenv("MARKETPLAY_MNEMONIC", acct.mnemonic)
    assert cli.load_account() == acct


def test_errors_exit_non_zero(monkeypatch, capsys):
    failing = AsyncMock(side_effect=ExternalFailure("node unreachable"))
    with patch.dict(cli.COMMANDS, {"balance": failing}):
        assert cli.main(["--network", "localnet", "balance", "--address", "ADDR"]) == 1
    assert "external_failure: node unreachable" in capsys.readouterr().out


@pytest.mark.parametrize("price, expected", [("0.29", 290_000), ("5", 5_000_000), ("1.000001", 1_000_001)])
def test_swap_converts_price_to_exact_microalgos(monkeypatch, price, expected):
    seller, buyer = Account.generate(), Account.generate()
    monkeypatch.setenv("MARKETPLAY_MNEMONIC", seller.mnemonic)
    monkeypatch.setenv("MARKETPLAY_BUYER_MNEMONIC", buyer.mnemonic)

    assets = MagicMock()
    assets.return_value.opt_in = AsyncMock(return_value="OPTIN")
    coordinator = MagicMock()
    coordinator.return_value.atomic_swap = AsyncMock(return_value="TX1")

    with patch.object(cli, "get_ledger_client", return_value=MagicMock()), \
         patch.object(cli, "AssetManager", assets), \
         patch.object(cli, "SettlementCoordinator", coordinator):
        assert cli.main(["--network", "localnet", "swap", "--asset", "42", "--price", price]) == 0

    coordinator.return_value.atomic_swap.assert_awaited_once_with(buyer, seller, 42, 1, expected)
