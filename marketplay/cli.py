"""
╔══════════════════════════════════════════════════════════════════╗
║       MarketPlay: command line front end                        ║
║                                                                  ║
║  Usage:                                                          ║
║    marketplay new-account                                        ║
║    marketplay balance --address ABC...                           ║
║    marketplay pay --to ABC... --algos 1.5                        ║
║    marketplay create-nft --name "Drop #1" --unit DROP1           ║
║    marketplay swap --asset 12345678 --price 5                    ║
║    marketplay deploy-contract approval.teal clear.teal           ║
╚══════════════════════════════════════════════════════════════════╝
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from algosdk import util

from marketplay.accounts import Account, AccountManager
from marketplay.assets import AssetManager
from marketplay.client import get_ledger_client
from marketplay.config import MNEMONIC_ENV_VAR
from marketplay.contracts import ContractManager
from marketplay.errors import MarketplayError
from marketplay.payments import PaymentManager
from marketplay.settlement import SettlementCoordinator

BUYER_MNEMONIC_ENV_VAR = "MARKETPLAY_BUYER_MNEMONIC"


# ─────────────────────────────────────────────
#  ACCOUNTS
# ─────────────────────────────────────────────
def load_account(env_var: str = MNEMONIC_ENV_VAR) -> Account:
    """
    Load an Algorand account from a mnemonic stored in an env variable.
    Exits with a hint if the variable is unset.
    """
    words = os.environ.get(env_var)
    if not words:
        print(f"\n⚠  No {env_var} set. Create an account with `marketplay new-account`,")
        print(f"   fund it, then set: export {env_var}='<your mnemonic>'\n")
        sys.exit(2)
    return Account.from_mnemonic(words)


def cmd_new_account(args, ledger) -> None:
    acct = AccountManager(ledger).create_account()
    print(f"\n👛 New account")
    print(f"   Address  : {acct.address}")
    print(f"   Mnemonic : {acct.mnemonic}")
    print(f"\n   Fund this address at: https://bank.testnet.algorand.network/")
    print(f"   Then set: export {MNEMONIC_ENV_VAR}='<your mnemonic>'\n")


async def cmd_balance(args, ledger) -> None:
    address = args.address or load_account().address
    balance = await AccountManager(ledger).get_balance(address)
    print(f"💰 {address}: {balance / 1_000_000} ALGO ({balance} microAlgos)")


# ─────────────────────────────────────────────
#  PAYMENTS / ASSETS
# ─────────────────────────────────────────────
async def cmd_pay(args, ledger) -> None:
    sender = load_account()
    print(f"💸 Sending {args.algos} ALGO to {args.to}...")
    tx_id = await PaymentManager(ledger).send_algos(sender, args.to, args.algos)
    print(f"✅ Payment sent! Tx: {tx_id}")


async def cmd_create_nft(args, ledger) -> None:
    creator = load_account()
    print(f"🎨 Minting NFT: '{args.name}'...")
    asset_id = await AssetManager(ledger).create_nft(creator, args.name, args.unit, args.url)
    print(f"✅ Minted! ASA ID: {asset_id}")


async def cmd_opt_in(args, ledger) -> None:
    acct = load_account()
    await AssetManager(ledger).opt_in(acct, args.asset)
    print(f"✅ Opted into ASA {args.asset}")


async def cmd_swap(args, ledger) -> None:
    seller = load_account()
    buyer = load_account(BUYER_MNEMONIC_ENV_VAR)
    price_micro = util.algos_to_microalgos(args.price)

    await AssetManager(ledger).opt_in(buyer, args.asset)
    print(f"⇄ Swapping {args.amount} of ASA {args.asset} for {args.price} ALGO...")
    tx_id = await SettlementCoordinator(ledger).atomic_swap(
        buyer, seller, args.asset, args.amount, price_micro,
    )
    print(f"✅ Swap complete! Tx: {tx_id}")


# ─────────────────────────────────────────────
#  CONTRACTS
# ─────────────────────────────────────────────
async def cmd_deploy_contract(args, ledger) -> None:
    creator = load_account()
    print("🔨 Compiling and deploying contract...")
    app_id = await ContractManager(ledger).deploy_app(
        creator,
        Path(args.approval).read_text(),
        Path(args.clear).read_text(),
    )
    print(f"✅ Contract deployed with App ID: {app_id}")


# ─────────────────────────────────────────────
#  CLI ENTRYPOINT
# ─────────────────────────────────────────────
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="marketplay",
        description="CLI for the MarketPlay Algorand marketplace SDK",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Signing accounts are read from {MNEMONIC_ENV_VAR}
(and {BUYER_MNEMONIC_ENV_VAR} for the buyer side of a swap).

Examples:
  # Atomic swap: buyer pays 5 ALGO, seller sends 1 unit of the ASA
  marketplay --network testnet swap --asset 12345678 --price 5

  # Deploy an application
  marketplay deploy-contract approval.teal clear.teal
""",
    )
    parser.add_argument("--network", default=None, help="mainnet | testnet | localnet")
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("new-account", help="Generate a new account")

    p_bal = sub.add_parser("balance", help="Show an account balance")
    p_bal.add_argument("--address", default=None)

    p_pay = sub.add_parser("pay", help="Send ALGO")
    p_pay.add_argument("--to",    required=True)
    p_pay.add_argument("--algos", type=float, required=True)

    p_nft = sub.add_parser("create-nft", help="Mint an NFT")
    p_nft.add_argument("--name", required=True)
    p_nft.add_argument("--unit", default="NFT")
    p_nft.add_argument("--url",  default="ipfs://placeholder/metadata.json")

    p_opt = sub.add_parser("opt-in", help="Opt into an ASA")
    p_opt.add_argument("--asset", type=int, required=True)

    p_swap = sub.add_parser("swap", help="Atomic ALGO ↔ ASA swap")
    p_swap.add_argument("--asset",  type=int,   required=True)
    p_swap.add_argument("--price",  type=float, required=True, help="Price in ALGO")
    p_swap.add_argument("--amount", type=int,   default=1)

    p_dep = sub.add_parser("deploy-contract", help="Deploy an application")
    p_dep.add_argument("approval", help="Approval TEAL file")
    p_dep.add_argument("clear",    help="Clear TEAL file")

    return parser


COMMANDS = {
    "balance": cmd_balance,
    "pay": cmd_pay,
    "create-nft": cmd_create_nft,
    "opt-in": cmd_opt_in,
    "swap": cmd_swap,
    "deploy-contract": cmd_deploy_contract,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        ledger = get_ledger_client(args.network)
        if args.cmd == "new-account":
            cmd_new_account(args, ledger)
        else:
            asyncio.run(COMMANDS[args.cmd](args, ledger))
    except MarketplayError as e:
        print(f"❌ {e.kind.value}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
