"""
marketplay/ledger.py

The ledger client the marketplace talks to.

LedgerClient is the narrow interface the registry and the settlement
coordinator depend on. AlgodLedgerClient implements it on top of
py-algorand-sdk: legs are unsigned `algosdk.transaction.Transaction`s,
authorized legs are `SignedTransaction`s, and the submission id is the
transaction id of the first transaction in the group.

algod calls block, so they run on the default executor and the event
loop stays free while waiting on the network.
"""

import asyncio
import functools
import logging
from typing import Any, Optional, Protocol, Sequence

from algosdk import error
from algosdk.transaction import (
    AssetOptInTxn,
    AssetTransferTxn,
    PaymentTxn,
    SignedTransaction,
    SuggestedParams,
    Transaction,
    assign_group_id,
    wait_for_confirmation,
)
from algosdk.v2client import algod

from marketplay.accounts import Account
from marketplay.config import CONFIRMATION_ROUNDS
from marketplay.errors import ConfirmationTimeout, ExternalFailure

logger = logging.getLogger("marketplay.ledger")


class LedgerClient(Protocol):
    """Operations the marketplace needs from a ledger."""

    async def query_holding(self, address: str, asset_id: int) -> Optional[dict]:
        """Return the asset holding of `address`, or None if not opted in."""

    async def query_balance(self, address: str) -> int:
        """Return the spendable balance of `address` in microAlgos."""

    async def register_for_asset(self, account: Account, asset_id: int) -> str:
        """Opt `account` into `asset_id`. Idempotent."""

    async def build_payment(
        self, sender: str, receiver: str, amount: int, note: Optional[str] = None,
    ) -> Any: ...

    async def build_asset_transfer(
        self, sender: str, receiver: str, asset_id: int, amount: int,
    ) -> Any: ...

    async def group_legs(self, legs: Sequence[Any]) -> list: ...

    async def authorize(self, leg: Any, signer_secret: str) -> Any: ...

    async def submit(self, authorized_legs: Sequence[Any]) -> str: ...

    async def await_confirmation(self, submission_id: str, max_rounds: int) -> dict:
        """Block until confirmed; raise ConfirmationTimeout past `max_rounds`."""

    async def pending_transaction_info(self, tx_id: str) -> dict:
        """Pending or confirmed transaction info for `tx_id`."""


class AlgodLedgerClient:
    """LedgerClient backed by an algod node.

    Also exposes the algod-specific calls the account, asset, payment and
    contract managers need (suggested_params, account_info,
    send_and_confirm, compile_program).
    """

    def __init__(self, algod_client: algod.AlgodClient, confirmation_rounds: int = CONFIRMATION_ROUNDS):
        self.algod = algod_client
        self.confirmation_rounds = confirmation_rounds

    async def _run(self, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))
        except error.AlgodHTTPError as e:
            raise ExternalFailure(f"algod request failed: {e}", cause=e) from e

    # ─────────────────────────────────────────────
    #  QUERIES
    # ─────────────────────────────────────────────

    async def suggested_params(self) -> SuggestedParams:
        return await self._run(self.algod.suggested_params)

    async def account_info(self, address: str) -> dict:
        return await self._run(self.algod.account_info, address)

    async def query_holding(self, address: str, asset_id: int) -> Optional[dict]:
        def lookup():
            try:
                return self.algod.account_asset_info(address, asset_id)
            except error.AlgodHTTPError as e:
                if e.code == 404:
                    return None
                raise

        info = await self._run(lookup)
        if info is None:
            return None
        return info.get("asset-holding")

    async def query_balance(self, address: str) -> int:
        info = await self.account_info(address)
        return max(info.get("amount", 0) - info.get("min-balance", 0), 0)

    async def pending_transaction_info(self, tx_id: str) -> dict:
        return await self._run(self.algod.pending_transaction_info, tx_id)

    async def compile_program(self, source: str) -> dict:
        return await self._run(self.algod.compile, source)

    # ─────────────────────────────────────────────
    #  LEGS
    # ─────────────────────────────────────────────

    async def build_payment(
        self, sender: str, receiver: str, amount: int, note: Optional[str] = None,
    ) -> PaymentTxn:
        sp = await self.suggested_params()
        return PaymentTxn(
            sender=sender,
            sp=sp,
            receiver=receiver,
            amt=amount,
            note=note.encode() if note else None,
        )

    async def build_asset_transfer(
        self, sender: str, receiver: str, asset_id: int, amount: int,
    ) -> AssetTransferTxn:
        sp = await self.suggested_params()
        return AssetTransferTxn(
            sender=sender,
            sp=sp,
            receiver=receiver,
            amt=amount,
            index=asset_id,
        )

    async def group_legs(self, legs: Sequence[Transaction]) -> list[Transaction]:
        return assign_group_id(list(legs))

    async def authorize(self, leg: Transaction, signer_secret: str) -> SignedTransaction:
        return leg.sign(signer_secret)

    # ─────────────────────────────────────────────
    #  SUBMISSION
    # ─────────────────────────────────────────────

    async def submit(self, authorized_legs: Sequence[SignedTransaction]) -> str:
        return await self._run(self.algod.send_transactions, list(authorized_legs))

    async def await_confirmation(self, submission_id: str, max_rounds: int) -> dict:
        try:
            return await self._run(wait_for_confirmation, self.algod, submission_id, max_rounds)
        except error.ConfirmationTimeoutError as e:
            raise ConfirmationTimeout(submission_id, max_rounds) from e
        except error.TransactionRejectedError as e:
            raise ExternalFailure(f"Transaction {submission_id} rejected: {e}", cause=e) from e

    async def send_and_confirm(self, signed: SignedTransaction, max_rounds: int) -> dict:
        """Submit a single signed transaction and wait for it."""
        tx_id = await self.submit([signed])
        logger.debug(f"Submitted {tx_id}")
        return await self.await_confirmation(tx_id, max_rounds)

    async def register_for_asset(self, account: Account, asset_id: int) -> str:
        if await self.query_holding(account.address, asset_id) is not None:
            return ""
        sp = await self.suggested_params()
        signed = AssetOptInTxn(sender=account.address, sp=sp, index=asset_id).sign(account.private_key)
        await self.send_and_confirm(signed, self.confirmation_rounds)
        tx_id = signed.get_txid()
        logger.info(f"Opted {account.address[:8]}... into ASA {asset_id}: {tx_id}")
        return tx_id
