"""
Shared fixtures: an in-memory ledger implementing the LedgerClient
operations, and funded test accounts.
"""

import asyncio
import itertools
from dataclasses import dataclass
from typing import Optional

import pytest
from algosdk import account

from marketplay.accounts import Account
from marketplay.errors import ConfirmationTimeout
from marketplay.fixed_price import FixedPriceMarketplace
from marketplay.settlement import SettlementCoordinator


ASSET_ID = 42
ONE_ALGO = 1_000_000


@dataclass
class FakeLeg:
    kind: str  # "pay" | "axfer"
    sender: str
    receiver: str
    amount: int
    asset_id: Optional[int] = None
    note: Optional[str] = None
    group: Optional[str] = None


@dataclass
class FakeSignedLeg:
    leg: FakeLeg
    signer: str


class FakeLedger:
    """
    In-memory ledger.

    Confirmed groups move balances and holdings; any failure leaves
    state untouched, like a rejected group on chain.
    """

    def __init__(self):
        self.balances: dict[str, int] = {}
        self.holdings: dict[tuple[str, int], int] = {}
        self.submitted: list[list[FakeSignedLeg]] = []
        self.registrations: list[tuple[str, int]] = []
        self.pending: dict[str, list[FakeSignedLeg]] = {}
        self.round = 1000
        self.fail_submit: Optional[Exception] = None
        self.fail_register: Optional[Exception] = None
        self.timeout = False
        self._tx_ids = itertools.count(1)
        self._group_ids = itertools.count(1)

    # ── helpers for tests ──

    def fund(self, address: str, amount: int) -> None:
        self.balances[address] = self.balances.get(address, 0) + amount

    def give_asset(self, address: str, asset_id: int, amount: int = 1) -> None:
        self.holdings[(address, asset_id)] = self.holdings.get((address, asset_id), 0) + amount

    def holding_amount(self, address: str, asset_id: int) -> Optional[int]:
        return self.holdings.get((address, asset_id))

    # ── LedgerClient ──

    async def query_holding(self, address, asset_id):
        await asyncio.sleep(0)
        amount = self.holdings.get((address, asset_id))
        if amount is None:
            return None
        return {"asset-id": asset_id, "amount": amount, "is-frozen": False}

    async def query_balance(self, address):
        await asyncio.sleep(0)
        return self.balances.get(address, 0)

    async def register_for_asset(self, acct, asset_id):
        await asyncio.sleep(0)
        if self.fail_register is not None:
            raise self.fail_register
        self.registrations.append((acct.address, asset_id))
        self.holdings.setdefault((acct.address, asset_id), 0)
        return f"OPTIN-{acct.address[:6]}-{asset_id}"

    async def build_payment(self, sender, receiver, amount, note=None):
        return FakeLeg("pay", sender, receiver, amount, note=note)

    async def build_asset_transfer(self, sender, receiver, asset_id, amount):
        return FakeLeg("axfer", sender, receiver, amount, asset_id=asset_id)

    async def group_legs(self, legs):
        group = f"G{next(self._group_ids)}"
        for leg in legs:
            leg.group = group
        return list(legs)

    async def authorize(self, leg, signer_secret):
        signer = account.address_from_private_key(signer_secret)
        if signer != leg.sender:
            raise RuntimeError(f"logic eval error: {signer} cannot sign for {leg.sender}")
        return FakeSignedLeg(leg, signer)

    async def submit(self, authorized_legs):
        await asyncio.sleep(0)
        if self.fail_submit is not None:
            raise self.fail_submit
        tx_id = f"TX{next(self._tx_ids)}"
        self.submitted.append(list(authorized_legs))
        self.pending[tx_id] = list(authorized_legs)
        return tx_id

    async def await_confirmation(self, submission_id, max_rounds):
        await asyncio.sleep(0)
        if self.timeout:
            raise ConfirmationTimeout(submission_id, max_rounds)
        for signed in self.pending.pop(submission_id):
            leg = signed.leg
            if leg.kind == "pay":
                self.balances[leg.sender] = self.balances.get(leg.sender, 0) - leg.amount
                self.balances[leg.receiver] = self.balances.get(leg.receiver, 0) + leg.amount
            else:
                key_from = (leg.sender, leg.asset_id)
                key_to = (leg.receiver, leg.asset_id)
                self.holdings[key_from] -= leg.amount
                self.holdings[key_to] = self.holdings.get(key_to, 0) + leg.amount
        self.round += 1
        return {"confirmed-round": self.round, "txn": {"txid": submission_id}}

    async def pending_transaction_info(self, tx_id):
        return {"confirmed-round": self.round, "txid": tx_id}


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def seller(ledger):
    acct = Account.generate()
    ledger.fund(acct.address, 10 * ONE_ALGO)
    ledger.give_asset(acct.address, ASSET_ID)
    return acct


@pytest.fixture
def buyer(ledger):
    acct = Account.generate()
    ledger.fund(acct.address, 10 * ONE_ALGO)
    return acct


@pytest.fixture
def royalty_payee():
    return Account.generate()


@pytest.fixture
def coordinator(ledger):
    return SettlementCoordinator(ledger, max_rounds=4)


@pytest.fixture
def marketplace(ledger, coordinator):
    return FixedPriceMarketplace(ledger, coordinator)
