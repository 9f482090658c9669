"""
marketplay/settlement.py

Atomic (all-or-nothing) settlement of multi-party transaction groups.

A marketplace purchase is settled as one group:
    1. Buyer  → Seller          payment of the price
    2. Seller → Buyer           transfer of 1 unit of the asset
    3. Buyer  → Royalty payee   royalty payment (only if owed)

Either every leg is committed or none is; atomicity comes from the
ledger's grouped-transaction primitive. Each leg is signed by its own
sender, matched by position.

Every execution is tracked as a Settlement moving through:

    BUILDING → GROUPED → AUTHORIZED → SUBMITTED → CONFIRMED
                                                → TIMED_OUT
    (any stage)                                 → FAILED
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Sequence

from algosdk import constants, encoding

from marketplay.accounts import Account
from marketplay.config import CONFIRMATION_ROUNDS
from marketplay.errors import (
    AuthorizationMismatch,
    ConfirmationTimeout,
    ExternalFailure,
    InvalidArgument,
    InvalidState,
    MarketplayError,
)
from marketplay.ledger import LedgerClient

logger = logging.getLogger("marketplay.settlement")

ROYALTY_NOTE = "Royalty payment"

# Minimum fee per transaction in microAlgos (0.001 ALGO)
MIN_FEE = constants.MIN_TXN_FEE


class SettlementState(Enum):
    BUILDING = "building"
    GROUPED = "grouped"
    AUTHORIZED = "authorized"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


_TRANSITIONS: dict[SettlementState, set[SettlementState]] = {
    SettlementState.BUILDING: {SettlementState.GROUPED, SettlementState.FAILED},
    SettlementState.GROUPED: {SettlementState.AUTHORIZED, SettlementState.FAILED},
    SettlementState.AUTHORIZED: {SettlementState.SUBMITTED, SettlementState.FAILED},
    SettlementState.SUBMITTED: {
        SettlementState.CONFIRMED,
        SettlementState.FAILED,
        SettlementState.TIMED_OUT,
    },
    SettlementState.CONFIRMED: set(),
    SettlementState.FAILED: set(),
    SettlementState.TIMED_OUT: set(),
}


@dataclass
class Settlement:
    """Progress record of one atomic group execution."""
    id: str
    leg_count: int
    state: SettlementState = SettlementState.BUILDING
    tx_id: Optional[str] = None
    confirmed_round: Optional[int] = None
    error: Optional[MarketplayError] = None
    history: list[SettlementState] = field(default_factory=lambda: [SettlementState.BUILDING])
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def advance(self, target: SettlementState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidState(
                f"Invalid settlement transition: {self.state.value} → {target.value}"
            )
        self.state = target
        self.history.append(target)

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.state]


def leg_count_for(royalty_amount: int) -> int:
    """Number of transactions in a purchase group."""
    return 3 if royalty_amount > 0 else 2


def _require_address(address: str, role: str) -> None:
    if not isinstance(address, str) or not encoding.is_valid_address(address):
        raise InvalidArgument(f"Invalid {role} address: {address}")


class SettlementCoordinator:
    """
    Builds, signs, submits and confirms atomic transaction groups.

    Args:
        ledger:     a LedgerClient
        max_rounds: rounds to wait for confirmation before giving up
    """

    def __init__(self, ledger: LedgerClient, max_rounds: int = CONFIRMATION_ROUNDS):
        if max_rounds <= 0:
            raise InvalidArgument(f"max_rounds must be positive, got: {max_rounds}")
        self.ledger = ledger
        self.max_rounds = max_rounds
        self.settlements: list[Settlement] = []

    # ─────────────────────────────────────────────
    #  MARKETPLACE PURCHASE
    # ─────────────────────────────────────────────

    async def execute_atomic_exchange(
        self,
        buyer: Account,
        seller: Account,
        asset_id: int,
        price: int,
        royalty_recipient: Optional[str] = None,
        royalty_amount: Optional[int] = None,
    ) -> str:
        """
        Buyer payment + seller asset transfer + optional royalty payment,
        settled as a single group.

        Returns:
            Transaction id of the group (id of its first transaction)
        """
        if not isinstance(price, int) or price <= 0:
            raise InvalidArgument(f"Price must be a positive integer, got: {price}")
        if royalty_amount is not None and royalty_amount < 0:
            raise InvalidArgument(f"Royalty amount cannot be negative, got: {royalty_amount}")
        if royalty_amount and royalty_recipient is None:
            raise InvalidArgument("Royalty amount given without a royalty recipient")
        _require_address(buyer.address, "buyer")
        _require_address(seller.address, "seller")
        if royalty_recipient is not None:
            _require_address(royalty_recipient, "royalty recipient")

        legs = [
            await self.ledger.build_payment(buyer.address, seller.address, price),
            await self.ledger.build_asset_transfer(seller.address, buyer.address, asset_id, 1),
        ]
        authorizers = [buyer, seller]

        if royalty_recipient and royalty_amount and royalty_amount > 0:
            legs.append(
                await self.ledger.build_payment(
                    buyer.address, royalty_recipient, royalty_amount, note=ROYALTY_NOTE,
                )
            )
            authorizers.append(buyer)

        tx_id = await self.execute_group(legs, authorizers)

        royalty_info = f" + {royalty_amount} royalty" if royalty_amount else ""
        logger.info(
            f"Marketplace purchase completed: asset {asset_id} for {price} microAlgos{royalty_info}"
        )
        return tx_id

    async def atomic_swap(
        self,
        buyer: Account,
        seller: Account,
        asset_id: int,
        asset_amount: int,
        payment_amount: int,
    ) -> str:
        """Swap `asset_amount` units of an asset for `payment_amount` microAlgos."""
        if payment_amount <= 0:
            raise InvalidArgument("Payment amount must be positive")
        if asset_amount <= 0:
            raise InvalidArgument("Asset amount must be positive")
        _require_address(buyer.address, "buyer")
        _require_address(seller.address, "seller")

        legs = [
            await self.ledger.build_payment(buyer.address, seller.address, payment_amount),
            await self.ledger.build_asset_transfer(seller.address, buyer.address, asset_id, asset_amount),
        ]
        tx_id = await self.execute_group(legs, [buyer, seller])
        logger.info(
            f"Atomic swap completed: {asset_amount} of asset {asset_id} ↔ {payment_amount} microAlgos"
        )
        return tx_id

    # ─────────────────────────────────────────────
    #  GENERIC GROUPS
    # ─────────────────────────────────────────────

    async def execute_group(self, legs: Sequence[Any], authorizers: Sequence[Account]) -> str:
        """
        Execute an n-party atomic group (bundles, splits ...).

        `authorizers[i]` signs `legs[i]`.

        Raises:
            InvalidArgument:       no legs
            AuthorizationMismatch: len(authorizers) != len(legs)
            ConfirmationTimeout:   not confirmed within max_rounds
            ExternalFailure:       rejected by the ledger
        """
        if not legs:
            raise InvalidArgument("No transactions provided")
        if len(legs) != len(authorizers):
            raise AuthorizationMismatch(len(legs), len(authorizers))

        settlement = Settlement(id=uuid.uuid4().hex, leg_count=len(legs))
        self.settlements.append(settlement)

        try:
            grouped = await self.ledger.group_legs(legs)
            settlement.advance(SettlementState.GROUPED)

            signed = [
                await self.ledger.authorize(leg, signer.private_key)
                for leg, signer in zip(grouped, authorizers)
            ]
            settlement.advance(SettlementState.AUTHORIZED)

            settlement.tx_id = await self.ledger.submit(signed)
            settlement.advance(SettlementState.SUBMITTED)

            receipt = await self.ledger.await_confirmation(settlement.tx_id, self.max_rounds)
        except ConfirmationTimeout as e:
            self._fail(settlement, e, SettlementState.TIMED_OUT)
            raise
        except MarketplayError as e:
            self._fail(settlement, e, SettlementState.FAILED)
            raise
        except Exception as e:
            wrapped = ExternalFailure(f"Atomic group execution failed: {e}", cause=e)
            self._fail(settlement, wrapped, SettlementState.FAILED)
            raise wrapped from e

        settlement.confirmed_round = receipt.get("confirmed-round")
        settlement.advance(SettlementState.CONFIRMED)
        logger.info(
            f"Atomic group executed: {len(legs)} transactions, "
            f"tx {settlement.tx_id} in round {settlement.confirmed_round}"
        )
        return settlement.tx_id

    def _fail(self, settlement: Settlement, err: MarketplayError, state: SettlementState) -> None:
        settlement.error = err
        if state not in _TRANSITIONS[settlement.state]:
            state = SettlementState.FAILED
        settlement.advance(state)
        logger.error(f"Settlement {settlement.id} {state.value} at {settlement.history[-2].value}: {err}")

    # ─────────────────────────────────────────────
    #  CONFIRMATION
    # ─────────────────────────────────────────────

    async def wait_for_confirmation(self, tx_id: str, rounds: Optional[int] = None) -> dict:
        return await self.ledger.await_confirmation(tx_id, rounds or self.max_rounds)

    async def get_pending_transaction(self, tx_id: str) -> dict:
        return await self.ledger.pending_transaction_info(tx_id)

    @property
    def last_settlement(self) -> Optional[Settlement]:
        return self.settlements[-1] if self.settlements else None
