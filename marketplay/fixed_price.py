"""
marketplay/fixed_price.py

Fixed-price marketplace: an in-memory listing registry settled through
atomic transaction groups.

Listing lifecycle:
    ACTIVE → SOLD        (buy_asset, after the settlement confirms)
    ACTIVE → CANCELLED   (cancel_listing, by the seller)

SOLD and CANCELLED are terminal. Listings are never deleted.

Purchases and cancellations of the same listing are serialized with a
per-listing asyncio.Lock owned by the ListingStore, so two concurrent
buyers cannot both settle, even through different registries.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from algosdk import encoding, util

from marketplay.accounts import Account
from marketplay.errors import (
    InsufficientFunds,
    InvalidArgument,
    InvalidState,
    NotFound,
    PreconditionFailed,
    Unauthorized,
)
from marketplay.ledger import LedgerClient
from marketplay.settlement import MIN_FEE, SettlementCoordinator, leg_count_for

logger = logging.getLogger("marketplay.fixed_price")


# ─────────────────────────────────────────────
#  PRICING
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class FlatPrice:
    price: int

    @property
    def royalty(self) -> int:
        return 0


@dataclass(frozen=True)
class PriceWithRoyalty:
    """A price with a royalty cut owed to `recipient` on every sale."""
    price: int
    recipient: str
    percentage: int

    @property
    def royalty(self) -> int:
        return calculate_royalty(self.price, self.percentage)


PricingPolicy = Union[FlatPrice, PriceWithRoyalty]


def calculate_royalty(price: int, percentage: int) -> int:
    """floor(price * percentage / 100), in integer microAlgos."""
    return price * percentage // 100


def make_pricing(
    price: int,
    royalty_recipient: Optional[str] = None,
    royalty_percentage: Optional[int] = None,
) -> PricingPolicy:
    """
    Validate raw listing fields and build the pricing policy.

    Raises:
        InvalidArgument: non-positive price, only one royalty field given,
                         percentage outside [0, 100], malformed recipient
    """
    if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
        raise InvalidArgument(f"Price must be a positive integer, got: {price}")

    if royalty_recipient is None and royalty_percentage is None:
        return FlatPrice(price)
    if royalty_recipient is None or royalty_percentage is None:
        raise InvalidArgument("royalty_recipient and royalty_percentage must be given together")

    if (
        isinstance(royalty_percentage, bool)
        or not isinstance(royalty_percentage, int)
        or not 0 <= royalty_percentage <= 100
    ):
        raise InvalidArgument(f"Royalty percentage must be between 0 and 100, got: {royalty_percentage}")
    if not encoding.is_valid_address(royalty_recipient):
        raise InvalidArgument(f"Invalid royalty recipient: {royalty_recipient}")

    return PriceWithRoyalty(price, royalty_recipient, royalty_percentage)


# ─────────────────────────────────────────────
#  LISTINGS
# ─────────────────────────────────────────────

class ListingStatus(Enum):
    ACTIVE = "active"
    SOLD = "sold"
    CANCELLED = "cancelled"


@dataclass
class Listing:
    id: str
    asset_id: int
    seller: str
    pricing: PricingPolicy
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: ListingStatus = ListingStatus.ACTIVE

    @property
    def price(self) -> int:
        return self.pricing.price

    @property
    def royalty(self) -> int:
        return self.pricing.royalty

    @property
    def royalty_recipient(self) -> Optional[str]:
        return getattr(self.pricing, "recipient", None)

    @property
    def royalty_percentage(self) -> Optional[int]:
        return getattr(self.pricing, "percentage", None)

    @property
    def leg_count(self) -> int:
        return leg_count_for(self.royalty)

    @property
    def total_cost(self) -> int:
        """What the buyer pays: price + royalty + one minimum fee per leg."""
        return self.price + self.royalty + self.leg_count * MIN_FEE

    @property
    def is_active(self) -> bool:
        return self.status is ListingStatus.ACTIVE


class ListingStore:
    """Listings keyed by id, indexed by seller and by asset.

    Each listing gets its own asyncio.Lock when it is added. Every registry
    sharing the store serializes purchases and cancellations on that lock.
    """

    def __init__(self):
        self._listings: dict[str, Listing] = {}
        self._by_seller: dict[str, list[str]] = {}
        self._by_asset: dict[int, list[str]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._listings)

    def __contains__(self, listing_id: str) -> bool:
        return listing_id in self._listings

    def add(self, listing: Listing) -> None:
        if listing.id in self._listings:
            raise InvalidState(f"Duplicate listing id: {listing.id}")
        self._listings[listing.id] = listing
        self._by_seller.setdefault(listing.seller, []).append(listing.id)
        self._by_asset.setdefault(listing.asset_id, []).append(listing.id)
        self._locks[listing.id] = asyncio.Lock()

    def get(self, listing_id: str) -> Optional[Listing]:
        return self._listings.get(listing_id)

    def lock_for(self, listing_id: str) -> Optional[asyncio.Lock]:
        return self._locks.get(listing_id)

    def all(self) -> list[Listing]:
        return list(self._listings.values())

    def by_seller(self, seller: str) -> list[Listing]:
        return [self._listings[i] for i in self._by_seller.get(seller, [])]

    def by_asset(self, asset_id: int) -> list[Listing]:
        return [self._listings[i] for i in self._by_asset.get(asset_id, [])]


# ─────────────────────────────────────────────
#  MARKETPLACE
# ─────────────────────────────────────────────

class FixedPriceMarketplace:
    """
    Fixed-price listing registry.

    Args:
        ledger:      LedgerClient used for ownership, opt-in and balance checks
        coordinator: SettlementCoordinator executing purchases
                     (defaults to one built on `ledger`)
        store:       ListingStore holding the listings
                     (defaults to a fresh, empty store)
    """

    def __init__(
        self,
        ledger: LedgerClient,
        coordinator: Optional[SettlementCoordinator] = None,
        store: Optional[ListingStore] = None,
    ):
        self.ledger = ledger
        self.coordinator = coordinator or SettlementCoordinator(ledger)
        self.store = store if store is not None else ListingStore()

    def _require(self, listing_id: str) -> Listing:
        listing = self.store.get(listing_id)
        if listing is None:
            raise NotFound(f"Listing {listing_id} not found")
        return listing

    async def _holds_asset(self, address: str, asset_id: int) -> bool:
        holding = await self.ledger.query_holding(address, asset_id)
        return holding is not None and holding.get("amount", 0) >= 1

    # ── Mutations ──

    async def list_asset(
        self,
        seller: str,
        asset_id: int,
        price: int,
        royalty_recipient: Optional[str] = None,
        royalty_percentage: Optional[int] = None,
    ) -> str:
        """
        List an asset for sale at a fixed price (microAlgos).

        Returns:
            The new listing id

        Raises:
            InvalidArgument:    bad price, royalty fields or seller address
            PreconditionFailed: seller does not hold the asset
        """
        pricing = make_pricing(price, royalty_recipient, royalty_percentage)
        if not isinstance(seller, str) or not encoding.is_valid_address(seller):
            raise InvalidArgument(f"Invalid seller address: {seller}")

        if not await self._holds_asset(seller, asset_id):
            raise PreconditionFailed("seller does not own asset")

        listing = Listing(
            id=uuid.uuid4().hex,
            asset_id=asset_id,
            seller=seller,
            pricing=pricing,
        )
        self.store.add(listing)
        logger.info(f"Listed asset {asset_id} for {price} microAlgos: listing {listing.id}")
        return listing.id

    async def buy_asset(self, buyer: Account, listing_id: str, seller: Account) -> str:
        """
        Purchase a listing. The buyer is opted into the asset first if needed.

        `seller` must be the listing's seller; its key signs the asset leg.

        Returns:
            Transaction id of the settlement group

        Raises:
            NotFound, InvalidState, InvalidArgument, PreconditionFailed,
            InsufficientFunds, and any settlement failure unchanged
        """
        listing = self._require(listing_id)
        async with self.store.lock_for(listing_id):
            if not listing.is_active:
                raise InvalidState(f"Listing {listing_id} is {listing.status.value}")
            if seller.address != listing.seller:
                raise InvalidArgument(f"Seller {seller.address} does not match listing {listing_id}")

            if not await self._holds_asset(listing.seller, listing.asset_id):
                raise PreconditionFailed("seller does not own asset")

            if await self.ledger.query_holding(buyer.address, listing.asset_id) is None:
                await self.ledger.register_for_asset(buyer, listing.asset_id)

            royalty = listing.royalty
            required = listing.total_cost
            available = await self.ledger.query_balance(buyer.address)
            if available < required:
                raise InsufficientFunds(buyer.address, required, available)

            tx_id = await self.coordinator.execute_atomic_exchange(
                buyer,
                seller,
                listing.asset_id,
                listing.price,
                royalty_recipient=listing.royalty_recipient if royalty else None,
                royalty_amount=royalty if royalty else None,
            )

            listing.status = ListingStatus.SOLD
            logger.info(f"Listing {listing_id} sold to {buyer.address[:8]}...: tx {tx_id}")
            return tx_id

    async def cancel_listing(self, seller: str, listing_id: str) -> None:
        """
        Withdraw an active listing.

        Raises:
            NotFound, Unauthorized (not the seller), InvalidState (not active)
        """
        listing = self._require(listing_id)
        async with self.store.lock_for(listing_id):
            if seller != listing.seller:
                raise Unauthorized(f"Only the seller can cancel listing {listing_id}")
            if not listing.is_active:
                raise InvalidState(f"Listing {listing_id} is {listing.status.value}")
            listing.status = ListingStatus.CANCELLED
            logger.info(f"Listing {listing_id} cancelled")

    # ── Queries ──

    def get_listing(self, listing_id: str) -> Optional[Listing]:
        return self.store.get(listing_id)

    def get_active_listings(self) -> list[Listing]:
        return [l for l in self.store.all() if l.is_active]

    def get_listings_by_seller(self, seller: str) -> list[Listing]:
        return self.store.by_seller(seller)

    def get_listings_by_asset(self, asset_id: int) -> list[Listing]:
        return self.store.by_asset(asset_id)

    def calculate_total_cost(self, listing_id: str) -> Optional[int]:
        """Price + royalty + min fee per leg, or None for an unknown listing."""
        listing = self.store.get(listing_id)
        return listing.total_cost if listing else None

    # ── Units ──

    @staticmethod
    def algos_to_microalgos(algos: Union[int, float, Decimal]) -> int:
        return util.algos_to_microalgos(algos)

    @staticmethod
    def microalgos_to_algos(microalgos: int) -> Decimal:
        return util.microalgos_to_algos(microalgos)
