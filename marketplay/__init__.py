"""
MarketPlay SDK

A beginner-friendly SDK for building Algorand-powered marketplaces.

Example:
    >>> from marketplay import (
    ...     Account, AssetManager, FixedPriceMarketplace, get_ledger_client,
    ... )
    >>>
    >>> ledger = get_ledger_client("testnet")
    >>> marketplace = FixedPriceMarketplace(ledger)
    >>>
    >>> seller = Account.from_mnemonic(SELLER_WORDS)
    >>> buyer = Account.from_mnemonic(BUYER_WORDS)
    >>>
    >>> nft_id = await AssetManager(ledger).create_nft(
    ...     seller, name="My Cool NFT", unit_name="COOL", url="ipfs://...",
    ... )
    >>> listing_id = await marketplace.list_asset(
    ...     seller.address, nft_id, marketplace.algos_to_microalgos(5),
    ... )
    >>> tx_id = await marketplace.buy_asset(buyer, listing_id, seller)
"""

from marketplay.accounts import Account, AccountManager
from marketplay.assets import AssetManager
from marketplay.client import get_algod, get_indexer, get_ledger_client
from marketplay.contracts import ContractManager
from marketplay.errors import (
    AuthorizationMismatch,
    ConfirmationTimeout,
    ErrorKind,
    ExternalFailure,
    InsufficientFunds,
    InvalidArgument,
    InvalidState,
    MarketplayError,
    NotFound,
    PreconditionFailed,
    Unauthorized,
)
from marketplay.fixed_price import (
    FixedPriceMarketplace,
    FlatPrice,
    Listing,
    ListingStatus,
    ListingStore,
    PriceWithRoyalty,
    calculate_royalty,
)
from marketplay.ledger import AlgodLedgerClient, LedgerClient
from marketplay.payments import PaymentManager
from marketplay.settlement import Settlement, SettlementCoordinator, SettlementState

__version__ = "0.1.0"
__all__ = [
    # Clients
    "AlgodLedgerClient",
    "LedgerClient",
    "get_algod",
    "get_indexer",
    "get_ledger_client",
    # Core managers
    "Account",
    "AccountManager",
    "AssetManager",
    "ContractManager",
    "PaymentManager",
    # Settlement
    "Settlement",
    "SettlementCoordinator",
    "SettlementState",
    # Marketplace
    "FixedPriceMarketplace",
    "FlatPrice",
    "Listing",
    "ListingStatus",
    "ListingStore",
    "PriceWithRoyalty",
    "calculate_royalty",
    # Errors
    "AuthorizationMismatch",
    "ConfirmationTimeout",
    "ErrorKind",
    "ExternalFailure",
    "InsufficientFunds",
    "InvalidArgument",
    "InvalidState",
    "MarketplayError",
    "NotFound",
    "PreconditionFailed",
    "Unauthorized",
]
