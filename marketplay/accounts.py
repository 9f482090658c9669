"""
marketplay/accounts.py

Algorand accounts: creation, mnemonic restore, balance and opt-in lookups.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from algosdk import account, error, mnemonic

from marketplay.errors import InvalidArgument

if TYPE_CHECKING:
    from marketplay.ledger import AlgodLedgerClient


@dataclass(frozen=True)
class Account:
    """An address together with the private key that signs for it."""
    address: str
    private_key: str = field(repr=False)

    @classmethod
    def generate(cls) -> "Account":
        private_key, address = account.generate_account()
        return cls(address=address, private_key=private_key)

    @classmethod
    def from_private_key(cls, private_key: str) -> "Account":
        return cls(
            address=account.address_from_private_key(private_key),
            private_key=private_key,
        )

    @classmethod
    def from_mnemonic(cls, words: str) -> "Account":
        """
        Restore an account from its 25-word recovery phrase.

        Raises:
            InvalidArgument: if the phrase is malformed or fails its checksum
        """
        try:
            private_key = mnemonic.to_private_key(words)
        except (error.WrongMnemonicLengthError, error.WrongChecksumError, ValueError, KeyError) as e:
            raise InvalidArgument(f"Invalid mnemonic: {e}") from e
        return cls.from_private_key(private_key)

    @property
    def mnemonic(self) -> str:
        return mnemonic.from_private_key(self.private_key)


class AccountManager:
    """Creates accounts and reads account state through a ledger client."""

    def __init__(self, ledger: "AlgodLedgerClient"):
        self.ledger = ledger

    def create_account(self) -> Account:
        """Generate a new random account. The mnemonic is `account.mnemonic`."""
        return Account.generate()

    def from_mnemonic(self, words: str) -> Account:
        return Account.from_mnemonic(words)

    async def get_account_info(self, address: str) -> dict:
        """Raw algod account information (balance, assets, min-balance ...)."""
        return await self.ledger.account_info(address)

    async def get_balance(self, address: str) -> int:
        """Balance in microAlgos (1 ALGO = 1,000,000 microAlgos)."""
        info = await self.get_account_info(address)
        return info.get("amount", 0)

    async def has_opted_into_asset(self, address: str, asset_id: int) -> bool:
        return await self.ledger.query_holding(address, asset_id) is not None
