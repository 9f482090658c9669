"""
marketplay/assets.py

Algorand Standard Assets: NFT creation, opt-in and transfer.
"""

import logging

from algosdk.transaction import AssetCreateTxn, AssetTransferTxn

from marketplay.accounts import Account
from marketplay.errors import InvalidArgument
from marketplay.ledger import AlgodLedgerClient

logger = logging.getLogger("marketplay.assets")

# ASA unit names are limited to 8 bytes, asset names to 32
MAX_UNIT_NAME = 8
MAX_ASSET_NAME = 32


class AssetManager:
    def __init__(self, ledger: AlgodLedgerClient):
        self.ledger = ledger

    async def create_nft(self, creator: Account, name: str, unit_name: str, url: str) -> int:
        """
        Mint a pure NFT (total 1, decimals 0) owned by `creator`.

        Returns:
            Newly created ASA ID
        """
        if not name or len(name.encode()) > MAX_ASSET_NAME:
            raise InvalidArgument(f"Asset name must be 1-{MAX_ASSET_NAME} bytes, got: {name!r}")
        if not unit_name or len(unit_name.encode()) > MAX_UNIT_NAME:
            raise InvalidArgument(f"Unit name must be 1-{MAX_UNIT_NAME} bytes, got: {unit_name!r}")

        sp = await self.ledger.suggested_params()
        txn = AssetCreateTxn(
            sender=creator.address,
            sp=sp,
            total=1,
            default_frozen=False,
            unit_name=unit_name,
            asset_name=name,
            manager=creator.address,
            reserve=creator.address,
            freeze=None,
            clawback=None,
            url=url,
            decimals=0,
        )
        receipt = await self.ledger.send_and_confirm(
            txn.sign(creator.private_key), self.ledger.confirmation_rounds,
        )
        asset_id = receipt["asset-index"]
        logger.info(f"Minted NFT '{name}' ({unit_name}): ASA {asset_id}")
        return asset_id

    async def opt_in(self, account: Account, asset_id: int) -> str:
        """Opt `account` into `asset_id` so it can receive it."""
        return await self.ledger.register_for_asset(account, asset_id)

    async def transfer_asset(
        self,
        asset_id: int,
        sender: Account,
        receiver: str,
        amount: int = 1,
    ) -> str:
        if amount <= 0:
            raise InvalidArgument(f"Amount must be positive, got: {amount}")
        sp = await self.ledger.suggested_params()
        signed = AssetTransferTxn(
            sender=sender.address,
            sp=sp,
            receiver=receiver,
            amt=amount,
            index=asset_id,
        ).sign(sender.private_key)
        await self.ledger.send_and_confirm(signed, self.ledger.confirmation_rounds)
        tx_id = signed.get_txid()
        logger.info(f"Transferred {amount} of ASA {asset_id} to {receiver[:8]}...: {tx_id}")
        return tx_id
