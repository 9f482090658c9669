"""
marketplay/payments.py

ALGO payments and balance checks.
"""

import logging
from decimal import Decimal
from typing import Optional, Union

from algosdk import encoding, util
from algosdk.transaction import PaymentTxn

from marketplay.accounts import Account
from marketplay.errors import InvalidArgument
from marketplay.ledger import AlgodLedgerClient
from marketplay.settlement import MIN_FEE

logger = logging.getLogger("marketplay.payments")


class PaymentManager:
    def __init__(self, ledger: AlgodLedgerClient):
        self.ledger = ledger

    async def send_payment(
        self,
        sender: Account,
        receiver: str,
        amount: int,
        note: Optional[str] = None,
    ) -> str:
        """
        Send `amount` microAlgos from `sender` to `receiver`.

        Returns:
            Transaction ID
        """
        if not encoding.is_valid_address(receiver):
            raise InvalidArgument(f"Invalid recipient address: {receiver}")
        if amount <= 0:
            raise InvalidArgument(f"Amount must be positive, got: {amount}")

        sp = await self.ledger.suggested_params()
        signed = PaymentTxn(
            sender=sender.address,
            sp=sp,
            receiver=receiver,
            amt=amount,
            note=note.encode() if note else None,
        ).sign(sender.private_key)
        await self.ledger.send_and_confirm(signed, self.ledger.confirmation_rounds)

        tx_id = signed.get_txid()
        logger.info(f"Payment sent: {tx_id}")
        return tx_id

    async def send_micro_algos(self, sender: Account, receiver: str, micro_algos: int) -> str:
        return await self.send_payment(sender, receiver, micro_algos)

    async def send_algos(self, sender: Account, receiver: str, algos: Union[int, float, Decimal]) -> str:
        """Send ALGO in standard units (5.5 = 5.5 ALGO)."""
        return await self.send_payment(sender, receiver, util.algos_to_microalgos(algos))

    def get_min_fee(self) -> int:
        """Minimum transaction fee in microAlgos (1000 = 0.001 ALGO)."""
        return MIN_FEE

    def calculate_total_cost(self, amount: int) -> int:
        return amount + self.get_min_fee()

    async def has_sufficient_balance(self, address: str, amount: int, include_fee: bool = True) -> bool:
        required = self.calculate_total_cost(amount) if include_fee else amount
        return await self.ledger.query_balance(address) >= required
