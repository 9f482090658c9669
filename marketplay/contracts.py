"""
marketplay/contracts.py

Deploy and call Algorand applications from TEAL source.
"""

import base64
import logging
from typing import Optional

from algosdk.transaction import (
    ApplicationCreateTxn,
    ApplicationNoOpTxn,
    OnComplete,
    StateSchema,
)

from marketplay.accounts import Account
from marketplay.ledger import AlgodLedgerClient

logger = logging.getLogger("marketplay.contracts")


class ContractManager:
    def __init__(self, ledger: AlgodLedgerClient):
        self.ledger = ledger

    async def compile(self, source: str) -> bytes:
        result = await self.ledger.compile_program(source)
        return base64.b64decode(result["result"])

    async def deploy_app(
        self,
        creator: Account,
        approval_source: str,
        clear_source: str,
        global_ints: int = 4,
        global_bytes: int = 4,
        local_ints: int = 0,
        local_bytes: int = 0,
        app_args: Optional[list[bytes]] = None,
    ) -> int:
        """
        Compile the approval / clear programs and create the application.

        Returns:
            The new App ID
        """
        approval_bytes = await self.compile(approval_source)
        clear_bytes = await self.compile(clear_source)
        sp = await self.ledger.suggested_params()

        txn = ApplicationCreateTxn(
            sender=creator.address,
            sp=sp,
            on_complete=OnComplete.NoOpOC,
            approval_program=approval_bytes,
            clear_program=clear_bytes,
            global_schema=StateSchema(num_uints=global_ints, num_byte_slices=global_bytes),
            local_schema=StateSchema(num_uints=local_ints, num_byte_slices=local_bytes),
            app_args=app_args,
        )
        receipt = await self.ledger.send_and_confirm(
            txn.sign(creator.private_key), self.ledger.confirmation_rounds,
        )
        app_id = receipt["application-index"]
        logger.info(f"Deployed application {app_id}")
        return app_id

    async def call_app(self, caller: Account, app_id: int, app_args: Optional[list[bytes]] = None) -> dict:
        """NoOp call; returns the confirmed transaction info."""
        sp = await self.ledger.suggested_params()
        signed = ApplicationNoOpTxn(
            sender=caller.address,
            sp=sp,
            index=app_id,
            app_args=app_args,
        ).sign(caller.private_key)
        return await self.ledger.send_and_confirm(signed, self.ledger.confirmation_rounds)
