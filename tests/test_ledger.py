"""
Tests for marketplay/ledger.py

AlgodLedgerClient against a mocked algod client: real transactions are
built and signed offline, network calls are mocked.
"""

from unittest.mock import MagicMock, patch

import pytest
from algosdk import error
from algosdk.transaction import (
    AssetTransferTxn,
    PaymentTxn,
    SignedTransaction,
    SuggestedParams,
)

from conftest import FakeLedger
from marketplay.accounts import Account
from marketplay.errors import ConfirmationTimeout, ExternalFailure
from marketplay.ledger import AlgodLedgerClient, LedgerClient
from marketplay.settlement import SettlementCoordinator, SettlementState


GENESIS_HASH = "SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI="


def make_params() -> SuggestedParams:
    return SuggestedParams(
        fee=1000, first=1000, last=2000, gh=GENESIS_HASH, gen="testnet-v1.0", flat_fee=True,
    )


def create_mock_algod():
    algod = MagicMock()
    algod.suggested_params.return_value = make_params()
    algod.account_info.return_value = {"amount": 5_000_000, "min-balance": 200_000}
    algod.account_asset_info.return_value = {
        "asset-holding": {"asset-id": 42, "amount": 1, "is-frozen": False},
        "round": 1000,
    }
    algod.send_transactions.return_value = "TXID1"
    return algod


@pytest.fixture
def algod():
    return create_mock_algod()


@pytest.fixture
def client(algod):
    return AlgodLedgerClient(algod, confirmation_rounds=4)


PROTOCOL_METHODS = sorted(
    name for name, value in vars(LedgerClient).items()
    if not name.startswith("_") and callable(value)
)


class TestProtocol:

    def test_covers_every_call_the_coordinator_makes(self):
        assert "pending_transaction_info" in PROTOCOL_METHODS
        assert "await_confirmation" in PROTOCOL_METHODS

    @pytest.mark.parametrize("name", PROTOCOL_METHODS)
    def test_implementations_provide_method(self, name):
        assert callable(getattr(AlgodLedgerClient, name, None))
        assert callable(getattr(FakeLedger, name, None))

    @pytest.mark.asyncio
    async def test_pending_transaction_info(self, client, algod):
        algod.pending_transaction_info.return_value = {"confirmed-round": 7}
        assert await client.pending_transaction_info("TX1") == {"confirmed-round": 7}
        algod.pending_transaction_info.assert_called_once_with("TX1")


class TestQueries:

    @pytest.mark.asyncio
    async def test_query_holding(self, client, algod):
        holding = await client.query_holding("ADDR", 42)
        assert holding == {"asset-id": 42, "amount": 1, "is-frozen": False}
        algod.account_asset_info.assert_called_once_with("ADDR", 42)

    @pytest.mark.asyncio
    async def test_query_holding_not_opted_in(self, client, algod):
        algod.account_asset_info.side_effect = error.AlgodHTTPError("asset info not found", code=404)
        assert await client.query_holding("ADDR", 42) is None

    @pytest.mark.asyncio
    async def test_query_holding_other_errors_wrapped(self, client, algod):
        algod.account_asset_info.side_effect = error.AlgodHTTPError("boom", code=500)
        with pytest.raises(ExternalFailure) as exc:
            await client.query_holding("ADDR", 42)
        assert isinstance(exc.value.cause, error.AlgodHTTPError)

    @pytest.mark.asyncio
    async def test_query_balance_is_spendable(self, client):
        assert await client.query_balance("ADDR") == 4_800_000

    @pytest.mark.asyncio
    async def test_query_balance_never_negative(self, client, algod):
        algod.account_info.return_value = {"amount": 100_000, "min-balance": 200_000}
        assert await client.query_balance("ADDR") == 0


class TestLegs:

    @pytest.mark.asyncio
    async def test_build_and_group(self, client):
        buyer, seller = Account.generate(), Account.generate()

        pay = await client.build_payment(buyer.address, seller.address, 1_000_000, note="Royalty payment")
        axfer = await client.build_asset_transfer(seller.address, buyer.address, 42, 1)

        assert isinstance(pay, PaymentTxn)
        assert pay.amt == 1_000_000
        assert pay.note == b"Royalty payment"
        assert isinstance(axfer, AssetTransferTxn)
        assert axfer.index == 42

        grouped = await client.group_legs([pay, axfer])
        assert grouped[0].group is not None
        assert grouped[0].group == grouped[1].group

        signed = await client.authorize(grouped[0], buyer.private_key)
        assert isinstance(signed, SignedTransaction)


class TestSubmission:

    @pytest.mark.asyncio
    async def test_submit(self, client, algod):
        assert await client.submit(["signed"]) == "TXID1"
        algod.send_transactions.assert_called_once_with(["signed"])

    @pytest.mark.asyncio
    async def test_submit_rejection_wrapped(self, client, algod):
        algod.send_transactions.side_effect = error.AlgodHTTPError("overspend", code=400)
        with pytest.raises(ExternalFailure, match="overspend"):
            await client.submit(["signed"])

    @pytest.mark.asyncio
    async def test_await_confirmation(self, client, algod):
        with patch("marketplay.ledger.wait_for_confirmation", return_value={"confirmed-round": 1001}) as wait:
            receipt = await client.await_confirmation("TXID1", 4)
        assert receipt["confirmed-round"] == 1001
        wait.assert_called_once_with(algod, "TXID1", 4)

    @pytest.mark.asyncio
    async def test_await_confirmation_timeout(self, client):
        timeout = error.ConfirmationTimeoutError("Wait for transaction id TXID1 timed out")
        with patch("marketplay.ledger.wait_for_confirmation", side_effect=timeout):
            with pytest.raises(ConfirmationTimeout) as exc:
                await client.await_confirmation("TXID1", 4)
        assert exc.value.tx_id == "TXID1"
        assert exc.value.__cause__ is timeout

    @pytest.mark.asyncio
    async def test_register_for_asset_skips_when_opted_in(self, client, algod):
        assert await client.register_for_asset(Account.generate(), 42) == ""
        algod.send_transactions.assert_not_called()

    @pytest.mark.asyncio
    async def test_register_for_asset(self, client, algod):
        algod.account_asset_info.side_effect = error.AlgodHTTPError("not found", code=404)
        acct = Account.generate()

        with patch("marketplay.ledger.wait_for_confirmation", return_value={"confirmed-round": 1001}):
            tx_id = await client.register_for_asset(acct, 42)

        (signed_list,), _ = algod.send_transactions.call_args
        optin = signed_list[0].transaction
        assert optin.sender == acct.address
        assert optin.receiver == acct.address
        assert optin.amount == 0
        assert tx_id == signed_list[0].get_txid()


class TestEndToEndGroup:

    @pytest.mark.asyncio
    async def test_purchase_group_through_algod_client(self, client, algod):
        buyer, seller, payee = Account.generate(), Account.generate(), Account.generate()
        coordinator = SettlementCoordinator(client, max_rounds=4)

        with patch("marketplay.ledger.wait_for_confirmation", return_value={"confirmed-round": 1001}):
            tx_id = await coordinator.execute_atomic_exchange(
                buyer, seller, 42, 5_000_000,
                royalty_recipient=payee.address, royalty_amount=250_000,
            )

        assert tx_id == "TXID1"
        (signed_list,), _ = algod.send_transactions.call_args
        assert len(signed_list) == 3
        assert len({s.transaction.group for s in signed_list}) == 1
        assert [s.transaction.sender for s in signed_list] == [
            buyer.address, seller.address, buyer.address,
        ]
        assert coordinator.last_settlement.state is SettlementState.CONFIRMED
        assert coordinator.last_settlement.confirmed_round == 1001
