"""
marketplay/client.py

Factories for algod / indexer clients and the default ledger client.
"""

from typing import Optional

from algosdk.v2client import algod, indexer

from marketplay.config import get_network_config


def get_algod(network: Optional[str] = None) -> algod.AlgodClient:
    cfg = get_network_config(network)
    return algod.AlgodClient(cfg.algod_token, cfg.algod_address)


def get_indexer(network: Optional[str] = None) -> indexer.IndexerClient:
    cfg = get_network_config(network)
    return indexer.IndexerClient(cfg.indexer_token, cfg.indexer_address)


def get_ledger_client(network: Optional[str] = None):
    """Return an AlgodLedgerClient connected to `network` (default from env)."""
    from marketplay.ledger import AlgodLedgerClient

    return AlgodLedgerClient(get_algod(network))
