"""
marketplay/config.py

Network endpoints and runtime settings.

Every value can be overridden from the environment:
    MARKETPLAY_NETWORK              mainnet | testnet | localnet
    MARKETPLAY_ALGOD_ADDRESS        override algod endpoint
    MARKETPLAY_ALGOD_TOKEN          override algod token
    MARKETPLAY_INDEXER_ADDRESS      override indexer endpoint
    MARKETPLAY_INDEXER_TOKEN        override indexer token
    MARKETPLAY_MNEMONIC             25-word mnemonic used by the CLI
    MARKETPLAY_CONFIRMATION_ROUNDS  rounds to wait for confirmation
"""

import os
from dataclasses import dataclass
from typing import Optional

from marketplay.errors import InvalidArgument


# ─────────────────────────────────────────────
#  NETWORKS
# ─────────────────────────────────────────────

MAINNET = "mainnet"
TESTNET = "testnet"
LOCALNET = "localnet"

# AlgoNode public nodes don't need a token
_ENDPOINTS = {
    MAINNET: (
        "https://mainnet-api.algonode.cloud", "",
        "https://mainnet-idx.algonode.cloud", "",
    ),
    TESTNET: (
        "https://testnet-api.algonode.cloud", "",
        "https://testnet-idx.algonode.cloud", "",
    ),
    LOCALNET: (
        "http://localhost:4001", "a" * 64,
        "http://localhost:8980", "a" * 64,
    ),
}

DEFAULT_NETWORK = os.environ.get("MARKETPLAY_NETWORK", TESTNET)

# Rounds to wait for a submitted group to be confirmed (~3s per round)
CONFIRMATION_ROUNDS = int(os.environ.get("MARKETPLAY_CONFIRMATION_ROUNDS", "4"))

MNEMONIC_ENV_VAR = "MARKETPLAY_MNEMONIC"


@dataclass(frozen=True)
class NetworkConfig:
    """Resolved endpoints for one network."""
    name: str
    algod_address: str
    algod_token: str
    indexer_address: str
    indexer_token: str


def get_network_config(network: Optional[str] = None) -> NetworkConfig:
    """
    Resolve endpoints for `network`, applying environment overrides.

    Raises:
        InvalidArgument: if the network name is not supported
    """
    name = network or DEFAULT_NETWORK
    if name not in _ENDPOINTS:
        raise InvalidArgument(f"Unsupported network: {name}")

    algod_address, algod_token, indexer_address, indexer_token = _ENDPOINTS[name]
    return NetworkConfig(
        name=name,
        algod_address=os.environ.get("MARKETPLAY_ALGOD_ADDRESS", algod_address),
        algod_token=os.environ.get("MARKETPLAY_ALGOD_TOKEN", algod_token),
        indexer_address=os.environ.get("MARKETPLAY_INDEXER_ADDRESS", indexer_address),
        indexer_token=os.environ.get("MARKETPLAY_INDEXER_TOKEN", indexer_token),
    )
