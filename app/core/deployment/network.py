"""Target network selection."""

from __future__ import annotations

from typing import Dict, Optional

from .errors import ErrorInfo, ErrorKind
from .models import NetworkConfig
from .result import Err, Ok, Result

DEFAULT_NETWORK = "testnet"

BASE_NETWORKS: Dict[str, NetworkConfig] = {
    "mainnet": NetworkConfig(
        chain_id=8453,
        name="Base",
        is_mainnet=True,
        rpc_url="https://mainnet.base.org",
    ),
    "testnet": NetworkConfig(
        chain_id=84532,
        name="Base Sepolia",
        is_mainnet=False,
        rpc_url="https://sepolia.base.org",
    ),
}


def resolve_network(value: Optional[str], rpc_url_override: str = "") -> Result[NetworkConfig, ErrorInfo]:
    """Map the configured network name onto a chain.

    Unset resolves to the test chain so a missing setting can never deploy to
    production.
    """
    key = (value or "").strip().lower() or DEFAULT_NETWORK
    network = BASE_NETWORKS.get(key)
    if network is None:
        return Err(
            ErrorInfo(
                kind=ErrorKind.CONFIGURATION_ERROR,
                message=f'Invalid BASE_NETWORK value: {value}. Must be either "mainnet" or "testnet"',
                user_message="Server configuration error",
            )
        )
    if rpc_url_override:
        network = NetworkConfig(
            chain_id=network.chain_id,
            name=network.name,
            is_mainnet=network.is_mainnet,
            rpc_url=rpc_url_override,
        )
    return Ok(network)


__all__ = ["BASE_NETWORKS", "DEFAULT_NETWORK", "resolve_network"]
