"""
Gateway Configuration

Handles RPC connection settings, signing account and query tuning.

Environment Variables:
    BONDCHAIN_RPC_URL: JSON-RPC endpoint (selects the web3 driver when set)
    BONDCHAIN_CONTRACT_ADDRESS: Oracle contract address
    BONDCHAIN_PRIVATE_KEY: Key used to sign claim/answer transactions
    BONDCHAIN_CHAIN_ID: Chain id for signed transactions (default: ask the node)
    BONDCHAIN_FROM_BLOCK: First block to scan for events (default 0, genesis)
    BONDCHAIN_LOG_CHUNK_SIZE: Blocks per eth_getLogs request (default 0 = one request)
    BONDCHAIN_REQUEST_TIMEOUT: Seconds per RPC request (default 30)
    BONDCHAIN_RECEIPT_TIMEOUT: Seconds to wait for a receipt (default 120)
    BONDCHAIN_POLL_INTERVAL: Seconds between confirmation checks (default 2)
    BONDCHAIN_CONFIRMATIONS: Blocks a transaction must be buried under (default 1)
    BONDCHAIN_GAS: Fixed gas limit (default: estimate)
    BONDCHAIN_GAS_PRICE: Fixed gas price in wei (default: node suggestion)
    BONDCHAIN_DECIMALS: Token decimals (default 18)
    BONDCHAIN_MAX_WORKERS: Threads for parallel question reads (default 8)

    BONDCHAIN_GATEWAY_DRIVER: Which gateway to use
        - "memory" (default if no RPC configured)
        - "web3" (JSON-RPC via web3.py)
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..numbers import DEFAULT_DECIMALS


class GatewayDriver(str, Enum):
    """Supported gateway drivers."""
    MEMORY = "memory"
    WEB3 = "web3"


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


@dataclass
class GatewayConfig:
    """Contract gateway configuration."""
    rpc_url: Optional[str] = None
    contract_address: Optional[str] = None
    private_key: Optional[str] = None
    chain_id: Optional[int] = None

    # Event scanning
    from_block: int = 0
    log_chunk_size: int = 0  # 0 means a single request for the whole range

    # Timeouts
    request_timeout: float = 30.0  # seconds
    receipt_timeout: float = 120.0  # seconds
    poll_interval: float = 2.0  # seconds between confirmation checks

    # Submission
    confirmations: int = 1
    gas: Optional[int] = None
    gas_price: Optional[int] = None

    decimals: int = DEFAULT_DECIMALS
    max_workers: int = 8

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        """Load configuration from environment variables."""
        return cls(
            rpc_url=os.getenv("BONDCHAIN_RPC_URL") or None,
            contract_address=os.getenv("BONDCHAIN_CONTRACT_ADDRESS") or None,
            private_key=os.getenv("BONDCHAIN_PRIVATE_KEY") or None,
            chain_id=_optional_int("BONDCHAIN_CHAIN_ID"),
            from_block=int(os.getenv("BONDCHAIN_FROM_BLOCK", "0")),
            log_chunk_size=int(os.getenv("BONDCHAIN_LOG_CHUNK_SIZE", "0")),
            request_timeout=float(os.getenv("BONDCHAIN_REQUEST_TIMEOUT", "30")),
            receipt_timeout=float(os.getenv("BONDCHAIN_RECEIPT_TIMEOUT", "120")),
            poll_interval=float(os.getenv("BONDCHAIN_POLL_INTERVAL", "2")),
            confirmations=int(os.getenv("BONDCHAIN_CONFIRMATIONS", "1")),
            gas=_optional_int("BONDCHAIN_GAS"),
            gas_price=_optional_int("BONDCHAIN_GAS_PRICE"),
            decimals=int(os.getenv("BONDCHAIN_DECIMALS", str(DEFAULT_DECIMALS))),
            max_workers=int(os.getenv("BONDCHAIN_MAX_WORKERS", "8")),
        )

    def redacted(self) -> dict:
        """Config as a dict safe for logging (no private key)."""
        return {
            "rpc_url": self.rpc_url,
            "contract_address": self.contract_address,
            "has_private_key": self.private_key is not None,
            "chain_id": self.chain_id,
            "from_block": self.from_block,
            "log_chunk_size": self.log_chunk_size,
            "confirmations": self.confirmations,
        }


def get_gateway_driver(config: Optional[GatewayConfig] = None) -> GatewayDriver:
    """
    Get the gateway driver to use.

    Checks BONDCHAIN_GATEWAY_DRIVER, then falls back to:
    - web3 if an RPC URL is configured (config.rpc_url when a config is
      given, BONDCHAIN_RPC_URL otherwise)
    - memory otherwise

    Returns:
        GatewayDriver enum value
    """
    explicit = os.getenv("BONDCHAIN_GATEWAY_DRIVER", "").lower()

    if explicit:
        if explicit == "memory":
            return GatewayDriver.MEMORY
        elif explicit == "web3":
            return GatewayDriver.WEB3
        else:
            raise ValueError(
                f"Unknown BONDCHAIN_GATEWAY_DRIVER: {explicit}. "
                f"Valid values: memory, web3"
            )

    rpc_url = config.rpc_url if config is not None else os.getenv("BONDCHAIN_RPC_URL")
    if rpc_url:
        return GatewayDriver.WEB3

    return GatewayDriver.MEMORY
