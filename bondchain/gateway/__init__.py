"""
Contract Gateway Layer

Provides:
- ContractGateway abstraction (read_state / query_events / submit_transaction)
- InMemoryGateway for development and tests, Web3Gateway for live chains
- Gateway configuration
"""

from .gateway import (
    ContractGateway,
    InMemoryGateway,
    TransactionHandle,
    CompletedTransaction,
    GatewayError,
    SourceUnavailable,
    CallReverted,
    SubmissionRejected,
    ConfirmationTimeout,
    SubmissionCancelled,
)
from .config import GatewayConfig, GatewayDriver, get_gateway_driver

__all__ = [
    "ContractGateway",
    "InMemoryGateway",
    "TransactionHandle",
    "CompletedTransaction",
    "GatewayError",
    "SourceUnavailable",
    "CallReverted",
    "SubmissionRejected",
    "ConfirmationTimeout",
    "SubmissionCancelled",
    "GatewayConfig",
    "GatewayDriver",
    "get_gateway_driver",
]
