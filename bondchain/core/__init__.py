# Core settlement services
from .source import EventSource, event_from_record
from .aggregator import BondAggregator
from .reconstructor import ChainReconstructor, ChainError, verify_claim_chain
from .resolver import QuestionStateResolver
from .coordinator import SettlementCoordinator
from .service import OracleService, create_gateway, create_service

__all__ = [
    "EventSource",
    "event_from_record",
    "BondAggregator",
    "ChainReconstructor",
    "ChainError",
    "verify_claim_chain",
    "QuestionStateResolver",
    "SettlementCoordinator",
    "OracleService",
    "create_gateway",
    "create_service",
]
