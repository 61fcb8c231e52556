# Canonical schemas for the oracle settlement core
# Everything here is a value object rebuilt from the ledger on every query.

from .events import AnswerEvent, EventType
from .question import Question
from .bonds import BondLedger, QuestionBonds
from .claim import ClaimChain

__all__ = [
    # Events
    "AnswerEvent",
    "EventType",
    # Question
    "Question",
    # Bonds
    "BondLedger",
    "QuestionBonds",
    # Claim
    "ClaimChain",
]
