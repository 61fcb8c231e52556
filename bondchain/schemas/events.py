"""
Canonical Answer Event Schema

The remote ledger is append-only. Nothing is "edited". Answers happen.

Each answer event:
- Is produced by the ledger, never by us
- Carries the history hash the ledger computed AFTER applying it
- Has a position in ledger order that is never reused

This core only reads and reshapes these records.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..numbers import to_bytes32_hex


class EventType(str, Enum):
    """
    Ledger event names this core consumes.
    You can add more later, never remove.
    """
    LOG_NEW_ANSWER = "LogNewAnswer"


class AnswerEvent(BaseModel):
    """
    One bonded answer, as recorded by the ledger.

    Rules:
    - No UPDATE
    - No DELETE
    - sequence_index is monotonically increasing in ledger order
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "entity_id": "0x5c1a0f9b6e2d7f3a4b8c9d0e1f2a3b4c5d6e7f8091a2b3c4d5e6f708192a3b4c",
                "user": "0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1",
                "answer_id": "0x0000000000000000000000000000000000000000000000000000000000000001",
                "bond_amount": 10000000000000000000,
                "history_hash_after": "0x7d9c1b0e3f5a...",
                "sequence_index": 42,
                "is_commitment": False,
            }
        },
    )

    entity_id: str = Field(
        ...,
        description="Question id (bytes32, 0x-hex)"
    )

    user: str = Field(
        ...,
        description="Address that posted the answer"
    )

    answer_id: str = Field(
        ...,
        description="Answer (or commitment id) as bytes32 0x-hex"
    )

    bond_amount: int = Field(
        ...,
        ge=0,
        description="Bond in the token's base unit (ledger-native fixed point)"
    )

    history_hash_after: str = Field(
        ...,
        description="History hash of the question after this answer was applied"
    )

    sequence_index: int = Field(
        ...,
        ge=0,
        description="Position in ledger order. Assigned by the ledger, never reused."
    )

    is_commitment: bool = False
    timestamp: Optional[int] = None

    # Provenance (only known for events read from a real chain)
    block_number: Optional[int] = None
    log_index: Optional[int] = None
    transaction_hash: Optional[str] = None

    @field_validator("entity_id", "answer_id", "history_hash_after", mode="before")
    @classmethod
    def _normalize_bytes32(cls, value):
        return to_bytes32_hex(value)

