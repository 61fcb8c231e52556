"""
Question Schema

A question is the entity answers are bonded against.
It is never deleted; its history hash moves with every accepted answer
and resets to NULL_HASH once winnings are claimed.
"""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from ..numbers import NULL_HASH, is_null_hash, to_bytes32_hex


class Question(BaseModel):
    """
    Snapshot of a question's on-ledger state.

    The ledger returns zero-valued storage for unknown ids, so a question
    that does not exist comes back with every field at its default.
    Check `exists` before trusting anything else.
    """
    entity_id: str = Field(..., description="Question id (bytes32, 0x-hex)")

    best_answer: str = NULL_HASH
    finalize_ts: int = 0
    history_hash: str = NULL_HASH
    is_finalized: bool = False

    # Current highest bond, already converted from base units
    bond: Decimal = Decimal(0)
    bounty: Decimal = Decimal(0)

    arbitrator: str = "0x" + "00" * 20
    opening_ts: int = 0
    timeout: int = 0
    is_pending_arbitration: bool = False

    @field_validator("entity_id", "best_answer", "history_hash", mode="before")
    @classmethod
    def _normalize_bytes32(cls, value):
        return to_bytes32_hex(value)

    @property
    def is_claimed(self) -> bool:
        """
        Derived, never stored.

        A finalized question whose history hash is back at the null
        sentinel has had its winnings claimed.
        """
        return self.is_finalized and is_null_hash(self.history_hash)

    @property
    def exists(self) -> bool:
        # The ledger's own existence check: every created question has a timeout
        return self.timeout > 0

    @property
    def status(self) -> str:
        if self.is_claimed:
            return "claimed"
        if self.is_finalized:
            return "finalized"
        return "pending"
