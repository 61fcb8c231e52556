"""
Bond Ledger Schema

Totals derived from replaying answer events.
These are projections, NOT the source of truth. They can be rebuilt
from the event log at any time and are never cached across calls.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class QuestionBonds(BaseModel):
    """One user's bonds on one question."""
    total: Decimal = Decimal(0)
    answers: dict[str, Decimal] = Field(default_factory=dict)


class BondLedger(BaseModel):
    """
    Aggregated bonds.

    - answers: answer_id -> total bonded on that answer (every event seen)
    - questions: question_id -> QuestionBonds, only populated when the
      aggregation is scoped to a user
    """
    answers: dict[str, Decimal] = Field(default_factory=dict)
    user: Optional[str] = None
    questions: dict[str, QuestionBonds] = Field(default_factory=dict)

    def total_for(self, answer_id: str) -> Decimal:
        return self.answers.get(answer_id, Decimal(0))

    @property
    def grand_total(self) -> Decimal:
        return sum(self.answers.values(), Decimal(0))
