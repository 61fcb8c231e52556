"""
Bond Aggregator

Replays answer events into bond totals.

Every bond ever posted counts: no recency weighting, no overwrites,
losing answers included. Accumulation happens in integer base units and
is converted to Decimal once per key at the end, so the result is exact
and independent of event order.
"""

from collections import defaultdict
from typing import Iterable, Optional

from ..numbers import DEFAULT_DECIMALS, from_decimals
from ..schemas import AnswerEvent, BondLedger, QuestionBonds


class BondAggregator:
    """
    Pure function over an event sequence. Holds only the decimal setting.

    Usage:
        ledger = BondAggregator().aggregate(events)
        ledger.answers  # {answer_id: Decimal}
    """

    def __init__(self, decimals: int = DEFAULT_DECIMALS):
        self._decimals = decimals

    def aggregate(
        self,
        events: Iterable[AnswerEvent],
        user: Optional[str] = None,
    ) -> BondLedger:
        """
        Aggregate bonds.

        Args:
            events: Answer events (any order)
            user: If given, also build the per-question totals of this
                  user's own answers

        Returns:
            BondLedger with global per-answer totals, plus per-question
            totals for `user` when scoped
        """
        per_answer: dict[str, int] = defaultdict(int)
        per_question: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        wanted = user.lower() if user is not None else None

        for event in events:
            per_answer[event.answer_id] += event.bond_amount
            if wanted is not None and event.user.lower() == wanted:
                per_question[event.entity_id][event.answer_id] += event.bond_amount

        questions = {
            question_id: QuestionBonds(
                total=from_decimals(sum(answers.values()), self._decimals),
                answers={
                    answer_id: from_decimals(raw, self._decimals)
                    for answer_id, raw in answers.items()
                },
            )
            for question_id, answers in per_question.items()
        }

        return BondLedger(
            answers={
                answer_id: from_decimals(raw, self._decimals)
                for answer_id, raw in per_answer.items()
            },
            user=user,
            questions=questions,
        )
