"""
Question State Resolver

Reads a question's raw state and classifies it: pending, finalized or
claimed. Read-only; never touches ledger state.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional

from ..gateway import ContractGateway, GatewayConfig
from ..gateway.gateway import QUESTION_STRUCT_FIELDS
from ..numbers import from_decimals, to_bytes32_hex
from ..observability import get_logger
from ..schemas import Question

logger = get_logger(__name__)

_STATE_FIELDS = QUESTION_STRUCT_FIELDS + ("is_finalized",)


class QuestionStateResolver:
    """
    Resolves Question snapshots.

    Unknown questions resolve to an all-default Question (the ledger
    returns zeroed storage), not an error. Check `Question.exists`.
    """

    def __init__(self, gateway: ContractGateway, config: Optional[GatewayConfig] = None):
        self._gateway = gateway
        self._config = config or GatewayConfig()

    def resolve(self, entity_id: str) -> Question:
        """
        Raises:
            SourceUnavailable: if the ledger cannot be read
        """
        entity_id = to_bytes32_hex(entity_id)
        raw = self._gateway.read_state(entity_id, _STATE_FIELDS)
        decimals = self._config.decimals

        question = Question(
            entity_id=entity_id,
            best_answer=raw["best_answer"],
            finalize_ts=int(raw["finalize_ts"]),
            history_hash=raw["history_hash"],
            is_finalized=bool(raw["is_finalized"]),
            bond=from_decimals(raw["bond"], decimals),
            bounty=from_decimals(raw["bounty"], decimals),
            arbitrator=raw["arbitrator"],
            opening_ts=int(raw["opening_ts"]),
            timeout=int(raw["timeout"]),
            is_pending_arbitration=bool(raw["is_pending_arbitration"]),
        )

        logger.debug(
            "Resolved question",
            question_id=entity_id,
            status=question.status,
            exists=question.exists,
        )
        return question

    def resolve_many(self, entity_ids: Iterable[str]) -> list[Question]:
        """
        Resolve several questions in parallel.

        Unrelated questions have no ordering dependency. Results come back
        in input order; the first failure propagates.
        """
        entity_ids = list(entity_ids)
        if not entity_ids:
            return []
        workers = max(1, min(self._config.max_workers, len(entity_ids)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(self.resolve, entity_ids))

    def best_answer(self, entity_id: str) -> str:
        return self._gateway.read_state(entity_id, ("current_answer",))["current_answer"]

    def result(self, entity_id: str) -> str:
        """
        Final answer of a question.

        Raises:
            CallReverted: if the question is not finalized yet
        """
        return self._gateway.read_state(entity_id, ("result",))["result"]
