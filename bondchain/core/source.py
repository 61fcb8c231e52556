"""
Event Source

Fetches the complete answer log of a question from the ledger.

Guarantees to callers:
- Every event from genesis (config.from_block) to the latest block
- Ordered by sequence_index ascending
- Nothing omitted, reordered or deduplicated

An empty list is a valid answer (a question nobody has answered yet).
Unknown questions also come back empty. Never an error.
"""

import time
from typing import Any, Optional

from ..gateway import ContractGateway, GatewayConfig, SourceUnavailable
from ..observability import get_logger, get_metrics
from ..schemas import AnswerEvent, EventType

logger = get_logger(__name__)


def event_from_record(record: dict[str, Any]) -> AnswerEvent:
    """Convert one raw gateway record to an AnswerEvent."""
    try:
        return AnswerEvent(
            entity_id=record["question_id"],
            user=record["user"],
            answer_id=record["answer"],
            bond_amount=int(record["bond"]),
            history_hash_after=record["history_hash"],
            sequence_index=record["sequence_index"],
            is_commitment=bool(record.get("is_commitment", False)),
            timestamp=record.get("ts"),
            block_number=record.get("block_number"),
            log_index=record.get("log_index"),
            transaction_hash=record.get("transaction_hash"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise SourceUnavailable(f"Malformed event record from gateway: {e}") from e


class EventSource:
    """Reads LogNewAnswer events through the gateway."""

    def __init__(self, gateway: ContractGateway, config: Optional[GatewayConfig] = None):
        self._gateway = gateway
        self._config = config or GatewayConfig()

    def fetch(
        self,
        entity_id: Optional[str] = None,
        user: Optional[str] = None,
    ) -> list[AnswerEvent]:
        """
        Fetch answer events for a question, optionally only one user's.

        With entity_id=None, returns the user's answers across every
        question (used for per-account bond totals).

        Raises:
            SourceUnavailable: if the ledger cannot be read
        """
        if entity_id is None and user is None:
            raise ValueError("fetch() needs an entity_id, a user, or both")

        start = time.perf_counter()
        try:
            records = self._gateway.query_events(
                EventType.LOG_NEW_ANSWER.value,
                entity_id=entity_id,
                user=user,
                from_block=self._config.from_block,
                to_block="latest",
            )
        except SourceUnavailable:
            get_metrics().record_fetch((time.perf_counter() - start) * 1000, 0, success=False)
            raise

        events = [event_from_record(r) for r in records]

        # Ledger order is sequence order. A gateway that breaks this would
        # silently corrupt every claim chain, so refuse it.
        for earlier, later in zip(events, events[1:]):
            if later.sequence_index <= earlier.sequence_index:
                raise SourceUnavailable(
                    "Gateway returned events out of ledger order: "
                    f"{earlier.sequence_index} then {later.sequence_index}"
                )

        latency_ms = (time.perf_counter() - start) * 1000
        get_metrics().record_fetch(latency_ms, len(events))
        logger.debug(
            "Fetched answer events",
            question_id=entity_id,
            user=user,
            count=len(events),
            duration_ms=round(latency_ms, 2),
        )
        return events
