"""
Settlement Coordinator

resolve -> gate -> fetch -> reconstruct -> submit

Strictly sequential, no state kept between calls. Every claim is a fresh
read of the ledger. If the ledger moves between the read and the
submission, the verifier rejects the chain and that rejection is what
the caller sees. Nothing is retried here.
"""

from typing import Optional, Union

from ..gateway import ContractGateway, SubmissionRejected, TransactionHandle
from ..observability import get_logger, get_metrics
from .reconstructor import ChainReconstructor
from .resolver import QuestionStateResolver
from .source import EventSource

logger = get_logger(__name__)

CLAIM_METHOD = "claimWinnings"


class SettlementCoordinator:
    """Claims winnings for finalized questions."""

    def __init__(
        self,
        gateway: ContractGateway,
        resolver: QuestionStateResolver,
        source: EventSource,
        reconstructor: Optional[ChainReconstructor] = None,
    ):
        self._gateway = gateway
        self._resolver = resolver
        self._source = source
        self._reconstructor = reconstructor or ChainReconstructor()

    def claim(
        self,
        entity_id: str,
        sender: Optional[str] = None,
    ) -> Union[TransactionHandle, bool]:
        """
        Claim winnings for a question.

        Returns:
            The gateway's transaction handle, unmodified, or False when
            there is nothing to do (already claimed, not finalized, or no
            answers to replay). False is a signal, not an error.

        Raises:
            SourceUnavailable: if a ledger read fails
            SubmissionRejected: if the verifier refuses the chain
        """
        question = self._resolver.resolve(entity_id)

        if question.is_claimed or not question.is_finalized:
            logger.info(
                "Claim skipped",
                question_id=question.entity_id,
                status=question.status,
            )
            get_metrics().record_claim("skipped")
            return False

        events = self._source.fetch(question.entity_id)
        chain = self._reconstructor.reconstruct(events)

        if chain.is_empty:
            # Finalized with no answers: the verifier rejects an empty chain
            logger.info("Claim skipped", question_id=question.entity_id, status="no_answers")
            get_metrics().record_claim("skipped")
            return False

        history_hashes, addresses, bonds, answers = chain.as_args()
        try:
            handle = self._gateway.submit_transaction(
                CLAIM_METHOD,
                (question.entity_id, history_hashes, addresses, bonds, answers),
                sender=sender,
            )
        except SubmissionRejected as e:
            logger.warning(
                "Claim rejected",
                question_id=question.entity_id,
                entries=len(chain),
                reason=e.reason,
            )
            get_metrics().record_claim("rejected")
            raise

        logger.info(
            "Claim submitted",
            question_id=question.entity_id,
            entries=len(chain),
            tx_hash=handle.tx_hash,
        )
        get_metrics().record_claim("submitted")
        return handle
