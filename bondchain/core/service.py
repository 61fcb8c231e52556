"""
Oracle Service - The Caller-Facing Surface

Composes the gateway with the settlement components. Nothing is
inherited from a contract base class and nothing is cached: every call
goes back to the ledger.

Exposed operations:
- get_question(question_id)                 -> Question
- get_bonds_by_answer(question_id, user?)   -> BondLedger
- get_my_bonds(user?)                       -> {question_id: QuestionBonds}
- get_best_answer / get_result_for_question -> answer id
- preview_claim(question_id)                -> ClaimChain
- verify_claim(question_id)                 -> bool (offline replay)
- claim_winnings(question_id)               -> TransactionHandle | False
- submit_answer(question_id, answer, amount)-> TransactionHandle
"""

from decimal import Decimal
from typing import Optional, Union

from ..gateway import (
    ContractGateway,
    GatewayConfig,
    GatewayDriver,
    InMemoryGateway,
    TransactionHandle,
    get_gateway_driver,
)
from ..numbers import to_bytes32_hex, to_smart_contract_decimals
from ..observability import get_logger
from ..schemas import BondLedger, ClaimChain, Question, QuestionBonds
from .aggregator import BondAggregator
from .coordinator import SettlementCoordinator
from .reconstructor import ChainReconstructor, verify_claim_chain
from .resolver import QuestionStateResolver
from .source import EventSource

logger = get_logger(__name__)


class OracleService:
    """
    Client-side accessor for the oracle market.

    Usage:
        service = OracleService(gateway, config)
        question = service.get_question(qid)
        if question.is_finalized and not question.is_claimed:
            handle = service.claim_winnings(qid)
            handle.wait(confirmations=3)
    """

    def __init__(self, gateway: ContractGateway, config: Optional[GatewayConfig] = None):
        self._gateway = gateway
        self._config = config or GatewayConfig()

        self._source = EventSource(gateway, self._config)
        self._aggregator = BondAggregator(decimals=self._config.decimals)
        self._reconstructor = ChainReconstructor()
        self._resolver = QuestionStateResolver(gateway, self._config)
        self._coordinator = SettlementCoordinator(
            gateway, self._resolver, self._source, self._reconstructor
        )

    @property
    def gateway(self) -> ContractGateway:
        return self._gateway

    @property
    def config(self) -> GatewayConfig:
        return self._config

    # ================================================================
    # QUERIES
    # ================================================================

    def get_question(self, question_id: str) -> Question:
        return self._resolver.resolve(question_id)

    def get_questions(self, question_ids: list[str]) -> list[Question]:
        return self._resolver.resolve_many(question_ids)

    def get_best_answer(self, question_id: str) -> str:
        return self._resolver.best_answer(question_id)

    def get_result_for_question(self, question_id: str) -> str:
        """Raises CallReverted if the question is not finalized."""
        return self._resolver.result(question_id)

    def get_bonds_by_answer(self, question_id: str, user: Optional[str] = None) -> BondLedger:
        """
        Bond totals per answer for one question.

        With `user`, only that user's answers are fetched, so the totals
        are theirs; `questions[question_id]` then holds the same numbers
        with a grand total.
        """
        events = self._source.fetch(to_bytes32_hex(question_id), user=user)
        return self._aggregator.aggregate(events, user=user)

    def get_my_bonds(self, user: Optional[str] = None) -> dict[str, QuestionBonds]:
        """
        Every bond `user` ever posted, grouped per question.

        Defaults to the gateway's signing account. No account, no bonds.
        """
        user = user or self._gateway.default_account
        if not user:
            return {}
        events = self._source.fetch(user=user)
        return self._aggregator.aggregate(events, user=user).questions

    # ================================================================
    # SETTLEMENT
    # ================================================================

    def preview_claim(self, question_id: str) -> ClaimChain:
        """The chain claim_winnings would submit right now."""
        events = self._source.fetch(to_bytes32_hex(question_id))
        return self._reconstructor.reconstruct(events)

    def verify_claim(self, question_id: str) -> bool:
        """
        Check the reconstructed chain against the current history hash.

        Only meaningful before the claim: once claimed, the on-ledger
        hash is NULL_HASH and no non-empty chain walks to it.
        """
        question_id = to_bytes32_hex(question_id)
        question = self._resolver.resolve(question_id)
        events = self._source.fetch(question_id)
        chain = self._reconstructor.reconstruct(events)
        commitments = [e.is_commitment for e in reversed(events)]
        return verify_claim_chain(chain, question.history_hash, commitments)

    def claim_winnings(
        self,
        question_id: str,
        sender: Optional[str] = None,
    ) -> Union[TransactionHandle, bool]:
        return self._coordinator.claim(question_id, sender=sender)

    def submit_answer(
        self,
        question_id: str,
        answer_id: Union[str, int],
        amount: Union[Decimal, int, str],
        max_previous: int = 0,
        sender: Optional[str] = None,
    ) -> TransactionHandle:
        """
        Post a bonded answer. `amount` is in whole tokens, not base units.

        Token approval for the bond is the caller's responsibility.
        """
        tokens = to_smart_contract_decimals(amount, self._config.decimals)
        question_id = to_bytes32_hex(question_id)
        handle = self._gateway.submit_transaction(
            "submitAnswerERC20",
            (question_id, to_bytes32_hex(answer_id), max_previous, tokens),
            sender=sender,
        )
        logger.info(
            "Answer submitted",
            question_id=question_id,
            tokens=tokens,
            tx_hash=handle.tx_hash,
        )
        return handle


def create_gateway(config: GatewayConfig) -> ContractGateway:
    """
    Create the appropriate gateway based on configuration.

    Returns:
        InMemoryGateway for development/testing
        Web3Gateway when an RPC endpoint is configured
    """
    driver = get_gateway_driver(config)

    if driver == GatewayDriver.MEMORY:
        logger.info("Using in-memory gateway (no chain connection)")
        return InMemoryGateway()

    # Import here so the in-memory path never needs a node
    from ..gateway.web3_gateway import Web3Gateway

    logger.info("Using web3 gateway", **config.redacted())
    return Web3Gateway(config)


def create_service(config: Optional[GatewayConfig] = None) -> OracleService:
    config = config or GatewayConfig.from_env()
    return OracleService(create_gateway(config), config)
