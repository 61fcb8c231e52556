"""
Contract Gateway Abstraction

This module defines the narrow capability the settlement core consumes,
and an in-memory implementation:
- ContractGateway: read_state / query_events / submit_transaction
- InMemoryGateway: a simulated oracle ledger for development and testing

The production adapter (web3.py over JSON-RPC) lives in web3_gateway.py.

The gateway is responsible for:
- Transport, signing, gas, confirmation policy
- Returning raw event records in ledger order
- Surfacing remote revert reasons verbatim

The settlement core retains responsibility for:
- Replaying events into bond totals
- Reconstructing the claim chain
- Deciding whether a claim is worth submitting

RAW EVENT RECORD CONTRACT:
query_events() returns dicts with these keys, in ledger order:

    question_id, user, answer, bond, history_hash, ts, is_commitment,
    sequence_index, block_number, log_index, transaction_hash
"""

import itertools
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence, Union

from ..hashing import compute_history_hash
from ..numbers import NULL_HASH, to_bytes32_hex


# ============================================================
# EXCEPTIONS
# ============================================================

class GatewayError(Exception):
    """Base exception for gateway errors."""
    pass


class SourceUnavailable(GatewayError):
    """Raised when the ledger cannot be read (network, timeout, bad response)."""
    pass


class CallReverted(GatewayError):
    """Raised when a read-only call is reverted by the contract."""

    def __init__(self, reason: str, method: Optional[str] = None):
        self.reason = reason
        self.method = method
        super().__init__(f"{method} reverted: {reason}" if method else reason)


class SubmissionRejected(GatewayError):
    """
    Raised when a transaction is rejected or reverts.

    `reason` is the remote revert reason, verbatim. Chain reconstruction
    bugs only ever show up here, so never rewrite it.
    """

    def __init__(self, reason: str, method: Optional[str] = None, tx_hash: Optional[str] = None):
        self.reason = reason
        self.method = method
        self.tx_hash = tx_hash
        super().__init__(f"{method} rejected: {reason}" if method else reason)


class ConfirmationTimeout(GatewayError):
    """Raised when a transaction does not reach the required depth in time."""
    pass


class SubmissionCancelled(GatewayError):
    """Raised when a caller cancels a wait on a transaction handle."""
    pass


# ============================================================
# TRANSACTION HANDLES
# ============================================================

class TransactionHandle(ABC):
    """
    A submitted transaction.

    Submission returns immediately; confirmation is a separate, cancellable
    wait. The settlement math never depends on it.
    """

    @property
    @abstractmethod
    def tx_hash(self) -> str:
        """Transaction hash (0x-hex)."""
        pass

    @abstractmethod
    def wait(
        self,
        confirmations: Optional[int] = None,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> dict[str, Any]:
        """
        Block until the transaction is `confirmations` blocks deep.

        Returns:
            The receipt as a plain dict

        Raises:
            SubmissionRejected: receipt status is 0
            ConfirmationTimeout: deadline passed
            SubmissionCancelled: `cancel` was set while waiting
        """
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.tx_hash}>"


@dataclass
class CompletedTransaction(TransactionHandle):
    """Handle for a transaction that was mined the moment it was sent."""
    _tx_hash: str
    receipt: dict[str, Any] = field(default_factory=dict)

    @property
    def tx_hash(self) -> str:
        return self._tx_hash

    def wait(self, confirmations=None, timeout=None, cancel=None) -> dict[str, Any]:
        if cancel is not None and cancel.is_set():
            raise SubmissionCancelled(f"Wait for {self._tx_hash} cancelled")
        return dict(self.receipt)


# ============================================================
# ABSTRACT BASE CLASS
# ============================================================

# Fields of the `questions(bytes32)` struct, in ABI order
QUESTION_STRUCT_FIELDS = (
    "content_hash",
    "arbitrator",
    "opening_ts",
    "timeout",
    "finalize_ts",
    "is_pending_arbitration",
    "bounty",
    "best_answer",
    "history_hash",
    "bond",
)

# Values produced by separate view calls rather than the struct
QUESTION_VIEW_FIELDS = (
    "is_finalized",    # isFinalized(bytes32)
    "current_answer",  # getBestAnswer(bytes32)
    "result",          # resultFor(bytes32), reverts unless finalized
)


class ContractGateway(ABC):
    """
    Abstract base class for the contract-call gateway.

    Implementations must ensure:
    1. query_events returns every matching record, in ledger order
    2. Read failures raise SourceUnavailable
    3. Rejected transactions raise SubmissionRejected with the remote reason
    4. No retries; retry policy is the caller's
    """

    @abstractmethod
    def read_state(self, entity_id: str, fields: Sequence[str]) -> dict[str, Any]:
        """
        Read raw attributes of a question.

        Args:
            entity_id: Question id
            fields: Names from QUESTION_STRUCT_FIELDS / QUESTION_VIEW_FIELDS

        Returns:
            Dict with exactly the requested keys. Unknown questions come
            back zero-valued, never as an error.
        """
        pass

    @abstractmethod
    def query_events(
        self,
        event_name: str,
        entity_id: Optional[str] = None,
        user: Optional[str] = None,
        from_block: int = 0,
        to_block: Union[int, str] = "latest",
    ) -> list[dict[str, Any]]:
        """
        Query raw event records, filtered by question and/or user.

        Returns:
            Raw records ordered by sequence_index ascending
        """
        pass

    @abstractmethod
    def submit_transaction(
        self,
        method: str,
        args: Sequence[Any],
        sender: Optional[str] = None,
    ) -> TransactionHandle:
        """
        Sign and send a state-changing call.

        Raises:
            SubmissionRejected: if the ledger refuses the call
        """
        pass

    @abstractmethod
    def latest_block(self) -> int:
        """Latest observed block number (used for health checks)."""
        pass

    @property
    def default_account(self) -> Optional[str]:
        """Account transactions are sent from when no sender is given."""
        return None


# ============================================================
# IN-MEMORY IMPLEMENTATION
# ============================================================

# finalize_ts sentinel the ledger uses for "answered too soon"
UNRESOLVED_ANSWERED_TOO_SOON = 1

ZERO_ADDRESS = "0x" + "00" * 20


@dataclass
class _QuestionState:
    content_hash: str = NULL_HASH
    arbitrator: str = ZERO_ADDRESS
    opening_ts: int = 0
    timeout: int = 0
    finalize_ts: int = 0
    is_pending_arbitration: bool = False
    bounty: int = 0
    best_answer: str = NULL_HASH
    history_hash: str = NULL_HASH
    bond: int = 0


class InMemoryGateway(ContractGateway):
    """
    In-memory simulation of the oracle ledger.

    Models exactly what the settlement core depends on:
    - Questions with timeouts and finalization
    - Answers chained into the history hash
    - claimWinnings walking the supplied chain back from the current
      history hash, rejecting on the first mismatch

    Suitable for:
    - Development
    - Testing

    NOT suitable for:
    - Anything that needs a real ledger
    """

    def __init__(
        self,
        clock: Optional[Callable[[], float]] = None,
        default_account: Optional[str] = None,
    ):
        self._clock = clock or time.time
        self._offset = 0
        self._default_account = default_account
        self._questions: dict[str, _QuestionState] = {}
        self._events: list[dict[str, Any]] = []
        self._sequence = itertools.count()
        self._block_number = 0
        self._unavailable = False
        self._lock = threading.Lock()

        # Every accepted submission, for inspection in tests
        self.submissions: list[tuple[str, tuple, Optional[str]]] = []

    # ------------------------------------------------------------
    # Simulation controls
    # ------------------------------------------------------------

    def now(self) -> int:
        return int(self._clock()) + self._offset

    def advance(self, seconds: int) -> None:
        """Move simulated time forward (to let questions finalize)."""
        self._offset += seconds

    def set_unavailable(self, unavailable: bool = True) -> None:
        """Make every call fail as if the RPC endpoint were down."""
        self._unavailable = unavailable

    def create_question(
        self,
        question_id: str,
        timeout: int = 86400,
        opening_ts: int = 0,
        arbitrator: str = ZERO_ADDRESS,
        bounty: int = 0,
    ) -> str:
        question_id = to_bytes32_hex(question_id)
        with self._lock:
            if question_id in self._questions:
                raise SubmissionRejected("question must not exist", method="askQuestion")
            if timeout <= 0:
                raise SubmissionRejected("timeout must be positive", method="askQuestion")
            self._questions[question_id] = _QuestionState(
                timeout=timeout,
                opening_ts=opening_ts,
                arbitrator=arbitrator,
                bounty=bounty,
            )
        return question_id

    def post_answer(
        self,
        question_id: str,
        answer: Union[str, int],
        bond: int,
        user: str,
        is_commitment: bool = False,
    ) -> dict[str, Any]:
        """Accept an answer and emit its LogNewAnswer record."""
        question_id = to_bytes32_hex(question_id)
        answer = to_bytes32_hex(answer)
        with self._lock:
            question = self._questions.get(question_id)
            if question is None or question.timeout == 0:
                raise SubmissionRejected("question must exist", method="submitAnswerERC20")
            if self._is_finalized(question):
                raise SubmissionRejected("finalization deadline must not have passed", method="submitAnswerERC20")
            if bond <= 0:
                raise SubmissionRejected("bond must be positive", method="submitAnswerERC20")

            new_hash = compute_history_hash(question.history_hash, answer, bond, user, is_commitment)
            question.history_hash = new_hash
            question.best_answer = answer
            question.bond = bond
            question.finalize_ts = self.now() + question.timeout

            self._block_number += 1
            record = {
                "question_id": question_id,
                "user": user,
                "answer": answer,
                "bond": bond,
                "history_hash": new_hash,
                "ts": self.now(),
                "is_commitment": is_commitment,
                "sequence_index": next(self._sequence),
                "block_number": self._block_number,
                "log_index": 0,
                "transaction_hash": to_bytes32_hex(self._block_number),
            }
            self._events.append(record)
            return dict(record)

    # ------------------------------------------------------------
    # ContractGateway
    # ------------------------------------------------------------

    def _check_available(self) -> None:
        if self._unavailable:
            raise SourceUnavailable("In-memory ledger marked unavailable")

    def _is_finalized(self, question: _QuestionState) -> bool:
        if question.is_pending_arbitration:
            return False
        return (
            question.finalize_ts > UNRESOLVED_ANSWERED_TOO_SOON
            and question.finalize_ts <= self.now()
        )

    def read_state(self, entity_id: str, fields: Sequence[str]) -> dict[str, Any]:
        self._check_available()
        question = self._questions.get(to_bytes32_hex(entity_id), _QuestionState())

        state: dict[str, Any] = {}
        for name in fields:
            if name in QUESTION_STRUCT_FIELDS:
                state[name] = getattr(question, name)
            elif name == "is_finalized":
                state[name] = self._is_finalized(question)
            elif name == "current_answer":
                state[name] = question.best_answer
            elif name == "result":
                if not self._is_finalized(question):
                    raise CallReverted("question must be finalized", method="resultFor")
                state[name] = question.best_answer
            else:
                raise ValueError(f"Unknown question field: {name}")
        return state

    def query_events(
        self,
        event_name: str,
        entity_id: Optional[str] = None,
        user: Optional[str] = None,
        from_block: int = 0,
        to_block: Union[int, str] = "latest",
    ) -> list[dict[str, Any]]:
        self._check_available()
        if event_name != "LogNewAnswer":
            return []

        question_id = to_bytes32_hex(entity_id) if entity_id is not None else None
        last_block = self._block_number if to_block == "latest" else int(to_block)

        records = [
            dict(e) for e in self._events
            if (question_id is None or e["question_id"] == question_id)
            and (user is None or e["user"].lower() == user.lower())
            and from_block <= e["block_number"] <= last_block
        ]
        return sorted(records, key=lambda e: e["sequence_index"])

    def submit_transaction(
        self,
        method: str,
        args: Sequence[Any],
        sender: Optional[str] = None,
    ) -> TransactionHandle:
        self._check_available()
        sender = sender or self._default_account

        if method == "claimWinnings":
            self._claim_winnings(*args)
        elif method == "submitAnswerERC20":
            question_id, answer, _max_previous, tokens = args
            if sender is None:
                raise SubmissionRejected("no sender account configured", method=method)
            self.post_answer(question_id, answer, tokens, sender)
        else:
            raise SubmissionRejected(f"unknown method {method}", method=method)

        self.submissions.append((method, tuple(args), sender))
        self._block_number += 1
        tx_hash = to_bytes32_hex(self._block_number)
        return CompletedTransaction(
            _tx_hash=tx_hash,
            receipt={
                "transactionHash": tx_hash,
                "blockNumber": self._block_number,
                "status": 1,
            },
        )

    def _claim_winnings(self, question_id, history_hashes, addrs, bonds, answers) -> None:
        """Walk the supplied chain back from the current history hash."""
        question_id = to_bytes32_hex(question_id)
        with self._lock:
            question = self._questions.get(question_id)
            if question is None or not self._is_finalized(question):
                raise SubmissionRejected("question must be finalized", method="claimWinnings")
            if not history_hashes:
                raise SubmissionRejected(
                    "at least one history hash entry must be provided", method="claimWinnings"
                )
            if not (len(history_hashes) == len(addrs) == len(bonds) == len(answers)):
                raise SubmissionRejected("array lengths must match", method="claimWinnings")

            last_hash = question.history_hash
            for prev_hash, addr, bond, answer in zip(history_hashes, addrs, bonds, answers):
                expected = compute_history_hash(prev_hash, answer, bond, addr, False)
                if expected != last_hash:
                    raise SubmissionRejected(
                        "History input provided did not match the expected hash",
                        method="claimWinnings",
                    )
                last_hash = to_bytes32_hex(prev_hash)

            question.history_hash = last_hash

    def latest_block(self) -> int:
        self._check_available()
        return self._block_number

    @property
    def default_account(self) -> Optional[str]:
        return self._default_account
