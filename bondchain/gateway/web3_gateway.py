"""
Web3 Contract Gateway

Production ContractGateway over JSON-RPC using web3.py.

Provides:
- Struct/view reads of question state
- LogNewAnswer queries filtered on the indexed question_id / user topics,
  paged over block ranges when the node caps eth_getLogs
- Locally signed transactions (eth-account), with the node's revert
  reason surfaced verbatim
- Cancellable confirmation waits

THREAD SAFETY:
The Web3 instance and contract object are read-only after construction;
each call builds its own request, so one gateway can serve many threads.
Nonces come from the node ("pending"), so concurrent submissions from
the same key are the caller's problem.
"""

import threading
import time
from typing import Any, Optional, Sequence, Union

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3Exception

from ..numbers import to_bytes32_hex
from ..observability import get_logger
from .abi import ORACLE_ABI
from .config import GatewayConfig
from .gateway import (
    QUESTION_STRUCT_FIELDS,
    QUESTION_VIEW_FIELDS,
    CallReverted,
    ConfirmationTimeout,
    ContractGateway,
    SourceUnavailable,
    SubmissionCancelled,
    SubmissionRejected,
    TransactionHandle,
)

logger = get_logger(__name__)

# Connection-level failures. requests' exceptions derive from OSError.
_READ_ERRORS = (Web3Exception, OSError, ValueError)


def _revert_reason(exc: ContractLogicError) -> str:
    return getattr(exc, "message", None) or str(exc)


class Web3TransactionHandle(TransactionHandle):
    """Handle for a transaction sent to a live node."""

    def __init__(self, w3: Web3, tx_hash: str, method: str, config: GatewayConfig):
        self._w3 = w3
        self._tx_hash = tx_hash
        self._method = method
        self._config = config

    @property
    def tx_hash(self) -> str:
        return self._tx_hash

    def wait(
        self,
        confirmations: Optional[int] = None,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> dict[str, Any]:
        confirmations = self._config.confirmations if confirmations is None else confirmations
        timeout = self._config.receipt_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        cancel = cancel or threading.Event()

        while True:
            if cancel.is_set():
                raise SubmissionCancelled(f"Wait for {self._tx_hash} cancelled")

            try:
                receipt = self._w3.eth.get_transaction_receipt(self._tx_hash)
                head = self._w3.eth.block_number if receipt is not None else None
            except TransactionNotFound:
                receipt = None
            except _READ_ERRORS as e:
                raise SourceUnavailable(f"Could not read receipt for {self._tx_hash}: {e}") from e

            if receipt is not None:
                if receipt["status"] == 0:
                    raise SubmissionRejected(
                        "transaction reverted",
                        method=self._method,
                        tx_hash=self._tx_hash,
                    )
                depth = head - receipt["blockNumber"] + 1
                if depth >= confirmations:
                    result = dict(receipt)
                    result["transactionHash"] = Web3.to_hex(receipt["transactionHash"])
                    return result

            if time.monotonic() >= deadline:
                raise ConfirmationTimeout(
                    f"{self._tx_hash} not {confirmations} blocks deep after {timeout}s"
                )
            cancel.wait(self._config.poll_interval)


class Web3Gateway(ContractGateway):
    """
    ContractGateway backed by a JSON-RPC node.

    Usage:
        gateway = Web3Gateway(GatewayConfig.from_env())
        state = gateway.read_state(qid, ["history_hash", "is_finalized"])
    """

    def __init__(self, config: GatewayConfig, w3: Optional[Web3] = None):
        if not config.contract_address:
            raise ValueError("Please provide a contract address (BONDCHAIN_CONTRACT_ADDRESS)")
        if w3 is None:
            if not config.rpc_url:
                raise ValueError("Please provide a valid RPC URL (BONDCHAIN_RPC_URL)")
            w3 = Web3(Web3.HTTPProvider(
                config.rpc_url,
                request_kwargs={"timeout": config.request_timeout},
            ))

        self._config = config
        self._w3 = w3
        self._contract = w3.eth.contract(
            address=Web3.to_checksum_address(config.contract_address),
            abi=ORACLE_ABI,
        )
        self._account = Account.from_key(config.private_key) if config.private_key else None

    @property
    def w3(self) -> Web3:
        return self._w3

    @property
    def default_account(self) -> Optional[str]:
        return self._account.address if self._account else None

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------

    def read_state(self, entity_id: str, fields: Sequence[str]) -> dict[str, Any]:
        unknown = [n for n in fields if n not in QUESTION_STRUCT_FIELDS + QUESTION_VIEW_FIELDS]
        if unknown:
            raise ValueError(f"Unknown question fields: {unknown}")

        question_id = to_bytes32_hex(entity_id)
        functions = self._contract.functions
        state: dict[str, Any] = {}

        try:
            if any(name in QUESTION_STRUCT_FIELDS for name in fields):
                raw = dict(zip(QUESTION_STRUCT_FIELDS, functions.questions(question_id).call()))
                for name in fields:
                    if name in raw:
                        value = raw[name]
                        state[name] = to_bytes32_hex(value) if isinstance(value, bytes) else value

            for name in fields:
                if name == "is_finalized":
                    state[name] = bool(functions.isFinalized(question_id).call())
                elif name == "current_answer":
                    state[name] = to_bytes32_hex(functions.getBestAnswer(question_id).call())
                elif name == "result":
                    state[name] = to_bytes32_hex(functions.resultFor(question_id).call())
        except ContractLogicError as e:
            raise CallReverted(_revert_reason(e)) from e
        except _READ_ERRORS as e:
            raise SourceUnavailable(f"Could not read question {question_id}: {e}") from e

        return state

    def _block_ranges(self, from_block: int, to_block: int):
        chunk = self._config.log_chunk_size
        if chunk <= 0:
            yield from_block, to_block
            return
        start = from_block
        while start <= to_block:
            end = min(start + chunk - 1, to_block)
            yield start, end
            start = end + 1

    def query_events(
        self,
        event_name: str,
        entity_id: Optional[str] = None,
        user: Optional[str] = None,
        from_block: int = 0,
        to_block: Union[int, str] = "latest",
    ) -> list[dict[str, Any]]:
        argument_filters: dict[str, Any] = {}
        if entity_id is not None:
            argument_filters["question_id"] = to_bytes32_hex(entity_id)
        if user is not None:
            argument_filters["user"] = Web3.to_checksum_address(user)

        event = getattr(self._contract.events, event_name)
        records: list[dict[str, Any]] = []

        try:
            last_block = self._w3.eth.block_number if to_block == "latest" else int(to_block)
            for start, end in self._block_ranges(from_block, last_block):
                logs = event.get_logs(
                    argument_filters=argument_filters,
                    from_block=start,
                    to_block=end,
                )
                records.extend(self._to_record(log) for log in logs)
        except _READ_ERRORS as e:
            raise SourceUnavailable(f"Could not query {event_name} logs: {e}") from e

        logger.debug(
            "Queried event logs",
            event_name=event_name,
            question_id=argument_filters.get("question_id"),
            user=argument_filters.get("user"),
            count=len(records),
        )
        return sorted(records, key=lambda r: r["sequence_index"])

    @staticmethod
    def _to_record(log) -> dict[str, Any]:
        args = log["args"]
        block_number = log["blockNumber"]
        log_index = log["logIndex"]
        return {
            "question_id": to_bytes32_hex(args["question_id"]),
            "user": Web3.to_checksum_address(args["user"]),
            "answer": to_bytes32_hex(args["answer"]),
            "bond": int(args["bond"]),
            "history_hash": to_bytes32_hex(args["history_hash"]),
            "ts": int(args["ts"]),
            "is_commitment": bool(args["is_commitment"]),
            # Ledger order: block first, then position inside the block
            "sequence_index": (block_number << 32) | log_index,
            "block_number": block_number,
            "log_index": log_index,
            "transaction_hash": Web3.to_hex(log["transactionHash"]),
        }

    def latest_block(self) -> int:
        try:
            return self._w3.eth.block_number
        except _READ_ERRORS as e:
            raise SourceUnavailable(f"Could not read block number: {e}") from e

    # ------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------

    def submit_transaction(
        self,
        method: str,
        args: Sequence[Any],
        sender: Optional[str] = None,
    ) -> TransactionHandle:
        if self._account is None:
            raise SubmissionRejected("no signing key configured (BONDCHAIN_PRIVATE_KEY)", method=method)
        if sender is not None and sender.lower() != self._account.address.lower():
            raise SubmissionRejected(f"cannot sign for {sender}", method=method)

        fn = getattr(self._contract.functions, method)(*args)

        try:
            tx_params: dict[str, Any] = {
                "from": self._account.address,
                "nonce": self._w3.eth.get_transaction_count(self._account.address, "pending"),
            }
            if self._config.chain_id is not None:
                tx_params["chainId"] = self._config.chain_id
            if self._config.gas is not None:
                tx_params["gas"] = self._config.gas
            if self._config.gas_price is not None:
                tx_params["gasPrice"] = self._config.gas_price

            # build_transaction estimates gas, which is where reverts surface
            tx = fn.build_transaction(tx_params)
            signed = self._account.sign_transaction(tx)
            tx_hash = Web3.to_hex(self._w3.eth.send_raw_transaction(signed.raw_transaction))
        except ContractLogicError as e:
            reason = _revert_reason(e)
            logger.warning("Transaction rejected", method=method, reason=reason)
            raise SubmissionRejected(reason, method=method) from e
        except _READ_ERRORS as e:
            raise SourceUnavailable(f"Could not submit {method}: {e}") from e

        logger.info("Transaction sent", method=method, tx_hash=tx_hash)
        return Web3TransactionHandle(self._w3, tx_hash, method, self._config)
