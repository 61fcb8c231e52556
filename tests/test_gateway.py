"""
Tests for the gateway layer: the in-memory ledger, configuration, and
the parts of the web3 adapter that run without a node.
"""

import threading
from types import SimpleNamespace

import pytest
from web3 import Web3

from bondchain.gateway import (
    CallReverted,
    ConfirmationTimeout,
    GatewayConfig,
    GatewayDriver,
    InMemoryGateway,
    SourceUnavailable,
    SubmissionCancelled,
    SubmissionRejected,
    get_gateway_driver,
)
from bondchain.gateway.web3_gateway import Web3Gateway, Web3TransactionHandle
from bondchain.numbers import NULL_HASH, to_bytes32_hex

from conftest import ALICE, BOB, NOW, Q1, Q2, TIMEOUT, TOKEN, YES


CONTRACT = "0x5b7dd1e86623548af054a4985f7fc8ccbb554e2c"


class TestInMemoryGateway:

    def test_unknown_question_reads_zeroed(self, gateway):
        state = gateway.read_state(Q2, ["timeout", "history_hash", "is_finalized"])
        assert state == {"timeout": 0, "history_hash": NULL_HASH, "is_finalized": False}

    def test_finalizes_after_timeout(self, gateway, answered):
        assert not gateway.read_state(Q1, ["is_finalized"])["is_finalized"]
        gateway.advance(TIMEOUT)
        assert gateway.read_state(Q1, ["is_finalized"])["is_finalized"]

    def test_result_reverts_until_finalized(self, gateway, answered):
        with pytest.raises(CallReverted) as exc:
            gateway.read_state(Q1, ["result"])
        assert exc.value.reason == "question must be finalized"

        gateway.advance(TIMEOUT)
        assert gateway.read_state(Q1, ["result"])["result"] == YES

    def test_no_answers_after_finalization(self, gateway, finalized):
        with pytest.raises(SubmissionRejected):
            gateway.post_answer(Q1, YES, TOKEN, BOB)

    def test_current_answer_view(self, gateway, answered):
        assert gateway.read_state(Q1, ["current_answer"]) == {"current_answer": YES}

    def test_unknown_field(self, gateway):
        with pytest.raises(ValueError):
            gateway.read_state(Q1, ["nonsense"])

    def test_events_in_ledger_order(self, gateway, answered):
        records = gateway.query_events("LogNewAnswer", entity_id=Q1)
        assert [r["sequence_index"] for r in records] == sorted(r["sequence_index"] for r in answered)
        assert gateway.query_events("LogSomethingElse", entity_id=Q1) == []

    def test_block_range_filter(self, gateway, answered):
        first_block = answered[0]["block_number"]
        records = gateway.query_events("LogNewAnswer", entity_id=Q1, from_block=first_block + 1)
        assert len(records) == 2

    def test_claim_empties_history(self, gateway, finalized):
        records = list(reversed(finalized))
        hashes = [r["history_hash"] for r in records[1:]] + [NULL_HASH]
        gateway.submit_transaction(
            "claimWinnings",
            (
                Q1,
                hashes,
                [r["user"] for r in records],
                [r["bond"] for r in records],
                [r["answer"] for r in records],
            ),
        )
        assert gateway.read_state(Q1, ["history_hash"])["history_hash"] == NULL_HASH

    def test_claim_rejects_bad_chain_verbatim(self, gateway, finalized):
        records = list(reversed(finalized))
        with pytest.raises(SubmissionRejected) as exc:
            gateway.submit_transaction(
                "claimWinnings",
                (
                    Q1,
                    [NULL_HASH] * 3,
                    [r["user"] for r in records],
                    [r["bond"] for r in records],
                    [r["answer"] for r in records],
                ),
            )
        assert exc.value.reason == "History input provided did not match the expected hash"
        assert exc.value.method == "claimWinnings"

    def test_claim_rejects_empty_chain(self, gateway, finalized):
        with pytest.raises(SubmissionRejected) as exc:
            gateway.submit_transaction("claimWinnings", (Q1, [], [], [], []))
        assert "at least one history hash entry" in exc.value.reason

    def test_unavailable(self, gateway):
        gateway.set_unavailable()
        with pytest.raises(SourceUnavailable):
            gateway.latest_block()
        with pytest.raises(SourceUnavailable):
            gateway.read_state(Q1, ["timeout"])

    def test_completed_transaction(self, gateway):
        gateway.create_question(Q2)
        handle = gateway.submit_transaction("submitAnswerERC20", (Q2, YES, 0, TOKEN))
        receipt = handle.wait(confirmations=3)
        assert receipt["status"] == 1
        assert receipt["transactionHash"] == handle.tx_hash

        cancel = threading.Event()
        cancel.set()
        with pytest.raises(SubmissionCancelled):
            handle.wait(cancel=cancel)


class TestGatewayConfig:

    def test_defaults(self):
        config = GatewayConfig()
        assert config.from_block == 0
        assert config.decimals == 18
        assert config.confirmations == 1

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("BONDCHAIN_RPC_URL", "http://localhost:8545")
        monkeypatch.setenv("BONDCHAIN_FROM_BLOCK", "12345")
        monkeypatch.setenv("BONDCHAIN_LOG_CHUNK_SIZE", "5000")
        monkeypatch.setenv("BONDCHAIN_CHAIN_ID", "100")
        monkeypatch.setenv("BONDCHAIN_PRIVATE_KEY", "0x" + "11" * 32)

        config = GatewayConfig.from_env()
        assert config.rpc_url == "http://localhost:8545"
        assert config.from_block == 12345
        assert config.log_chunk_size == 5000
        assert config.chain_id == 100
        assert config.gas is None

    def test_redacted_hides_key(self):
        config = GatewayConfig(private_key="0x" + "11" * 32)
        assert config.redacted()["has_private_key"] is True
        assert "0x" + "11" * 32 not in str(config.redacted())

    def test_driver_selection(self, monkeypatch):
        monkeypatch.delenv("BONDCHAIN_GATEWAY_DRIVER", raising=False)
        monkeypatch.delenv("BONDCHAIN_RPC_URL", raising=False)
        assert get_gateway_driver() == GatewayDriver.MEMORY

        monkeypatch.setenv("BONDCHAIN_RPC_URL", "http://localhost:8545")
        assert get_gateway_driver() == GatewayDriver.WEB3

        monkeypatch.setenv("BONDCHAIN_GATEWAY_DRIVER", "memory")
        assert get_gateway_driver() == GatewayDriver.MEMORY

        monkeypatch.setenv("BONDCHAIN_GATEWAY_DRIVER", "carrier-pigeon")
        with pytest.raises(ValueError):
            get_gateway_driver()

    def test_driver_follows_passed_config(self, monkeypatch):
        monkeypatch.delenv("BONDCHAIN_GATEWAY_DRIVER", raising=False)
        monkeypatch.delenv("BONDCHAIN_RPC_URL", raising=False)
        assert get_gateway_driver(GatewayConfig(rpc_url="http://localhost:8545")) == GatewayDriver.WEB3

        monkeypatch.setenv("BONDCHAIN_RPC_URL", "http://localhost:8545")
        assert get_gateway_driver(GatewayConfig()) == GatewayDriver.MEMORY

        monkeypatch.setenv("BONDCHAIN_GATEWAY_DRIVER", "memory")
        assert get_gateway_driver(GatewayConfig(rpc_url="http://localhost:8545")) == GatewayDriver.MEMORY


def _fake_w3(receipt=None, block_number=100):
    def get_transaction_receipt(tx_hash):
        return receipt
    return SimpleNamespace(eth=SimpleNamespace(
        get_transaction_receipt=get_transaction_receipt,
        block_number=block_number,
    ))


class TestWeb3TransactionHandle:

    TX = "0x" + "ab" * 32

    def _handle(self, w3):
        return Web3TransactionHandle(w3, self.TX, "claimWinnings", GatewayConfig(poll_interval=0.01))

    def test_confirmed(self):
        receipt = {"status": 1, "blockNumber": 98, "transactionHash": bytes.fromhex("ab" * 32)}
        result = self._handle(_fake_w3(receipt, block_number=100)).wait(confirmations=3, timeout=1)
        assert result["transactionHash"] == self.TX

    def test_reverted(self):
        receipt = {"status": 0, "blockNumber": 98, "transactionHash": bytes.fromhex("ab" * 32)}
        with pytest.raises(SubmissionRejected) as exc:
            self._handle(_fake_w3(receipt)).wait(timeout=1)
        assert exc.value.tx_hash == self.TX

    def test_not_deep_enough_times_out(self):
        receipt = {"status": 1, "blockNumber": 100, "transactionHash": bytes.fromhex("ab" * 32)}
        with pytest.raises(ConfirmationTimeout):
            self._handle(_fake_w3(receipt, block_number=100)).wait(confirmations=5, timeout=0.05)

    def test_cancelled(self):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(SubmissionCancelled):
            self._handle(_fake_w3(None)).wait(timeout=10, cancel=cancel)

    def test_head_read_failure_is_unavailable(self):
        class _DeadHead:
            def get_transaction_receipt(self, tx_hash):
                return {"status": 1, "blockNumber": 98, "transactionHash": bytes.fromhex("ab" * 32)}

            @property
            def block_number(self):
                raise ConnectionError("node went away")

        with pytest.raises(SourceUnavailable):
            self._handle(SimpleNamespace(eth=_DeadHead())).wait(timeout=1)


class TestWeb3Gateway:
    """Construction and record shaping; nothing here talks to a node."""

    def _gateway(self, **overrides):
        config = GatewayConfig(contract_address=CONTRACT, **overrides)
        return Web3Gateway(config, w3=Web3())

    def test_requires_contract_address(self):
        with pytest.raises(ValueError):
            Web3Gateway(GatewayConfig(rpc_url="http://localhost:8545"))

    def test_block_ranges_single_request_by_default(self):
        assert list(self._gateway()._block_ranges(0, 999)) == [(0, 999)]

    def test_block_ranges_chunked(self):
        gateway = self._gateway(log_chunk_size=400)
        assert list(gateway._block_ranges(100, 999)) == [(100, 499), (500, 899), (900, 999)]

    def test_record_shape(self):
        log = {
            "args": {
                "question_id": bytes.fromhex("51".rjust(64, "0")),
                "user": ALICE.lower(),
                "answer": bytes.fromhex("01".rjust(64, "0")),
                "bond": TOKEN,
                "history_hash": bytes.fromhex("cd" * 32),
                "ts": NOW,
                "is_commitment": False,
            },
            "blockNumber": 7,
            "logIndex": 3,
            "transactionHash": bytes.fromhex("ef" * 32),
        }
        record = Web3Gateway._to_record(log)
        assert record["question_id"] == Q1
        assert record["user"] == ALICE
        assert record["answer"] == YES
        assert record["history_hash"] == "0x" + "cd" * 32
        assert record["sequence_index"] == (7 << 32) | 3
        assert record["transaction_hash"] == "0x" + "ef" * 32

    def test_no_key_no_submission(self):
        gateway = self._gateway()
        assert gateway.default_account is None
        with pytest.raises(SubmissionRejected):
            gateway.submit_transaction("claimWinnings", (Q1, [], [], [], []))

    def test_key_sets_default_account(self):
        gateway = self._gateway(private_key="0x" + "11" * 32)
        assert Web3.is_checksum_address(gateway.default_account)
        with pytest.raises(SubmissionRejected):
            gateway.submit_transaction("claimWinnings", (Q1, [], [], [], []), sender=BOB)

    def test_unknown_field_rejected_before_any_call(self):
        with pytest.raises(ValueError):
            self._gateway().read_state(to_bytes32_hex(1), ["nonsense"])

    def test_current_answer_reads_best_answer_view(self):
        calls = []

        def get_best_answer(question_id):
            calls.append(question_id)
            return SimpleNamespace(call=lambda: bytes.fromhex("01".rjust(64, "0")))

        gateway = self._gateway()
        gateway._contract = SimpleNamespace(
            functions=SimpleNamespace(getBestAnswer=get_best_answer)
        )
        assert gateway.read_state(Q1, ["current_answer"]) == {"current_answer": YES}
        assert calls == [Q1]
