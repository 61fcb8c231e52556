"""
Shared fixtures.

The standard scenario is one question with three answers in ledger order:

    A answers 1 with 10 tokens
    B answers 2 with  5 tokens
    A answers 1 with  3 tokens
"""

import pytest

from bondchain.core import OracleService
from bondchain.gateway import GatewayConfig, InMemoryGateway
from bondchain.numbers import to_bytes32_hex
from bondchain.observability import MetricsCollector


NOW = 1_700_000_000
TIMEOUT = 3600
TOKEN = 10 ** 18

ALICE = "0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1"
BOB = "0xFFcf8FDEE72ac11b5c542428B35EEF5769C409f0"
CAROL = "0x22d491Bde2303f2f43325b2108D26f1eAbA1e32b"

Q1 = to_bytes32_hex("0x51")
Q2 = to_bytes32_hex("0x52")
YES = to_bytes32_hex(1)
NO = to_bytes32_hex(2)


@pytest.fixture(autouse=True)
def fresh_metrics(monkeypatch):
    """Isolate the global metrics collector per test."""
    metrics = MetricsCollector()
    monkeypatch.setattr("bondchain.observability._metrics", metrics)
    return metrics


@pytest.fixture
def gateway():
    return InMemoryGateway(clock=lambda: NOW, default_account=ALICE)


@pytest.fixture
def answered(gateway):
    """Q1 with the standard three answers. Returns the raw records."""
    gateway.create_question(Q1, timeout=TIMEOUT)
    return [
        gateway.post_answer(Q1, YES, 10 * TOKEN, ALICE),
        gateway.post_answer(Q1, NO, 5 * TOKEN, BOB),
        gateway.post_answer(Q1, YES, 3 * TOKEN, ALICE),
    ]


@pytest.fixture
def finalized(gateway, answered):
    gateway.advance(TIMEOUT + 1)
    return answered


@pytest.fixture
def service(gateway):
    return OracleService(gateway, GatewayConfig())
