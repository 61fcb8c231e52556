"""
Tests for the HTTP surface.
"""

import pytest
from fastapi.testclient import TestClient

from bondchain.main import create_app

from conftest import ALICE, BOB, NO, Q1, Q2, TIMEOUT, TOKEN, YES


@pytest.fixture
def client(service):
    with TestClient(create_app(service)) as client:
        yield client


class TestQuestionRoutes:

    def test_unknown_question(self, client):
        response = client.get(f"/api/questions/{Q2}")
        assert response.status_code == 200
        assert response.json()["exists"] is False

    def test_question_state(self, client, answered):
        body = client.get(f"/api/questions/{Q1}").json()
        assert body["question_id"] == Q1
        assert body["status"] == "pending"
        assert body["best_answer"] == YES
        assert body["history_hash"] == answered[-1]["history_hash"]

    def test_short_id_is_normalized(self, client, answered):
        body = client.get("/api/questions/0x51").json()
        assert body["question_id"] == Q1
        assert body["exists"] is True

    def test_bad_id(self, client):
        response = client.get("/api/questions/0xnothex")
        assert response.status_code == 400

    def test_bonds(self, client, answered):
        body = client.get(f"/api/questions/{Q1}/bonds").json()
        assert {k: float(v) for k, v in body["answers"].items()} == {YES: 13.0, NO: 5.0}
        assert float(body["total"]) == 18.0

    def test_bonds_for_user(self, client, answered):
        body = client.get(f"/api/questions/{Q1}/bonds", params={"user": BOB}).json()
        assert list(body["answers"]) == [NO]
        assert body["user"] == BOB

    def test_bonds_bad_user(self, client, answered):
        response = client.get(f"/api/questions/{Q1}/bonds", params={"user": "0xnotanaddress"})
        assert response.status_code == 400

    def test_result_before_finalization(self, client, answered):
        response = client.get(f"/api/questions/{Q1}/result")
        assert response.status_code == 422
        assert response.json()["detail"]["reason"] == "question must be finalized"

    def test_result(self, client, finalized):
        assert client.get(f"/api/questions/{Q1}/result").json()["result"] == YES

    def test_unavailable(self, client, gateway):
        gateway.set_unavailable()
        assert client.get(f"/api/questions/{Q1}").status_code == 503


class TestClaimRoutes:

    def test_claim_chain(self, client, answered):
        body = client.get(f"/api/questions/{Q1}/claim-chain").json()
        assert body["entries"] == 3
        assert body["history_hashes"][-1] == "0x" + "00" * 32
        assert body["bonds"] == [str(3 * TOKEN), str(5 * TOKEN), str(10 * TOKEN)]
        assert body["answers"] == [YES, NO, YES]

    def test_claim_before_finalization(self, client, answered):
        body = client.post(f"/api/questions/{Q1}/claim").json()
        assert body == {"question_id": Q1, "submitted": False, "tx_hash": None}

    def test_claim(self, client, finalized):
        body = client.post(f"/api/questions/{Q1}/claim").json()
        assert body["submitted"] is True
        assert body["tx_hash"].startswith("0x")

        assert client.get(f"/api/questions/{Q1}").json()["status"] == "claimed"
        assert client.post(f"/api/questions/{Q1}/claim").json()["submitted"] is False

    def test_account_bonds(self, client, gateway, answered):
        gateway.create_question(Q2, timeout=TIMEOUT)
        gateway.post_answer(Q2, NO, TOKEN, ALICE)

        body = client.get(f"/api/accounts/{ALICE}/bonds").json()
        assert set(body) == {Q1, Q2}
        assert float(body[Q1]["total"]) == 13.0

    def test_account_bonds_bad_address(self, client):
        assert client.get("/api/accounts/0x1234/bonds").status_code == 400


class TestSystemRoutes:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["checks"]["gateway"]["driver"] == "InMemoryGateway"

    def test_health_unavailable(self, client, gateway):
        gateway.set_unavailable()
        response = client.get("/health")
        assert response.status_code == 503

    def test_request_id_header(self, client):
        response = client.get("/health")
        assert "X-Request-ID" in response.headers

    def test_metrics(self, client, answered):
        client.get(f"/api/questions/{Q1}/bonds")
        summary = client.get("/metrics").json()
        assert summary["fetches_total"] >= 1
        assert summary["events_fetched"] >= 3
