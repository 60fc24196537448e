"""
Integration tests for the Bag Ledger API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from bag_ledger.api import app
from bag_ledger.api import deps
from bag_ledger.config import BagLedgerConfig
from bag_ledger.exchange import create_exchange
from bag_ledger.treasury import InMemoryPaymentGateway


ADMIN = {"X-Account": "admin"}
ALICE = {"X-Account": "alice"}
BOB = {"X-Account": "bob"}


@pytest.fixture
def gateway():
    return InMemoryPaymentGateway()


@pytest.fixture
def client(gateway):
    """Create a test client with an in-memory exchange swapped in"""
    config = BagLedgerConfig(database_url="memory://", administrator="admin")
    deps.set_exchange(create_exchange(config, gateway=gateway))

    yield TestClient(app)
    deps.set_exchange(None)


class TestHealthEndpoints:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"

    def test_root(self, client):
        r = client.get("/")
        assert r.status_code == 200
        data = r.json()
        assert data["name"] == "CryptoBags"
        assert data["symbol"] == "CryptoBag"
        assert data["total_supply"] == 0
        assert "endpoints" in data


class TestBagFlow:

    def test_create_and_get_bag(self, client):
        r = client.post("/bags", json={"name": "Gucci"}, headers=ADMIN)
        assert r.status_code == 201
        assert r.json()["bag_id"] == 0

        r = client.get("/bags/0")
        assert r.status_code == 200
        data = r.json()
        assert data["name"] == "Gucci"
        assert data["price"] == "1000"
        assert data["held_by_ledger"] is True

    def test_create_requires_administrator(self, client):
        r = client.post("/bags", json={"name": "Gucci"}, headers=BOB)
        assert r.status_code == 403
        assert r.json()["detail"]["code"] == "AUTH/UNAUTHORIZED"

    def test_invalid_amount_rejected(self, client):
        r = client.post("/bags", json={"name": "Gucci", "price": "-5"}, headers=ADMIN)
        assert r.status_code == 422

    def test_ledger_held_bag_has_no_owner_account(self, client):
        client.post("/bags", json={"name": "Gucci"}, headers=ADMIN)
        client.post("/bags", json={"name": "Prada", "owner": "ledger"}, headers=ADMIN)

        held = client.get("/bags/0/owner").json()
        assert held["owner"] is None
        assert held["held_by_ledger"] is True
        owned = client.get("/bags/1/owner").json()
        assert owned["owner"] == "ledger"
        assert owned["held_by_ledger"] is False

    def test_unknown_bag(self, client):
        assert client.get("/bags/42").status_code == 404
        assert client.get("/bags/42/owner").status_code == 404

    def test_list_bags(self, client):
        for name in ("A", "B", "C"):
            client.post("/bags", json={"name": name}, headers=ADMIN)
        r = client.get("/bags", params={"offset": 1, "limit": 5})
        data = r.json()
        assert data["total_supply"] == 3
        assert [b["name"] for b in data["bags"]] == ["B", "C"]

    def test_purchase(self, client, gateway):
        client.post("/bags", json={"name": "Prada", "owner": "alice", "price": "100000"}, headers=ADMIN)

        r = client.post("/bags/0/purchase", json={"amount": "150000"}, headers=BOB)
        assert r.status_code == 200
        receipt = r.json()
        assert receipt["new_price"] == "130000"
        assert receipt["payout"] == "85000"
        assert receipt["refund"] == "50000"
        assert gateway.total_delivered("alice") == 85000

        assert client.get("/bags/0/owner").json()["owner"] == "bob"
        assert client.get("/bags/0/price").json()["price"] == "130000"

    def test_purchase_errors(self, client):
        client.post("/bags", json={"name": "Prada", "owner": "alice"}, headers=ADMIN)

        r = client.post("/bags/0/purchase", json={"amount": "10"}, headers=BOB)
        assert r.status_code == 400
        assert r.json()["detail"]["code"] == "SALE/INSUFFICIENT_PAYMENT"

        r = client.post("/bags/0/purchase", json={"amount": "1000"}, headers=ALICE)
        assert r.status_code == 400
        assert r.json()["detail"]["code"] == "SALE/SELF_PURCHASE"

        r = client.post("/bags/0/purchase", json={"amount": "1000"})
        assert r.status_code == 400
        assert r.json()["detail"]["code"] == "TRANSFER/INVALID_RECIPIENT"

    def test_large_amounts_stay_exact(self, client):
        price = str(2**200)
        client.post("/bags", json={"name": "Whale", "price": price}, headers=ADMIN)
        r = client.post("/bags/0/purchase", json={"amount": price}, headers=BOB)
        assert r.status_code == 200
        assert r.json()["new_price"] == str(2**200 * 115 // 100)


class TestTransferFlow:

    def test_approve_and_take_ownership(self, client):
        client.post("/bags", json={"name": "Prada", "owner": "alice"}, headers=ADMIN)

        r = client.post("/bags/0/approve", json={"to": "bob"}, headers=ALICE)
        assert r.status_code == 200
        assert client.get("/bags/0/approval").json()["approved"] == "bob"

        r = client.post("/bags/0/take-ownership", headers=BOB)
        assert r.status_code == 200
        assert client.get("/accounts/bob").json()["bags"] == [0]

    def test_transfer_from_without_approval(self, client):
        client.post("/bags", json={"name": "Prada", "owner": "alice"}, headers=ADMIN)
        r = client.post("/bags/0/transfer-from", json={"from_account": "alice", "to": "bob"}, headers=BOB)
        assert r.status_code == 403
        assert client.get("/bags/0/owner").json()["owner"] == "alice"

    def test_direct_transfer(self, client):
        client.post("/bags", json={"name": "Prada", "owner": "alice"}, headers=ADMIN)
        r = client.post("/bags/0/transfer", json={"to": "bob"}, headers=ALICE)
        assert r.status_code == 200
        account = client.get("/accounts/alice").json()
        assert account["balance"] == 0


class TestAdminFlow:

    def test_withdraw(self, client, gateway):
        client.post("/bags", json={"name": "Gucci"}, headers=ADMIN)
        client.post("/bags/0/purchase", json={"amount": "1000"}, headers=BOB)

        info = client.get("/admin").json()
        assert info["treasury"]["fee_income"] == "150"
        assert info["withdrawable"] == "1000"

        r = client.post("/admin/withdraw", json={}, headers=ADMIN)
        assert r.status_code == 200
        assert r.json() == {"amount": "1000", "to": "admin"}
        assert gateway.total_delivered("admin") == 1000

    def test_withdraw_requires_administrator(self, client):
        r = client.post("/admin/withdraw", json={}, headers=BOB)
        assert r.status_code == 403

    def test_set_administrator(self, client):
        r = client.put("/admin/administrator", json={"account": "root"}, headers=ADMIN)
        assert r.status_code == 200
        assert client.get("/admin").json()["administrator"] == "root"

    def test_audit_verification(self, client):
        client.post("/bags", json={"name": "Gucci"}, headers=ADMIN)
        client.post("/bags/0/purchase", json={"amount": "1000"}, headers=BOB)
        data = client.get("/admin/audit/verify").json()
        assert data["valid"] is True
        assert data["total_events"] == 2


class TestPullSettlementFlow:

    @pytest.fixture
    def client(self, gateway):
        config = BagLedgerConfig(database_url="memory://", administrator="admin", settlement_mode="pull")
        deps.set_exchange(create_exchange(config, gateway=gateway))
        yield TestClient(app)
        deps.set_exchange(None)

    def test_credit_and_withdraw(self, client, gateway):
        client.post("/bags", json={"name": "Prada", "owner": "alice", "price": "1000"}, headers=ADMIN)
        client.post("/bags/0/purchase", json={"amount": "1000"}, headers=BOB)

        assert client.get("/accounts/alice").json()["credit"] == "850"
        assert gateway.deliveries == []

        r = client.post("/accounts/withdraw-credit", headers=ALICE)
        assert r.json()["amount"] == "850"
        assert gateway.total_delivered("alice") == 850
