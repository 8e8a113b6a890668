"""
Integration tests for the LedgerDesk API
Tests end-to-end reservation and ATM workflows using FastAPI TestClient
"""

import re
import pytest
import tempfile
from pathlib import Path
from fastapi.testclient import TestClient

from ledgerdesk.api import create_app
from ledgerdesk.config import AccountSeed, LedgerDeskConfig
from ledgerdesk.services import LedgerDeskServices


PNR_REGEX = re.compile(r"^\d{17}$")


@pytest.fixture
def data_dir():
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def services(data_dir):
    config = LedgerDeskConfig(
        data_dir=str(data_dir),
        atm_accounts=[
            AccountSeed(account_id="A", pin="1234", balance="100"),
            AccountSeed(account_id="B", pin="5678", balance="0"),
        ]
    )
    return LedgerDeskServices(config=config)


@pytest.fixture
def client(services):
    """Create a test client backed by file storage in a temp directory"""
    return TestClient(create_app(services))


def login(client, username, password):
    r = client.post("/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200
    return {"X-Session-Token": r.json()["token"]}


def atm_login(client, account_id, pin):
    r = client.post("/atm/login", json={"account_id": account_id, "pin": pin})
    assert r.status_code == 200
    return {"X-Session-Token": r.json()["token"]}


RESERVATION = {
    "passenger_name": "Alice Smith",
    "age": 34,
    "gender": "F",
    "train_no": "12301",
    "class_type": "AC",
    "journey_date": "2024-05-01",
    "origin": "Delhi",
    "destination": "Mumbai",
}


class TestHealthEndpoints:
    
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"
    
    def test_root(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert "reservations" in r.json()["endpoints"]
    
    def test_trains(self, client):
        r = client.get("/trains")
        assert r.status_code == 200
        assert {"train_no": "12301", "train_name": "Mumbai Express"} in r.json()


class TestStartup:
    
    def test_data_files_created(self, services, data_dir):
        """Test that startup creates both data files"""
        assert (data_dir / "users.csv").read_text(encoding="utf-8") == "admin,admin123\n"
        assert (data_dir / "reservations.csv").read_text(encoding="utf-8").startswith("PNR,Username,")
        assert services.credential_store.count() == 1
        assert sorted(services.account_ledger.list_account_ids()) == ["A", "B"]


class TestAuthFlow:
    
    def test_register_and_login(self, client, data_dir):
        r = client.post("/auth/register", json={"username": "alice", "password": "secret1"})
        assert r.status_code == 201
        assert r.json()["username"] == "alice"
        
        r = client.post("/auth/login", json={"username": "alice", "password": "secret1"})
        assert r.status_code == 200
        assert r.json()["subject"] == "alice"
        assert r.json()["token"]
        
        assert "alice,secret1" in (data_dir / "users.csv").read_text(encoding="utf-8")
    
    def test_duplicate_registration(self, client):
        client.post("/auth/register", json={"username": "alice", "password": "secret1"})
        
        r = client.post("/auth/register", json={"username": "alice", "password": "other"})
        assert r.status_code == 409
    
    def test_empty_registration(self, client):
        r = client.post("/auth/register", json={"username": "", "password": "x"})
        assert r.status_code == 400
    
    def test_failed_login(self, client):
        r = client.post("/auth/login", json={"username": "admin", "password": "nope"})
        assert r.status_code == 401
        assert r.json()["detail"] == "Login failed. Check credentials."
    
    def test_logout(self, client):
        headers = login(client, "admin", "admin123")
        
        r = client.post("/auth/logout", headers=headers)
        assert r.json()["logged_out"] is True
        
        r = client.get("/reservations", headers=headers)
        assert r.status_code == 401


class TestReservationFlow:
    
    def test_reservation_lifecycle(self, client):
        """Test register, book, list and confirmed cancel"""
        client.post("/auth/register", json={"username": "alice", "password": "secret1"})
        headers = login(client, "alice", "secret1")
        
        r = client.post("/reservations", json=RESERVATION, headers=headers)
        assert r.status_code == 201
        created = r.json()
        assert PNR_REGEX.match(created["pnr"])
        assert created["owner"] == "alice"
        assert created["train_name"] == "Mumbai Express"
        
        r = client.get("/reservations", headers=headers)
        assert r.status_code == 200
        mine = r.json()
        assert len(mine) == 1
        assert mine[0]["pnr"] == created["pnr"]
        assert mine[0]["journey_date"] == "2024-05-01"
        assert mine[0]["origin"] == "Delhi"
        assert mine[0]["destination"] == "Mumbai"
        
        r = client.get(f"/reservations/{created['pnr']}", headers=headers)
        assert r.status_code == 200
        
        # Without confirmation nothing is removed
        r = client.delete(f"/reservations/{created['pnr']}", headers=headers)
        assert r.json()["status"] == "aborted"
        assert len(client.get("/reservations", headers=headers).json()) == 1
        
        r = client.delete(f"/reservations/{created['pnr']}?confirm=true", headers=headers)
        assert r.status_code == 200
        assert r.json()["status"] == "cancelled"
        
        assert client.get("/reservations", headers=headers).json() == []
        r = client.get(f"/reservations/{created['pnr']}", headers=headers)
        assert r.status_code == 404
    
    def test_other_user_cannot_cancel(self, client):
        client.post("/auth/register", json={"username": "alice", "password": "secret1"})
        alice = login(client, "alice", "secret1")
        admin = login(client, "admin", "admin123")
        
        pnr = client.post("/reservations", json=RESERVATION, headers=alice).json()["pnr"]
        
        r = client.delete(f"/reservations/{pnr}?confirm=true", headers=admin)
        assert r.status_code == 403
        r = client.get(f"/reservations/{pnr}", headers=admin)
        assert r.status_code == 403
        assert client.get("/reservations", headers=admin).json() == []
        
        assert len(client.get("/reservations", headers=alice).json()) == 1
    
    def test_requires_login(self, client):
        r = client.post("/reservations", json=RESERVATION)
        assert r.status_code == 401
        r = client.get("/reservations", headers={"X-Session-Token": "bogus"})
        assert r.status_code == 401
    
    def test_unknown_pnr(self, client):
        headers = login(client, "admin", "admin123")
        
        r = client.delete("/reservations/20240101000000123?confirm=true", headers=headers)
        assert r.status_code == 404
    
    def test_lenient_reservation_input(self, client):
        headers = login(client, "admin", "admin123")
        body = dict(RESERVATION, age="unknown", train_no="00000", journey_date="someday")
        
        r = client.post("/reservations", json=body, headers=headers)
        assert r.status_code == 201
        assert r.json()["age"] == 0
        assert r.json()["train_name"] == "Unknown Train"


class TestAtmFlow:
    
    def test_atm_scenario(self, client):
        """Test overdraw, deposit, transfer and history over the API"""
        headers = atm_login(client, "A", "1234")
        
        r = client.post("/atm/withdraw", json={"amount": "150"}, headers=headers)
        assert r.status_code == 409
        assert client.get("/atm/balance", headers=headers).json()["balance"] == "100.00"
        
        r = client.post("/atm/deposit", json={"amount": "50"}, headers=headers)
        assert r.status_code == 200
        assert r.json()["balance"] == "150.00"
        
        r = client.post("/atm/transfer", json={"to_account_id": "B", "amount": "150"}, headers=headers)
        assert r.status_code == 200
        assert r.json()["balance"] == "0.00"
        
        b_headers = atm_login(client, "B", "5678")
        assert client.get("/atm/balance", headers=b_headers).json()["balance"] == "150.00"
        
        history = client.get("/atm/history", headers=headers).json()["transactions"]
        assert [t["kind"] for t in history] == ["deposit", "transfer-out"]
        assert history[1]["counterpart_account_id"] == "B"
    
    def test_invalid_amount(self, client):
        headers = atm_login(client, "A", "1234")
        
        for amount in ["0", "-10", "ten"]:
            r = client.post("/atm/withdraw", json={"amount": amount}, headers=headers)
            assert r.status_code == 400
    
    def test_transfer_to_unknown_account(self, client):
        headers = atm_login(client, "A", "1234")
        
        r = client.post("/atm/transfer", json={"to_account_id": "Z", "amount": "10"}, headers=headers)
        assert r.status_code == 404
        assert client.get("/atm/balance", headers=headers).json()["balance"] == "100.00"
    
    def test_wrong_pin(self, client):
        r = client.post("/atm/login", json={"account_id": "A", "pin": "0000"})
        assert r.status_code == 401
    
    def test_sessions_are_not_interchangeable(self, client):
        """Test that a desk session cannot use the ATM and vice versa"""
        user = login(client, "admin", "admin123")
        atm = atm_login(client, "A", "1234")
        
        assert client.get("/atm/balance", headers=user).status_code == 401
        assert client.get("/reservations", headers=atm).status_code == 401
    
    def test_atm_logout(self, client):
        headers = atm_login(client, "A", "1234")
        
        client.post("/atm/logout", headers=headers)
        
        assert client.get("/atm/balance", headers=headers).status_code == 401
