"""
Integration tests for the Loanbook API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from decimal import Decimal
from datetime import date, timedelta
from fastapi.testclient import TestClient

from loanbook.api import app
from loanbook.api.system import LoanbookSystem, get_system
from loanbook.config import get_config
from loanbook.storage import InMemoryStorage, ReadOnlyStorage


TODAY = "2024-05-01"


@pytest.fixture
def system():
    return LoanbookSystem(InMemoryStorage())


@pytest.fixture
def client(system):
    """Test client backed by a fresh in-memory system"""
    app.dependency_overrides[get_system] = lambda: system
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_client(client, name="Ana Costa", phone="555-0101"):
    r = client.post("/clients", json={"name": name, "phone": phone})
    assert r.status_code == 201
    return r.json()["client_id"]


def create_loan(client, client_id, **overrides):
    payload = {
        "client_id": client_id,
        "amount": "1000",
        "interest_rate": "20",
        "installment_count": 1,
        "interval_days": 30
    }
    payload.update(overrides)
    return client.post(f"/loans?today={TODAY}", json=payload)


class TestHealthEndpoints:
    """Test basic health endpoint"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "healthy"
        assert data["service"] == "loanbook_api"


class TestClientFlow:
    """End-to-end client management tests"""

    def test_create_and_get(self, client):
        client_id = create_client(client)

        r = client.get(f"/clients/{client_id}")
        assert r.status_code == 200
        assert r.json()["name"] == "Ana Costa"
        assert r.json()["phone"] == "555-0101"

    def test_blank_name_rejected(self, client):
        r = client.post("/clients", json={"name": "   "})
        assert r.status_code == 422

    def test_search(self, client):
        create_client(client, "Ana Costa", "555-0101")
        create_client(client, "Bruno Lima", "555-0202")

        r = client.get("/clients", params={"search": "bru"})
        assert [c["name"] for c in r.json()["clients"]] == ["Bruno Lima"]

        r = client.get("/clients")
        assert len(r.json()["clients"]) == 2

    def test_update_client(self, client):
        client_id = create_client(client)

        r = client.put(f"/clients/{client_id}", json={"phone": "555-9999"})
        assert r.status_code == 200
        assert r.json()["phone"] == "555-9999"
        assert r.json()["name"] == "Ana Costa"

    def test_missing_client(self, client):
        assert client.get("/clients/nope").status_code == 404
        assert client.delete("/clients/nope").status_code == 404

    def test_delete_keeps_loans(self, client):
        client_id = create_client(client)
        loan_id = create_loan(client, client_id).json()["loan_id"]

        r = client.delete(f"/clients/{client_id}")
        assert r.status_code == 200

        r = client.get(f"/loans/{loan_id}")
        assert r.status_code == 200
        assert r.json()["client_name"] == "Ana Costa"

        r = client.get(f"/clients/{client_id}/summary", params={"today": TODAY})
        assert r.json()["client"] is None
        assert r.json()["active_count"] == 1


class TestLoanFlow:
    """End-to-end loan lifecycle tests"""

    def test_create_single_payment_loan(self, client):
        client_id = create_client(client)

        r = create_loan(client, client_id)
        assert r.status_code == 201
        data = r.json()
        assert Decimal(data["total_owing"]) == Decimal("1200")
        assert data["due_date"] == "2024-05-31"

        r = client.get(f"/loans/{data['loan_id']}", params={"today": TODAY})
        loan = r.json()
        assert loan["plan"] == "single_payment"
        assert loan["display_status"] == "open"
        assert len(loan["installments"]) == 1

    def test_installment_plan_lifecycle(self, client):
        client_id = create_client(client)
        loan_id = create_loan(
            client, client_id, installment_count=3, interval_days=None, total_days=30
        ).json()["loan_id"]

        loan = client.get(f"/loans/{loan_id}", params={"today": TODAY}).json()
        assert [i["due_date"] for i in loan["installments"]] == ["2024-05-11", "2024-05-21", "2024-05-31"]
        assert [Decimal(i["amount"]) for i in loan["installments"]] == [Decimal("400")] * 3

        r = client.post(f"/loans/{loan_id}/installments/2/pay", params={"today": TODAY})
        assert r.status_code == 200
        assert r.json()["status"] == "active"
        assert Decimal(r.json()["remaining_balance"]) == Decimal("800")

        client.post(f"/loans/{loan_id}/installments/1/pay")
        r = client.post(f"/loans/{loan_id}/installments/3/pay")
        assert r.json()["status"] == "paid"
        assert r.json()["display_status"] == "paid"

    def test_unknown_installment(self, client):
        client_id = create_client(client)
        loan_id = create_loan(client, client_id, installment_count=2).json()["loan_id"]

        r = client.post(f"/loans/{loan_id}/installments/5/pay")
        assert r.status_code == 404

    def test_settle_is_final(self, client):
        client_id = create_client(client)
        loan_id = create_loan(client, client_id).json()["loan_id"]

        r = client.post(f"/loans/{loan_id}/settle", params={"today": TODAY})
        assert r.json()["status"] == "paid"
        assert r.json()["installments"][0]["status"] == "paid"

        r = client.post(f"/loans/{loan_id}/installments/1/pay")
        assert r.status_code == 200
        assert r.json()["status"] == "paid"
        assert r.json()["installments"][0]["status"] == "paid"
        assert Decimal(r.json()["remaining_balance"]) == Decimal("0")

    def test_validation_errors(self, client):
        client_id = create_client(client)

        assert create_loan(client, client_id, amount="0").status_code == 422
        assert create_loan(client, client_id, interest_rate="-1").status_code == 422
        assert create_loan(client, client_id, amount="abc").status_code == 422
        assert create_loan(client, None).status_code == 422
        assert create_loan(client, client_id, interval_days=-3).status_code == 422
        assert create_loan(client, "missing-client").status_code == 404

        assert client.get("/loans").json()["loans"] == []

    def test_missing_term_uses_default(self, client):
        client_id = create_client(client)
        default_days = get_config().default_term_days

        r = create_loan(client, client_id, interval_days=None)
        assert r.status_code == 201
        assert r.json()["due_date"] == (date(2024, 5, 1) + timedelta(days=default_days)).isoformat()

    def test_reschedule_and_notes(self, client):
        client_id = create_client(client)
        loan_id = create_loan(client, client_id).json()["loan_id"]

        r = client.put(f"/loans/{loan_id}/schedule", json={"due_date": "2024-06-15"})
        assert r.status_code == 200
        assert r.json()["due_date"] == "2024-06-15"

        r = client.put(f"/loans/{loan_id}/schedule", json={})
        assert r.status_code == 422

        r = client.put(f"/loans/{loan_id}/notes", json={"notes": "Pays on Fridays"})
        assert r.json()["notes"] == "Pays on Fridays"

    def test_list_filters(self, client):
        ana = create_client(client, "Ana Costa")
        bruno = create_client(client, "Bruno Lima")
        late = create_loan(client, ana, interval_days=5).json()["loan_id"]
        create_loan(client, bruno, interval_days=30)

        r = client.get("/loans", params={"today": "2024-05-10", "display_status": ["late"]})
        assert [loan["id"] for loan in r.json()["loans"]] == [late]

        r = client.get("/loans", params={"client_id": bruno})
        assert len(r.json()["loans"]) == 1

    def test_delete_loan(self, client):
        client_id = create_client(client)
        loan_id = create_loan(client, client_id).json()["loan_id"]

        assert client.delete(f"/loans/{loan_id}").status_code == 200
        assert client.get(f"/loans/{loan_id}").status_code == 404
        assert client.delete(f"/loans/{loan_id}").status_code == 404

    def test_quote(self, client):
        r = client.get("/loans/quote", params={"amount": "1000", "interest_rate": "20", "days": 30})
        assert r.status_code == 200
        data = r.json()
        assert Decimal(data["interest_amount"]) == Decimal("200")
        assert Decimal(data["total_to_pay"]) == Decimal("1200")
        assert Decimal(data["daily_payment"]) == Decimal("40")

        assert client.get("/loans/quote", params={"amount": "0"}).status_code == 422


class TestReportEndpoints:
    """Reporting endpoints"""

    def test_portfolio_and_collections(self, client):
        client_id = create_client(client)
        create_loan(client, client_id, interval_days=9)
        create_loan(client, client_id, amount="500", interval_days=30)

        r = client.get("/reports/portfolio", params={"today": "2024-05-10"})
        data = r.json()
        assert Decimal(data["total_lent"]) == Decimal("1500")
        assert Decimal(data["total_receivable"]) == Decimal("1800")
        assert data["active_loans_count"] == 2
        assert data["loans_due_today_count"] == 1

        r = client.get("/reports/collections", params={"today": "2024-05-10"})
        data = r.json()
        assert len(data["due_today_or_late"]) == 1
        assert len(data["upcoming"]) == 1
        assert Decimal(data["total_to_collect_today"]) == Decimal("1200")

    def test_history(self, client):
        client_id = create_client(client)
        loan_id = create_loan(client, client_id).json()["loan_id"]
        client.post(f"/loans/{loan_id}/settle")

        data = client.get("/reports/history").json()
        assert len(data["paid_loans"]) == 1
        assert Decimal(data["realized_profit"]) == Decimal("200")


class TestReadOnlyDeployment:
    """Store-side write rejections surface as 403"""

    def test_writes_forbidden(self, client, system):
        client_id = create_client(client)
        loan_id = create_loan(client, client_id).json()["loan_id"]

        app.dependency_overrides[get_system] = lambda: LoanbookSystem(ReadOnlyStorage(system.storage))

        assert client.post("/clients", json={"name": "New"}).status_code == 403
        assert client.post(f"/loans/{loan_id}/settle").status_code == 403
        r = client.get(f"/loans/{loan_id}")
        assert r.status_code == 200
        assert r.json()["status"] == "active"
