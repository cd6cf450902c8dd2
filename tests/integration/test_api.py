"""Integration tests for API endpoints"""

import json
from sqlalchemy import func, select
from fastapi.testclient import TestClient
from conftest import ScriptedReasoner, verdict_json
from capling_gateway.api.dependencies import get_reasoner
from capling_gateway.api.main import create_app
from capling_gateway.domain.classification import ReasonerSuccess
from capling_gateway.domain.exceptions import DatabaseError
from capling_gateway.infrastructure.database.models import AccountRecord
from capling_gateway.infrastructure.database.repositories import SqlLedgerStore
from capling_gateway.infrastructure.database.session import get_db

BASE_TIMESTAMP = 1_718_452_800_000


def _spend(client: TestClient, **overrides):
    body = {"userId": "user_1", "merchant": "Coffee Shop", "amount": 5.50, "category": "food"}
    body.update(overrides)
    return client.post("/transactions", json=body)


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "capling_transactions_total" in response.text


def test_create_transaction(client: TestClient, reasoner: ScriptedReasoner):
    """Test the success envelope for a new user's first spend"""
    reasoner.script(ReasonerSuccess(verdict_json("neutral", reflection="Small treats add up.")))

    response = _spend(client)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["newBalance"] == -3.5
    assert data["analysis"] == {"classification": "neutral", "reflection": "Small treats add up."}
    assert data["shouldShowGoalAllocation"] is False
    assert data["xpAwarded"] == 0

    transaction = data["transaction"]
    assert transaction["amount"] == 5.5
    assert transaction["type"] == "debit"
    assert transaction["justificationStatus"] == "pending"
    assert transaction["originalClassification"] == "neutral"
    assert isinstance(transaction["timestamp"], int)
    assert response.headers["X-Request-ID"]


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_deposit(client: TestClient, reasoner: ScriptedReasoner, make_account):
    make_account(balance_cents=10_000)

    response = _spend(client, merchant="Payroll", amount=-500, category="income")

    assert response.status_code == 200
    data = response.json()
    assert data["newBalance"] == 600.0
    assert data["transaction"]["type"] == "credit"
    assert data["transaction"]["amount"] == 500.0
    assert data["analysis"]["classification"] == "responsible"
    assert reasoner.prompts == []


def test_invalid_amount_writes_nothing(client: TestClient, db):
    """Test that validation fails before any account is created"""
    for amount in (0, 15000, -15000):
        response = _spend(client, amount=amount)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "VALIDATION_ERROR"
        assert data["details"] == {"field": "amount"}

    assert db.scalar(select(func.count()).select_from(AccountRecord)) == 0


def test_invalid_category(client: TestClient):
    response = _spend(client, category="gambling")

    assert response.status_code == 400
    assert response.json()["details"] == {"field": "category"}


def test_malformed_amount(client: TestClient):
    response = _spend(client, amount="lots")

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_missing_user_id(client: TestClient):
    body = {"merchant": "Coffee Shop", "amount": 5.50, "category": "food"}
    response = client.post("/transactions", json=body)

    assert response.status_code == 400
    assert response.json()["details"] == {"field": "userId"}


def test_database_failure_hides_details(client: TestClient, monkeypatch):
    """Test that server-side failure details are not returned"""

    def fail_insert(self, row):
        raise DatabaseError("Failed to create transaction", "connection string and secrets")

    monkeypatch.setattr(SqlLedgerStore, "insert_transaction", fail_insert)

    response = _spend(client)

    assert response.status_code == 500
    data = response.json()
    assert data["success"] is False
    assert data["code"] == "DATABASE_ERROR"
    assert data["details"] is None


def test_list_transactions(client: TestClient):
    """Test newest-first ordering and the default limit of 10"""
    for i in range(12):
        _spend(client, merchant=f"Shop {i}", timestamp=BASE_TIMESTAMP + i * 60_000)

    response = client.get("/transactions", params={"userId": "user_1"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert len(data["data"]) == 10
    assert data["data"][0]["merchant"] == "Shop 11"
    assert data["data"][0]["timestamp"] == BASE_TIMESTAMP + 11 * 60_000

    response = client.get("/transactions", params={"userId": "user_1", "limit": 100})
    assert len(response.json()["data"]) == 12


def test_list_transactions_validation(client: TestClient):
    assert client.get("/transactions").status_code == 400
    assert client.get("/transactions", params={"userId": "user_1", "limit": 0}).status_code == 400
    assert client.get("/transactions", params={"userId": "user_1", "limit": 101}).status_code == 400


def test_list_transactions_for_unknown_user(client: TestClient, db):
    response = client.get("/transactions", params={"userId": "nobody"})

    assert response.status_code == 200
    assert response.json()["data"] == []
    assert db.scalar(select(func.count()).select_from(AccountRecord)) == 0


def test_justification_flow(client: TestClient, reasoner: ScriptedReasoner):
    """Test resolving a flagged transaction, then rejecting a repeat"""
    reasoner.script(ReasonerSuccess(verdict_json("irresponsible")))
    created = _spend(client, merchant="Designer Store", amount=120, category="shopping").json()
    transaction_id = created["transaction"]["id"]
    assert created["shouldShowGoalAllocation"] is True

    reasoner.script(
        ReasonerSuccess(json.dumps({"isValid": True, "reasoning": "work", "newReflection": "Good call."}))
    )
    response = client.post(
        f"/transactions/{transaction_id}/justification",
        json={"userId": "user_1", "justification": "Needed a suit for a job interview"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["transaction"]["justificationStatus"] == "justified"
    assert data["transaction"]["finalClassification"] == "responsible"
    assert data["transaction"]["originalClassification"] == "irresponsible"
    assert data["justificationAnalysis"]["isValid"] is True
    assert data["budgetAdjustment"]["adjusted"] is False

    repeat = client.post(
        f"/transactions/{transaction_id}/justification",
        json={"userId": "user_1", "justification": "Needed a suit for a job interview"},
    )
    assert repeat.status_code == 409
    assert repeat.json()["code"] == "CONFLICT"


def test_justification_unknown_transaction(client: TestClient):
    response = client.post(
        "/transactions/missing/justification",
        json={"userId": "user_1", "justification": "It was needed"},
    )

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_justification_by_other_user(client: TestClient, reasoner: ScriptedReasoner):
    reasoner.script(ReasonerSuccess(verdict_json("neutral")))
    transaction_id = _spend(client).json()["transaction"]["id"]

    response = client.post(
        f"/transactions/{transaction_id}/justification",
        json={"userId": "intruder", "justification": "It was needed"},
    )

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_ERROR"


def test_insights(client: TestClient):
    _spend(client, merchant="Grocer", amount=40)

    response = client.get("/insights", params={"userId": "user_1"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["balance"] == -38.0
    assert data["weeklySpending"] == 40.0
    assert data["weeklyBudget"] == 500.0
    assert data["reflectionScore"] == 100
    assert data["mood"] in {"happy", "neutral", "worried", "sad", "depressed"}
    assert len(data["badges"]) == 8
    assert {"id", "title", "description", "emoji", "category", "earned"} <= set(data["badges"][0])


def test_insights_requires_user(client: TestClient):
    assert client.get("/insights").status_code == 400


def test_dependency_failure_returns_envelope(reasoner: ScriptedReasoner):
    """Test that errors outside the routes still use the failure envelope"""
    app = create_app()

    def broken_db():
        raise RuntimeError("database unreachable")
        yield

    app.dependency_overrides[get_db] = broken_db
    app.dependency_overrides[get_reasoner] = lambda: reasoner
    client = TestClient(app, raise_server_exceptions=False)

    response = _spend(client)

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Internal server error",
        "code": "INTERNAL_ERROR",
        "details": None,
    }
