"""Integration tests for API endpoints"""

import uuid
import httpx
import pytest
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from finance_tracker.api.dependencies import get_rates_client
from finance_tracker.domain.exceptions import RatesAPIError
from finance_tracker.domain.models import RateSnapshot
from finance_tracker.infrastructure.clients.rates import RatesClient


@pytest.fixture
def account(client: TestClient, auth_headers) -> dict:
    response = client.post(
        "/v1/accounts",
        json={"name": "Main", "account_type": "checking", "balance": "1000.00", "currency": "USD"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Request-ID"]


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_metrics_endpoint(client: TestClient, auth_headers, account):
    """Test Prometheus metrics endpoint"""
    client.post(
        "/v1/transactions",
        json={"account_id": account["id"], "kind": "expense", "category": "Food", "amount": "1.00"},
        headers=auth_headers,
    )

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "finance_ledger_operations_total" in response.text
    assert "http_request_duration_seconds" in response.text


# Auth


def test_register_login_me(client: TestClient):
    response = client.post(
        "/v1/auth/register",
        json={"email": "Bob@Example.com", "password": "Passw0rdX", "name": "Bob"},
    )
    assert response.status_code == 201
    user_id = response.json()["id"]
    assert response.json()["email"] == "bob@example.com"

    response = client.post("/v1/auth/login", json={"email": "bob@example.com", "password": "Passw0rdX"})
    assert response.status_code == 200
    assert response.json()["id"] == user_id

    response = client.get("/v1/auth/me", headers={"X-User-ID": user_id})
    assert response.status_code == 200
    assert response.json()["name"] == "Bob"


def test_duplicate_email_conflicts(client: TestClient, user):
    response = client.post(
        "/v1/auth/register", json={"email": "ALICE@example.com", "password": "Passw0rdX"}
    )
    assert response.status_code == 409


@pytest.mark.parametrize("password", ["short1A", "alllower123", "ALLUPPER123", "NoDigitsHere"])
def test_weak_password_rejected(client: TestClient, password: str):
    response = client.post("/v1/auth/register", json={"email": "x@example.com", "password": password})
    assert response.status_code == 422


def test_bad_login(client: TestClient, user):
    response = client.post("/v1/auth/login", json={"email": "alice@example.com", "password": "Wrong1234"})
    assert response.status_code == 401


@pytest.mark.parametrize("headers", [{}, {"X-User-ID": "not-a-uuid"}, {"X-User-ID": str(uuid.uuid4())}])
def test_identity_required(client: TestClient, headers):
    response = client.get("/v1/accounts", headers=headers)
    assert response.status_code == 401


# Accounts


def test_create_and_list_accounts(client: TestClient, auth_headers, account):
    assert account["balance_minor"] == 100000

    client.post(
        "/v1/accounts",
        json={"name": "Euro", "account_type": "savings", "balance": "50.5", "currency": "EUR"},
        headers=auth_headers,
    )

    response = client.get("/v1/accounts", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert [a["name"] for a in data["accounts"]] == ["Euro", "Main"]
    assert data["summary"]["totals_by_currency"] == {"EUR": 5050, "USD": 100000}


def test_account_amount_validation(client: TestClient, auth_headers):
    for balance in ("1.001", "1000000000.01"):
        response = client.post(
            "/v1/accounts",
            json={"name": "Bad", "account_type": "checking", "balance": balance},
            headers=auth_headers,
        )
        assert response.status_code == 422


def test_accounts_are_scoped_to_owner(client: TestClient, account):
    other = client.post("/v1/auth/register", json={"email": "eve@example.com", "password": "Passw0rdX"})
    headers = {"X-User-ID": other.json()["id"]}

    response = client.get(f"/v1/accounts/{account['id']}", headers=headers)
    assert response.status_code == 404


def test_account_detail(client: TestClient, auth_headers, account):
    client.post(
        "/v1/transactions",
        json={"account_id": account["id"], "kind": "income", "category": "Gift", "amount": "10"},
        headers=auth_headers,
    )

    response = client.get(f"/v1/accounts/{account['id']}", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert len(data["recent_transactions"]) == 1
    assert data["last_30_days"]["income_minor"] == 1000


def test_put_balance_creates_adjustment(client: TestClient, auth_headers, account):
    response = client.put(f"/v1/accounts/{account['id']}", json={"balance": "900.00"}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["account"]["balance_minor"] == 90000
    assert data["adjustment"]["category"] == "Balance Adjustment"
    assert data["adjustment"]["kind"] == "expense"
    assert data["adjustment"]["amount_minor"] == 10000


def test_delete_and_reactivate(client: TestClient, auth_headers, account):
    client.post(
        "/v1/transactions",
        json={"account_id": account["id"], "kind": "expense", "category": "Food", "amount": "5"},
        headers=auth_headers,
    )

    response = client.delete(f"/v1/accounts/{account['id']}", headers=auth_headers)
    assert response.json() == {"outcome": "deactivated", "deleted_transactions": 0}

    response = client.post(f"/v1/accounts/{account['id']}/reactivate", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is True

    response = client.post(f"/v1/accounts/{account['id']}/reactivate", headers=auth_headers)
    assert response.status_code == 409

    response = client.delete(f"/v1/accounts/{account['id']}?force=true", headers=auth_headers)
    assert response.json() == {"outcome": "deleted", "deleted_transactions": 1}


def test_export_csv(client: TestClient, auth_headers, account):
    client.post(
        "/v1/transactions",
        json={
            "account_id": account["id"],
            "kind": "expense",
            "category": "Food",
            "amount": "12.34",
            "effective_date": "2025-08-20",
        },
        headers=auth_headers,
    )

    response = client.get(f"/v1/accounts/{account['id']}/export?format=csv", headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.strip().splitlines()
    assert lines[0].startswith("id,effective_date,kind")
    assert ",2025-08-20,expense,,Food,1234,USD," in lines[1]


# Transactions


def test_create_expense_scenario(client: TestClient, auth_headers, account):
    response = client.post(
        "/v1/transactions",
        json={
            "account_id": account["id"],
            "kind": "expense",
            "category": "Groceries",
            "amount": "75.25",
            "currency": "USD",
            "effective_date": "2025-08-20",
        },
        headers=auth_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["account_balance_minor"] == 92475
    assert data["transaction"]["amount_minor"] == 7525


def test_eur_expense_against_usd_account(client: TestClient, auth_headers, account):
    response = client.post(
        "/v1/transactions",
        json={
            "account_id": account["id"],
            "kind": "expense",
            "category": "Travel",
            "amount": "100",
            "currency": "EUR",
            "effective_date": "2025-08-19",
        },
        headers=auth_headers,
    )

    assert response.status_code == 201
    assert response.json()["account_balance_minor"] == 100000 - 10870


def test_overdraft_returns_409(client: TestClient, auth_headers, account):
    response = client.post(
        "/v1/transactions",
        json={"account_id": account["id"], "kind": "expense", "category": "Car", "amount": "1000.01"},
        headers=auth_headers,
    )
    assert response.status_code == 409
    assert response.json()["error"] == "InsufficientFundsError"

    detail = client.get(f"/v1/accounts/{account['id']}", headers=auth_headers).json()
    assert detail["account"]["balance_minor"] == 100000


def test_transaction_validation(client: TestClient, auth_headers, account):
    base = {"account_id": account["id"], "kind": "expense", "category": "Food", "amount": "1"}
    far_future = (date.today() + timedelta(days=365 * 11)).isoformat()

    for override in (
        {"amount": "0"},
        {"amount": "1.005"},
        {"currency": "GBP"},
        {"kind": "transfer"},
        {"category": ""},
        {"description": "x" * 501},
        {"effective_date": far_future},
    ):
        response = client.post("/v1/transactions", json={**base, **override}, headers=auth_headers)
        assert response.status_code == 422, override


def test_update_and_delete_transaction(client: TestClient, auth_headers, account):
    created = client.post(
        "/v1/transactions",
        json={"account_id": account["id"], "kind": "expense", "category": "Food", "amount": "10"},
        headers=auth_headers,
    ).json()
    transaction_id = created["transaction"]["id"]

    response = client.put(f"/v1/transactions/{transaction_id}", json={"amount": "25"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["account_balance_minor"] == 97500

    response = client.delete(f"/v1/transactions/{transaction_id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["account_balances"] == {account["id"]: 100000}

    response = client.get(f"/v1/transactions/{transaction_id}", headers=auth_headers)
    assert response.status_code == 404


def test_list_transactions_filters_and_pages(client: TestClient, auth_headers, account):
    for i, category in enumerate(["Food", "Fast food", "Rent"]):
        client.post(
            "/v1/transactions",
            json={
                "account_id": account["id"],
                "kind": "expense",
                "category": category,
                "amount": "1",
                "effective_date": f"2025-08-{10 + i}",
            },
            headers=auth_headers,
        )

    response = client.get("/v1/transactions?category=FOOD", headers=auth_headers)
    assert response.json()["total"] == 2

    response = client.get("/v1/transactions?limit=2&page=2", headers=auth_headers)
    data = response.json()
    assert (data["total"], data["pages"], len(data["transactions"])) == (3, 2, 1)
    assert data["transactions"][0]["category"] == "Food"

    response = client.get("/v1/transactions?limit=101", headers=auth_headers)
    assert response.status_code == 422


# Transfers


def test_transfer_creates_linked_legs(client: TestClient, auth_headers, account):
    euro = client.post(
        "/v1/accounts",
        json={"name": "Euro", "account_type": "savings", "currency": "EUR"},
        headers=auth_headers,
    ).json()

    response = client.post(
        "/v1/transfers",
        json={
            "from_account_id": account["id"],
            "to_account_id": euro["id"],
            "amount": "100",
            "effective_date": "2025-08-19",
        },
        headers=auth_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["outgoing"]["account_amount_minor"] == 10000
    assert data["incoming"]["account_amount_minor"] == 9200

    response = client.delete(f"/v1/transactions/{data['incoming']['id']}", headers=auth_headers)
    assert len(response.json()["deleted"]) == 2


# Borrowings


def test_borrowing_lifecycle(client: TestClient, auth_headers):
    response = client.post(
        "/v1/borrowings",
        json={"direction": "borrowed", "counterparty": "Bob", "amount": "200", "borrowed_on": "2025-08-01"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    borrowing = response.json()
    assert borrowing["principal_minor"] == 20000

    response = client.post(
        f"/v1/borrowings/{borrowing['id']}/payments", json={"amount": "200"}, headers=auth_headers
    )
    assert response.json()["status"] == "paid"
    assert response.json()["outstanding_minor"] == 0

    response = client.post(
        f"/v1/borrowings/{borrowing['id']}/payments", json={"amount": "1"}, headers=auth_headers
    )
    assert response.status_code == 409
    assert response.json()["error"] == "BorrowingAlreadyPaidError"


def test_overdue_borrowing_on_read(client: TestClient, auth_headers):
    past = date.today() - timedelta(days=10)
    created = client.post(
        "/v1/borrowings",
        json={
            "direction": "lent",
            "counterparty": "Carol",
            "amount": "100",
            "borrowed_on": (past - timedelta(days=20)).isoformat(),
            "due_date": past.isoformat(),
        },
        headers=auth_headers,
    ).json()
    assert created["status"] == "overdue"

    response = client.get("/v1/borrowings?status=overdue", headers=auth_headers)
    assert [b["id"] for b in response.json()] == [created["id"]]


def test_settle_and_delete_borrowing(client: TestClient, auth_headers):
    created = client.post(
        "/v1/borrowings",
        json={"direction": "lent", "counterparty": "Dan", "amount": "50"},
        headers=auth_headers,
    ).json()

    response = client.post(f"/v1/borrowings/{created['id']}/settle", headers=auth_headers)
    assert response.json()["paid_minor"] == 5000

    response = client.delete(f"/v1/borrowings/{created['id']}", headers=auth_headers)
    assert response.status_code == 204
    assert client.get(f"/v1/borrowings/{created['id']}", headers=auth_headers).status_code == 404


# Work shifts


def test_work_shift_posts_income(client: TestClient, auth_headers, account):
    response = client.post(
        "/v1/work-shifts",
        json={
            "shift_date": "2025-08-20",
            "position": "Barista",
            "start_time": "22:00",
            "end_time": "06:00",
            "hourly_rate": "15",
            "tips": "25",
            "account_id": account["id"],
        },
        headers=auth_headers,
    )

    assert response.status_code == 201
    assert Decimal(response.json()["hours_worked"]) == Decimal("8")
    assert response.json()["total_earnings_minor"] == 14500

    detail = client.get(f"/v1/accounts/{account['id']}", headers=auth_headers).json()
    assert detail["account"]["balance_minor"] == 114500


def test_work_shift_rejects_equal_times(client: TestClient, auth_headers):
    response = client.post(
        "/v1/work-shifts",
        json={
            "shift_date": "2025-08-20",
            "position": "Cook",
            "start_time": "08:00",
            "end_time": "08:00",
            "hourly_rate": "15",
        },
        headers=auth_headers,
    )
    assert response.status_code == 422


# Dashboard


def test_dashboard_summary(client: TestClient, auth_headers, account):
    for kind, category, amount in (("income", "Salary", "500"), ("expense", "Rent", "200"), ("expense", "Food", "50")):
        client.post(
            "/v1/transactions",
            json={
                "account_id": account["id"],
                "kind": kind,
                "category": category,
                "amount": amount,
                "effective_date": "2025-08-10",
            },
            headers=auth_headers,
        )
    client.post(
        "/v1/borrowings",
        json={"direction": "borrowed", "counterparty": "Bob", "amount": "100", "borrowed_on": "2025-08-01"},
        headers=auth_headers,
    )

    response = client.get("/v1/dashboard/summary?month=2025-08", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert (data["income_minor"], data["expenses_minor"], data["net_minor"]) == (50000, 25000, 25000)
    assert data["savings_rate"] == 50
    assert data["top_categories"][0] == {"category": "Rent", "amount_minor": 20000, "percentage": 80}
    assert data["account_totals_by_currency"] == {"USD": 125000}
    assert data["borrowings"] == {"borrowed_minor": 10000, "lent_minor": 0}
    assert data["net_position_minor"] == 115000


def test_dashboard_rejects_bad_month(client: TestClient, auth_headers):
    response = client.get("/v1/dashboard/summary?month=2025-13", headers=auth_headers)
    assert response.status_code == 422


def test_dashboard_yearly(client: TestClient, auth_headers, account):
    client.post(
        "/v1/transactions",
        json={
            "account_id": account["id"],
            "kind": "income",
            "category": "Salary",
            "amount": "120",
            "effective_date": "2025-03-05",
        },
        headers=auth_headers,
    )

    data = client.get("/v1/dashboard/yearly?year=2025", headers=auth_headers).json()

    assert len(data["monthly_trend"]) == 12
    assert data["monthly_trend"][2]["income_minor"] == 12000
    assert data["average_monthly_income_minor"] == 1000


# Rates


def test_rates_listing_and_convert(client: TestClient):
    data = client.get("/v1/rates").json()
    assert data["version"] == 1
    assert [s["effective_date"] for s in data["snapshots"]] == ["2025-07-01", "2025-08-01", "2025-08-19"]

    response = client.get("/v1/rates/convert?amount_minor=10000&source=EUR&target=USD&on=2025-08-19")
    assert response.json()["amount_minor"] == 10870

    response = client.get("/v1/rates/convert?amount_minor=10000&source=GBP&target=USD")
    assert response.status_code == 422


@patch("finance_tracker.infrastructure.clients.rates.RatesClient.fetch_snapshot", new_callable=AsyncMock)
def test_rates_refresh(mock_fetch: AsyncMock, client: TestClient):
    mock_fetch.return_value = RateSnapshot(
        effective_date=date(2025, 9, 1),
        rates={"USD": Decimal("1"), "EUR": Decimal("0.93"), "AZN": Decimal("1.70")},
    )

    response = client.post("/v1/rates/refresh?date=2025-09-01")

    assert response.status_code == 200
    assert response.json()["version"] == 2
    response = client.get("/v1/rates/convert?amount_minor=9300&source=EUR&target=USD&on=2025-09-01")
    assert response.json()["amount_minor"] == 10000


@patch("finance_tracker.infrastructure.clients.rates.RatesClient.fetch_snapshot", new_callable=AsyncMock)
def test_rates_refresh_failure(mock_fetch: AsyncMock, client: TestClient):
    mock_fetch.side_effect = RatesAPIError("Rates API error: 502")

    response = client.post("/v1/rates/refresh")

    assert response.status_code == 503
    assert client.get("/v1/rates").json()["version"] == 1


def test_rates_refresh_non_json_reply(client: TestClient):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
    client.app.dependency_overrides[get_rates_client] = lambda: RatesClient(
        base_url="http://rates.test", max_retries=1, backoff_base=0, transport=transport
    )

    response = client.post("/v1/rates/refresh")

    assert response.status_code == 503
    assert response.json()["error"] == "RatesAPIError"
