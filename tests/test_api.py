from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from main import app, get_db
from models import Category
from periods import local_today


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    with TestingSession() as session:
        session.add_all(
            [
                Category(id=1, name_en="Food", name_te="ఆహారం", name_hi="भोजन"),
                Category(id=2, name_en="Transport", name_te="రవాణా", name_hi="परिवहन"),
            ]
        )
        session.commit()

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, headers={"X-User-Id": "alice"}) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _token(client: TestClient, user: str = "alice") -> str:
    resp = client.get("/api/csrf-token", headers={"X-User-Id": user})
    assert resp.status_code == 200
    return resp.json()["csrf_token"]


def _add_expense(client: TestClient, amount: str, day: date, category_id: int = 1):
    return client.post(
        "/api/expenses",
        data={
            "csrf_token": _token(client),
            "amount": amount,
            "category_id": str(category_id),
            "date": day.isoformat(),
            "payment_mode": "upi",
            "notes": "Tiffin",
        },
    )


def test_create_and_list_expense(client: TestClient) -> None:
    today = local_today()
    resp = _add_expense(client, "120.50", today)
    assert resp.status_code == 201
    body = resp.json()
    assert body["amount_cents"] == 12_050
    assert body["amount"] == "120.50"
    assert body["category"] == "Food"
    assert body["payment_mode_label"] == "UPI"

    items = client.get("/api/expenses").json()["items"]
    assert [item["id"] for item in items] == [body["id"]]


def test_create_requires_csrf_token(client: TestClient) -> None:
    resp = client.post(
        "/api/expenses",
        data={"amount": "10", "category_id": "1", "date": "2025-03-01"},
    )
    assert resp.status_code == 400


@pytest.mark.parametrize(
    "amount, category_id",
    [("NaN", "1"), ("0", "1"), ("-3", "1"), ("abc", "1"), ("10", ""), ("10", "99")],
)
def test_create_rejects_invalid_input(client: TestClient, amount, category_id) -> None:
    resp = client.post(
        "/api/expenses",
        data={
            "csrf_token": _token(client),
            "amount": amount,
            "category_id": category_id,
            "date": "2025-03-01",
        },
    )
    assert resp.status_code == 400
    assert client.get("/api/expenses").json()["items"] == []


def test_update_and_delete_expense(client: TestClient) -> None:
    expense_id = _add_expense(client, "50", local_today()).json()["id"]

    resp = client.post(
        f"/api/expenses/{expense_id}",
        data={"csrf_token": _token(client), "amount": "75", "category_id": "2"},
    )
    assert resp.status_code == 200
    assert resp.json()["amount_cents"] == 7_500
    assert resp.json()["category"] == "Transport"
    assert resp.json()["notes"] == "Tiffin"

    delete_url = f"/api/expenses/{expense_id}/delete"
    assert client.post(delete_url, data={"csrf_token": _token(client)}).status_code == 204
    assert client.post(delete_url, data={"csrf_token": _token(client)}).status_code == 404


def test_other_users_cannot_touch_expense(client: TestClient) -> None:
    expense_id = _add_expense(client, "50", local_today()).json()["id"]

    resp = client.get(f"/api/expenses/{expense_id}", headers={"X-User-Id": "bob"})
    assert resp.status_code == 404
    resp = client.post(
        f"/api/expenses/{expense_id}/delete",
        data={"csrf_token": _token(client, "bob")},
        headers={"X-User-Id": "bob"},
    )
    assert resp.status_code == 404


def test_csrf_token_is_bound_to_user(client: TestClient) -> None:
    resp = client.post(
        "/api/expenses",
        data={
            "csrf_token": _token(client, "bob"),
            "amount": "10",
            "category_id": "1",
            "date": "2025-03-01",
        },
    )
    assert resp.status_code == 400


def test_blank_identity_is_unauthorized(client: TestClient) -> None:
    assert client.get("/api/expenses", headers={"X-User-Id": " "}).status_code == 401


def test_budget_lifecycle(client: TestClient) -> None:
    assert client.get("/api/budget").json() == {
        "active": False,
        "message": "No active budget",
    }

    resp = client.post(
        "/api/budget",
        data={"csrf_token": _token(client), "amount": "1000", "cycle": "monthly"},
    )
    assert resp.status_code == 201
    assert resp.json()["start_date"] == local_today().replace(day=1).isoformat()

    _add_expense(client, "850", local_today())
    status = client.get("/api/budget").json()
    assert status["active"] is True
    assert status["spent_cents"] == 85_000
    assert status["remaining_cents"] == 15_000
    assert status["level"] == "critical"
    assert status["message"] == "80% of budget used"

    again = client.post(
        "/api/budget",
        data={"csrf_token": _token(client), "amount": "500", "cycle": "monthly"},
    )
    assert again.status_code == 400
    assert len(client.get("/api/budgets").json()["items"]) == 1


def test_zero_budget_is_accepted(client: TestClient) -> None:
    resp = client.post(
        "/api/budget",
        data={"csrf_token": _token(client), "amount": "0", "cycle": "monthly"},
    )
    assert resp.status_code == 201
    assert client.get("/api/budget").json()["level"] == "exceeded"


def test_dashboard_summary(client: TestClient) -> None:
    today = local_today()
    _add_expense(client, "40", today, category_id=1)
    _add_expense(client, "40", today, category_id=2)
    _add_expense(client, "5", today.replace(day=1) - timedelta(days=1), category_id=2)

    body = client.get("/api/dashboard").json()

    assert body["period"]["slug"] == "this_month"
    assert body["total_spent_cents"] == 8_000
    assert body["remaining_budget_cents"] == 0
    assert body["budget"] is None
    assert body["top_category"] == "Food"
    assert [row["name"] for row in body["category_breakdown"]] == ["Food", "Transport"]
    assert len(body["recent_expenses"]) == 2
    assert body["labels"]["totalSpent"] == "Total Spent"


def test_dashboard_rejects_bad_period(client: TestClient) -> None:
    resp = client.get("/api/dashboard", params={"period": "custom", "start": "2025-01-01"})
    assert resp.status_code == 400


def test_locale_preference_persists_in_cookie(client: TestClient) -> None:
    assert client.get("/api/i18n").json()["locale"] == "en"

    resp = client.post(
        "/api/locale", data={"csrf_token": _token(client), "locale": "te"}
    )
    assert resp.status_code == 200
    assert "spendwise_language" in resp.cookies

    body = client.get("/api/i18n").json()
    assert body["locale"] == "te"
    assert body["strings"]["budget"] == "బడ్జెట్"
    assert [c["name"] for c in client.get("/api/categories").json()] == [
        "ఆహారం",
        "రవాణా",
    ]


def test_unsupported_locale_is_rejected(client: TestClient) -> None:
    resp = client.post("/api/locale", data={"csrf_token": _token(client), "locale": "fr"})
    assert resp.status_code == 400
    assert client.get("/api/i18n").json()["locale"] == "en"


def test_export_csv(client: TestClient) -> None:
    _add_expense(client, "12.5", local_today())

    resp = client.get("/api/expenses/export.csv")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    lines = resp.text.strip().splitlines()
    assert lines[0] == "Date,Amount,Category,PaymentMode,Notes,Location"
    assert lines[1].startswith(f"{local_today().isoformat()},12.50,Food,upi,Tiffin")


def test_locale_change_requires_csrf_token(client: TestClient) -> None:
    assert client.post("/api/locale", data={"locale": "hi"}).status_code == 400
    assert client.get("/api/i18n").json()["locale"] == "en"


def test_indian_grouped_amount_is_stored_in_full(client: TestClient) -> None:
    resp = _add_expense(client, "₹1,00,000.50", local_today())
    assert resp.status_code == 201
    assert resp.json()["amount_cents"] == 10_000_050

    items = client.get("/api/expenses").json()["items"]
    assert [item["amount"] for item in items] == ["100000.50"]


@pytest.mark.parametrize("amount", ["1e20", "99999999999999999999999"])
def test_oversized_amount_is_rejected(client: TestClient, amount: str) -> None:
    assert _add_expense(client, amount, local_today()).status_code == 400
    resp = client.post(
        "/api/budget",
        data={"csrf_token": _token(client), "amount": amount, "cycle": "monthly"},
    )
    assert resp.status_code == 400
    assert client.get("/api/expenses").json()["items"] == []
