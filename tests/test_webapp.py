from datetime import date

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("sqlmodel")

from fastapi.testclient import TestClient

from giftbudget.budgets import gift_field, week_field
from giftbudget.config import AppConfig
from giftbudget.service import GiftBudget
from giftbudget.webapp import create_app

TODAY = date(2024, 3, 1)


@pytest.fixture()
def service() -> GiftBudget:
    return GiftBudget(config=AppConfig(admin_password="teach", session_secret="test-secret"), clock=lambda: TODAY)


@pytest.fixture()
def client(service: GiftBudget) -> TestClient:
    return TestClient(create_app(service=service))


def login_admin(client: TestClient) -> None:
    response = client.post("/admin/login", data={"password": "teach"}, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/admin"


def login_student(client: TestClient, name: str, code: str):
    return client.post("/student/login", data={"name": name, "code": code}, follow_redirects=False)


def test_login_page_offers_both_tabs(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert "Student Login" in response.text
    assert "Start Budgeting" in response.text
    assert "Access Admin Panel" in client.get("/?tab=admin").text


def test_admin_pages_require_login(client: TestClient) -> None:
    response = client.get("/admin", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/?tab=admin"
    assert client.post("/admin/codes", data={"code": "X"}, follow_redirects=False).status_code == 302


def test_wrong_admin_password(client: TestClient) -> None:
    response = client.post("/admin/login", data={"password": "nope"})

    assert "Incorrect admin password." in response.text


def test_admin_creates_and_lists_codes(client: TestClient, service: GiftBudget) -> None:
    login_admin(client)

    response = client.post(
        "/admin/codes",
        data={"code": "class2024", "max_users": "2", "start_date": "2024-01-01", "end_date": "2024-12-31"},
    )

    assert "Code created successfully." in response.text
    assert "CLASS2024" in response.text
    assert "ACTIVE" in response.text
    assert service.registry.get("CLASS2024").max_users == 2

    duplicate = client.post(
        "/admin/codes",
        data={"code": "CLASS2024", "max_users": "2", "start_date": "2024-01-01", "end_date": "2024-12-31"},
    )
    assert "That code already exists." in duplicate.text

    missing = client.post("/admin/codes", data={"code": "OTHER", "max_users": "2", "start_date": "", "end_date": ""})
    assert "Please fill in all fields." in missing.text


def test_admin_table_marks_expired_codes_inactive(client: TestClient, service: GiftBudget) -> None:
    service.create_code("OLD", 5, "2023-01-01", "2023-12-31")
    login_admin(client)

    response = client.get("/admin")

    assert "INACTIVE" in response.text


def test_admin_table_shows_seats_left(client: TestClient, service: GiftBudget) -> None:
    service.create_code("CLASS2024", 3, "2024-01-01", "2024-12-31")
    service.admit("Alice", "CLASS2024")
    login_admin(client)

    response = client.get("/admin")

    assert "Seats Left" in response.text
    assert "<td>3</td><td>1</td><td>2</td>" in response.text


def test_delete_requires_confirmation(client: TestClient, service: GiftBudget) -> None:
    service.create_code("CLASS2024", 5, "2024-01-01", "2024-12-31")
    login_admin(client)

    unconfirmed = client.post("/admin/codes/delete", data={"code": "CLASS2024"})
    assert "confirm" in unconfirmed.text
    assert service.registry.get("CLASS2024") is not None

    confirmed = client.post("/admin/codes/delete", data={"code": "CLASS2024", "confirm": "1"})
    assert 'Deleted passcode' in confirmed.text
    assert service.registry.get("CLASS2024") is None


def test_student_login_errors_are_shown_inline(client: TestClient, service: GiftBudget) -> None:
    assert "No passcodes set up yet." in login_student(client, "Alice", "CLASS2024").text

    service.create_code("CLASS2024", 1, "2024-01-01", "2024-12-31")
    assert "Invalid passcode." in login_student(client, "Alice", "WRONG").text
    assert "Please enter your name." in login_student(client, "", "CLASS2024").text

    service.create_code("LATER", 5, "2024-09-01", "2024-12-31")
    assert "only valid from 2024-09-01 to 2024-12-31" in login_student(client, "Alice", "LATER").text


def test_quota_through_the_login_form(service: GiftBudget) -> None:
    service.create_code("CLASS2024", 2, "2024-01-01", "2024-12-31")
    app = create_app(service=service)

    assert login_student(TestClient(app), "Alice", "class2024").status_code == 302
    assert login_student(TestClient(app), "Bob", "CLASS2024").status_code == 302
    full = login_student(TestClient(app), "Carol", "CLASS2024")
    assert full.status_code == 200
    assert "This class session is full." in full.text
    assert login_student(TestClient(app), "alice", "CLASS2024").status_code == 302


def test_budget_requires_a_student_session(client: TestClient) -> None:
    response = client.get("/budget", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/"


def test_student_plans_and_tracks_a_budget(client: TestClient, service: GiftBudget) -> None:
    service.create_code("CLASS2024", 30, "2024-01-01", "2024-12-31")
    assert login_student(client, "Sarah Johnson", "CLASS2024").headers["location"] == "/budget"

    gifts_page = client.get("/budget")
    assert "Hi Sarah Johnson" in gifts_page.text
    assert "Mother&#x27;s Day" in gifts_page.text
    assert "1 (fixed)" in gifts_page.text

    saved = client.post(
        "/budget",
        data={
            "tab": "gifts",
            "budget": "1200",
            gift_field(2, 0, "amount"): "10",
            gift_field(2, 0, "recipients"): "5",
            gift_field(2, 0, "times"): "1",
        },
    )
    assert "✓ Saved!" in saved.text
    assert "£50.00" in saved.text

    summary = client.get("/budget?tab=summary")
    assert "£1,150.00" in summary.text
    assert "95.8%" in summary.text
    assert "under budget" in summary.text

    weekly = client.post("/budget", data={"tab": "weekly", "weeks_in_term": "9", week_field(1): "50"})
    assert "£400.00" in weekly.text
    assert "£44.44" in weekly.text
    assert "£355.56" in weekly.text
    assert "£350.00" in weekly.text
    assert "Overspent" in weekly.text

    record = service.load_budget(service.admit("sarah johnson", "CLASS2024"))
    assert str(record.budget) == "1200"
    assert record.actual_for(1) == 50


def test_logout_clears_the_session(client: TestClient, service: GiftBudget) -> None:
    service.create_code("CLASS2024", 30, "2024-01-01", "2024-12-31")
    login_student(client, "Alice", "CLASS2024")

    client.post("/logout")

    assert client.get("/budget", follow_redirects=False).status_code == 302


def test_health_reports_status(client: TestClient, service: GiftBudget) -> None:
    service.create_code("CLASS2024", 30, "2024-01-01", "2024-12-31")

    payload = client.get("/health").json()

    assert payload == {"passcodes": 1, "storage_failures": 0, "admin_locked": False}


def test_sqlite_backed_app_persists_between_instances(tmp_path) -> None:
    config = AppConfig(sqlite_file=str(tmp_path / "giftbudget.db"), admin_password="teach")
    first = TestClient(create_app(config))
    login_admin(first)
    first.post(
        "/admin/codes",
        data={"code": "CLASS2024", "max_users": "5", "start_date": "2000-01-01", "end_date": "2999-12-31"},
    )
    login_student(first, "Alice", "CLASS2024")
    first.post("/budget", data={"tab": "gifts", "budget": "600"})

    second = TestClient(create_app(config))
    assert login_student(second, "alice", "CLASS2024").status_code == 302
    weekly = second.get("/budget?tab=weekly")

    assert "£200.00" in weekly.text
