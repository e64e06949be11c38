# tests/unit/test_api_errors.py
"""HTTP-level tests: error envelope, auth dependencies, status codes.

Services are replaced with mocks and the DB/auth dependencies are overridden,
so no database or Redis is needed.
"""
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.mp_common.database import get_db_session
from src.mp_common.errors import ListingUnavailableError, OfferBelowMinimumError
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_gateway.user.db_models import UserModel


def _user(is_admin: bool = False) -> UserModel:
    return UserModel(
        id=uuid.uuid4(), email="u@example.com", display_name="U",
        is_active=True, is_admin=is_admin, total_sales=0, total_purchases=0,
    )


async def _fake_session():
    yield AsyncMock()


@pytest.fixture
def as_user():
    user = _user()
    app.dependency_overrides[get_db_session] = _fake_session
    app.dependency_overrides[get_current_user] = lambda: user
    yield user
    app.dependency_overrides.clear()


@pytest.fixture
def as_admin():
    user = _user(is_admin=True)
    app.dependency_overrides[get_db_session] = _fake_session
    app.dependency_overrides[get_current_user] = lambda: user
    yield user
    app.dependency_overrides.clear()


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_missing_token_is_401(client):
    resp = await client.post("/api/v1/offers", json={"listing_id": "lst-1", "amount_cents": 1})
    assert resp.status_code == 401


async def test_app_error_envelope(client, as_user):
    service = MagicMock()
    service.create_offer = AsyncMock(side_effect=OfferBelowMinimumError(400_000, 500_000))
    with patch("src.mp_offer.api.router._service", service):
        resp = await client.post(
            "/api/v1/offers", json={"listing_id": "lst-1", "amount_cents": 400_000}
        )

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == 3002
    assert body["details"] == {"amount_cents": 400_000, "minimum_cents": 500_000}
    assert body["request_id"] == resp.headers["X-Request-ID"]


async def test_conflict_is_409(client, as_user):
    service = MagicMock()
    service.accept_offer = AsyncMock(side_effect=ListingUnavailableError("lst-1", "SOLD"))
    with patch("src.mp_offer.api.router._service", service):
        resp = await client.post("/api/v1/offers/off-1/accept")

    assert resp.status_code == 409
    assert resp.json()["code"] == 2002


async def test_validation_error_is_400_with_code_0(client, as_user):
    resp = await client.post("/api/v1/offers", json={"listing_id": "lst-1"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == 0
    assert body["details"][0]["loc"] == ["body", "amount_cents"]


async def test_admin_route_rejects_regular_user(client, as_user):
    resp = await client.post(
        "/api/v1/transactions/tx-1/payment", json={"payment_method": "EFT"}
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == 1003


async def test_admin_route_allows_admin(client, as_admin):
    service = MagicMock()
    service.get_stats = AsyncMock(return_value={"gmv_cents": 0})
    with patch("src.mp_admin.api.router._service", service):
        resp = await client.get("/api/v1/admin/stats")

    assert resp.status_code == 200
    assert resp.json()["data"] == {"gmv_cents": 0}


async def test_buy_now_replay_returns_200(client, as_user):
    tx = MagicMock()
    tx.model_dump.return_value = {"id": "tx-1"}
    service = MagicMock()
    service.buy_now = AsyncMock(side_effect=[(tx, True), (tx, False)])
    with patch("src.mp_transaction.api.router._service", service):
        first = await client.post("/api/v1/transactions", json={"listing_id": "lst-1"})
        second = await client.post("/api/v1/transactions", json={"listing_id": "lst-1"})

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["data"] == {"id": "tx-1"}


async def test_unhandled_error_is_generic_500(as_user):
    service = MagicMock()
    service.get_offer = AsyncMock(side_effect=RuntimeError("connection pool exhausted"))
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        with patch("src.mp_offer.api.router._service", service):
            resp = await ac.get("/api/v1/offers/off-1")

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Internal server error"
    assert "pool" not in resp.text


async def test_correction_rejects_regular_user(client, as_user):
    resp = await client.patch(
        "/api/v1/admin/transactions/tx-1", json={"note": "typo", "tracking_number": "TRK2"}
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == 1003


async def test_correction_requires_note(client, as_admin):
    resp = await client.patch("/api/v1/admin/transactions/tx-1", json={"note": "   "})
    assert resp.status_code == 400
    assert resp.json()["details"][0]["loc"] == ["body", "note"]


async def test_correction_passes_admin_id(client, as_admin):
    tx = MagicMock()
    tx.model_dump.return_value = {"id": "tx-1", "tracking_number": "TRK2"}
    service = MagicMock()
    service.correct_transaction = AsyncMock(return_value=tx)
    with patch("src.mp_admin.api.router._service", service):
        resp = await client.patch(
            "/api/v1/admin/transactions/tx-1", json={"note": "typo", "tracking_number": "TRK2"}
        )

    assert resp.status_code == 200
    transaction_id, body, admin_id, _ = service.correct_transaction.await_args.args
    assert transaction_id == "tx-1"
    assert body.tracking_number == "TRK2"
    assert admin_id == str(as_admin.id)


async def test_my_offers_defaults_to_buyer_role(client, as_user):
    page = MagicMock()
    page.model_dump.return_value = {"items": [], "pagination": {"total": 0}}
    service = MagicMock()
    service.list_for_user = AsyncMock(return_value=page)
    with patch("src.mp_offer.api.router._service", service):
        resp = await client.get("/api/v1/users/me/offers?status=PENDING")

    assert resp.status_code == 200
    _, user_id, role, status, page_no, limit = service.list_for_user.await_args.args
    assert user_id == str(as_user.id)
    assert role.value == "buyer"
    assert status.value == "PENDING"
    assert (page_no, limit) == (1, 20)


async def test_my_transactions_rejects_unknown_role(client, as_user):
    resp = await client.get("/api/v1/users/me/transactions?role=courier")
    assert resp.status_code == 400
