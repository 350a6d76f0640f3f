from datetime import date

import pytest
from fastapi import status

from app.models import CashMovement, CashMovementDirection
from app.services import cash_movement_service


@pytest.fixture
def deposit_id(db_session):
    return (
        db_session.query(CashMovementDirection)
        .filter(CashMovementDirection.direction_code == "DEPOSIT")
        .one()
        .direction_id
    )


@pytest.fixture
def withdrawal_id(db_session):
    return (
        db_session.query(CashMovementDirection)
        .filter(CashMovementDirection.direction_code == "WITHDRAWAL")
        .one()
        .direction_id
    )


def _movement(direction_id, amount, rate, period_from="2024-01-01", period_to=None, **extra):
    return {
        "home_currency_value": amount,
        "spot_rate": rate,
        "transaction_date": "2024-01-15",
        "direction_id": direction_id,
        "period_from": period_from,
        "period_to": period_to,
        "home_currency_code": "AUD",
        "trading_currency_code": "USD",
        **extra,
    }


class TestCashMovementService:
    def test_create_persists_validated_input(self, factory, user, deposit_id):
        movement = cash_movement_service.create_cash_movement(
            factory, user.user_id, _movement(deposit_id, 1000, 0.65, notes="salary"), "AUD", "USD"
        )

        stored = factory.get_cash_movement_repository().get(movement.cash_movement_id)
        assert stored.user_id == user.user_id
        assert stored.home_currency_code == "AUD"
        assert stored.trading_currency_code == "USD"
        assert stored.home_currency_value == pytest.approx(1000)
        assert stored.spot_rate == pytest.approx(0.65)
        assert stored.trading_currency_value == pytest.approx(650)
        assert stored.transaction_date == date(2024, 1, 15)
        assert stored.period_from == date(2024, 1, 1)
        assert stored.period_to is None
        assert stored.notes == "salary"

    def test_weighted_average_rate_uses_amounts(self, factory, user, deposit_id):
        for amount, rate in [(100, 1.30), (200, 1.40)]:
            cash_movement_service.create_cash_movement(
                factory, user.user_id, _movement(deposit_id, amount, rate), "AUD", "USD"
            )

        stats = cash_movement_service.get_period_stats(factory, user.user_id)

        assert len(stats) == 1
        assert stats[0]["weighted_avg_rate"] == pytest.approx(1.3667, abs=1e-4)
        assert stats[0]["weighted_avg_rate"] != pytest.approx(1.35)

    def test_open_period_filter_returns_only_null_period_to(self, factory, user, deposit_id):
        cash_movement_service.create_cash_movement(
            factory, user.user_id, _movement(deposit_id, 100, 1.3), "AUD", "USD"
        )
        cash_movement_service.create_cash_movement(
            factory, user.user_id, _movement(deposit_id, 200, 1.4, period_to="2024-06-30"), "AUD", "USD"
        )

        rows = cash_movement_service.get_movements_for_period(factory, user.user_id, date(2024, 1, 1), None)

        assert len(rows) == 1
        assert rows[0].period_to is None
        assert rows[0].home_currency_value == pytest.approx(100)

    def test_period_stats_track_withdrawals_and_cumulative_balance(self, factory, user, deposit_id, withdrawal_id):
        cash_movement_service.create_cash_movement(
            factory, user.user_id, _movement(deposit_id, 500, 1.0, period_to="2024-03-31"), "AUD", "USD"
        )
        cash_movement_service.create_cash_movement(
            factory, user.user_id, _movement(withdrawal_id, 200, 1.0, period_to="2024-03-31"), "AUD", "USD"
        )
        cash_movement_service.create_cash_movement(
            factory, user.user_id, _movement(deposit_id, 300, 1.0, period_from="2024-04-01"), "AUD", "USD"
        )

        first, second = cash_movement_service.get_period_stats(factory, user.user_id)

        assert first["deposit_count"] == 1
        assert first["withdrawal_count"] == 1
        assert first["net_home"] == pytest.approx(300)
        assert first["is_current"] is False
        assert second["is_current"] is True
        assert second["cumulative_home"] == pytest.approx(600)

    def test_period_display(self):
        assert cash_movement_service.period_display(None, None) == "No Period"
        assert cash_movement_service.period_display(date(2024, 1, 1), None) == "Jan 1, 2024 - Ongoing"
        assert (
            cash_movement_service.period_display(date(2024, 1, 1), date(2024, 3, 31))
            == "Jan 1, 2024 - Mar 31, 2024"
        )


class TestFundingEndpoints:
    def test_requires_session(self, client):
        for path in ("/api/funding", "/api/funding/periods", "/api/funding/all-movements"):
            response = client.get(path)
            assert response.status_code == status.HTTP_401_UNAUTHORIZED
            assert response.json() == {"error": "Unauthorized"}

    def test_create_movement(self, auth_client, deposit_id):
        response = auth_client.post("/api/funding/movement", json=_movement(deposit_id, 250, 0.66))

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["data"]["home_currency_code"] == "AUD"
        assert body["data"]["trading_currency_code"] == "USD"
        assert body["data"]["trading_currency_value"] == pytest.approx(165)

    @pytest.mark.parametrize("code", ["home_currency_code", "trading_currency_code"])
    def test_missing_currency_code_rejected_without_writing(self, auth_client, db_session, deposit_id, code):
        payload = _movement(deposit_id, 250, 0.66)
        del payload[code]

        response = auth_client.post("/api/funding/movement", json=payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert code in response.json()["error"]
        assert db_session.query(CashMovement).count() == 0

    def test_missing_field_rejected_without_writing(self, auth_client, db_session, deposit_id):
        payload = _movement(deposit_id, 250, 0.66)
        del payload["spot_rate"]

        response = auth_client.post("/api/funding/movement", json=payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "spot_rate" in response.json()["error"]
        assert db_session.query(CashMovement).count() == 0

    def test_funding_overview_and_periods(self, auth_client, deposit_id):
        auth_client.post("/api/funding/movement", json=_movement(deposit_id, 100, 1.30))
        auth_client.post("/api/funding/movement", json=_movement(deposit_id, 200, 1.40))

        overview = auth_client.get("/api/funding")
        assert overview.status_code == status.HTTP_200_OK
        body = overview.json()
        assert body["currencies"]["home_currency"] == "AUD"
        assert len(body["movements"]) == 2
        assert body["periodStats"][0]["weighted_avg_rate"] == pytest.approx(1.3667, abs=1e-4)

        periods = auth_client.get("/api/funding/periods").json()
        assert periods == [{
            "period_from": "2024-01-01",
            "period_to": None,
            "is_current": True,
            "period_display": "Jan 1, 2024 - Ongoing",
        }]

    def test_all_movements_paginates(self, auth_client, deposit_id):
        for amount in (100, 200, 300):
            auth_client.post("/api/funding/movement", json=_movement(deposit_id, amount, 1.0))

        response = auth_client.get("/api/funding/all-movements", params={"page": 2, "pageSize": 2})

        body = response.json()
        assert body["total"] == 3
        assert body["page"] == 2
        assert body["pageSize"] == 2
        assert len(body["data"]) == 1

    def test_update_and_delete_movement(self, auth_client, deposit_id):
        created = auth_client.post("/api/funding/movement", json=_movement(deposit_id, 100, 1.0)).json()["data"]

        updated = auth_client.put(
            f"/api/funding/movement/{created['cash_movement_id']}",
            json={"home_currency_value": 400, "spot_rate": 0.5},
        )
        assert updated.status_code == status.HTTP_200_OK
        assert updated.json()["data"]["trading_currency_value"] == pytest.approx(200)

        deleted = auth_client.delete(f"/api/funding/movement/{created['cash_movement_id']}")
        assert deleted.json() == {"success": True}

        missing = auth_client.delete(f"/api/funding/movement/{created['cash_movement_id']}")
        assert missing.status_code == status.HTTP_404_NOT_FOUND

    def test_other_users_movements_are_hidden(self, auth_client, factory, other_user, deposit_id):
        cash_movement_service.create_cash_movement(
            factory, other_user.user_id, _movement(deposit_id, 100, 1.0), "USD", "USD"
        )

        assert auth_client.get("/api/funding").json()["movements"] == []
