from datetime import date

import pytest
from fastapi import status

from app.core.exceptions import ValidationError
from app.services import dividend_service


def _dividend(ticker, ex_date, dps=0.5, shares=100, **extra):
    return {
        "ticker": ticker,
        "ex_dividend_date": ex_date,
        "dividend_per_share": dps,
        "shares_owned": shares,
        **extra,
    }


class TestQuarterBounds:
    @pytest.mark.parametrize("quarter, expected", [
        (1, (date(2024, 1, 1), date(2024, 4, 1))),
        (2, (date(2024, 4, 1), date(2024, 7, 1))),
        (3, (date(2024, 7, 1), date(2024, 10, 1))),
        (4, (date(2024, 10, 1), date(2025, 1, 1))),
    ])
    def test_half_open_ranges(self, quarter, expected):
        assert dividend_service.quarter_bounds(2024, quarter) == expected

    @pytest.mark.parametrize("quarter", [0, 5])
    def test_rejects_invalid_quarter(self, quarter):
        with pytest.raises(ValidationError):
            dividend_service.quarter_bounds(2024, quarter)


class TestDividendService:
    def test_create_computes_total(self, factory, user):
        dividend = dividend_service.create_dividend(factory, user.user_id, _dividend("msft", "2024-02-14", 0.75, 40))

        assert dividend.ticker == "MSFT"
        assert dividend.total_dividend_amount == pytest.approx(30)

    def test_update_recomputes_total(self, factory, user):
        dividend = dividend_service.create_dividend(factory, user.user_id, _dividend("MSFT", "2024-02-14", 0.75, 40))

        updated = dividend_service.update_dividend(
            factory, user.user_id, dividend.dividend_id, {"shares_owned": 100}
        )

        assert updated.dividend_per_share == pytest.approx(0.75)
        assert updated.total_dividend_amount == pytest.approx(75)

    def test_quarter_detail_selects_half_open_range(self, factory, user):
        for ex_date in ("2024-09-30", "2024-10-01", "2024-12-31", "2025-01-01"):
            dividend_service.create_dividend(factory, user.user_id, _dividend("KO", ex_date))

        result = dividend_service.dividends_by_quarter(factory, user.user_id, 2024, 4, page=1, page_size=10)

        assert result["total"] == 2
        assert sorted(d.ex_dividend_date for d in result["data"]) == [date(2024, 10, 1), date(2024, 12, 31)]

    def test_summary_by_ticker_sorted_by_total(self, factory, user):
        dividend_service.create_dividend(factory, user.user_id, _dividend("KO", "2024-03-01", 0.5, 100))
        dividend_service.create_dividend(factory, user.user_id, _dividend("KO", "2024-06-01", 0.5, 100))
        dividend_service.create_dividend(factory, user.user_id, _dividend("PEP", "2024-03-01", 1.0, 10))

        summary = dividend_service.summary_by_ticker(factory, user.user_id)

        assert [row["ticker"] for row in summary] == ["KO", "PEP"]
        assert summary[0]["total_dividend_payments"] == 2
        assert summary[0]["total_dividends_received"] == pytest.approx(100)
        assert summary[0]["latest_dividend_date"] == date(2024, 6, 1)

    def test_summary_by_quarter_reports_inclusive_end(self, factory, user):
        dividend_service.create_dividend(factory, user.user_id, _dividend("KO", "2024-11-15"))
        dividend_service.create_dividend(factory, user.user_id, _dividend("PEP", "2024-12-01"))

        (row,) = dividend_service.summary_by_quarter(factory, user.user_id, year=2024)

        assert row["quarter"] == 4
        assert row["stocks_paid_dividends"] == 2
        assert row["quarter_start_date"] == date(2024, 10, 1)
        assert row["quarter_end_date"] == date(2024, 12, 31)

    def test_summaries_are_empty_without_dividends(self, factory, user):
        assert dividend_service.summary_by_ticker(factory, user.user_id) == []
        assert dividend_service.summary_by_year(factory, user.user_id) == []
        assert dividend_service.summary_by_quarter(factory, user.user_id) == []

    def test_upcoming_includes_days_until(self, factory, user):
        dividend_service.create_dividend(factory, user.user_id, _dividend("KO", "2024-05-10"))
        dividend_service.create_dividend(factory, user.user_id, _dividend("PEP", "2024-04-01"))

        upcoming = dividend_service.upcoming_dividends(factory, user.user_id, today=date(2024, 5, 1))

        assert [(d["ticker"], d["days_until"]) for d in upcoming] == [("KO", 9)]

    def test_latest_dividend_defaults_to_zero(self, factory, user):
        assert dividend_service.latest_dividend(factory, user.user_id, "NONE") == {
            "last_dividend_per_share": 0,
            "ex_dividend_date": None,
            "total_dividend_amount": 0,
        }


class TestDividendEndpoints:
    def test_requires_session(self, client):
        assert client.get("/api/dividends").status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_and_update(self, auth_client):
        created = auth_client.post("/api/dividends", json=_dividend("T", "2024-01-09", 0.2775, 200))
        assert created.status_code == status.HTTP_201_CREATED
        dividend_id = created.json()["dividend_id"]
        assert created.json()["total_dividend_amount"] == pytest.approx(55.5)

        updated = auth_client.put(f"/api/dividends/{dividend_id}", json={"dividend_per_share": 0.3})
        assert updated.json()["total_dividend_amount"] == pytest.approx(60)

    def test_missing_fields_rejected(self, auth_client):
        response = auth_client.post("/api/dividends", json={"ticker": "T"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "ex_dividend_date" in response.json()["error"]

    def test_by_quarter_detail_and_summary(self, auth_client):
        auth_client.post("/api/dividends", json=_dividend("KO", "2024-10-01"))
        auth_client.post("/api/dividends", json=_dividend("KO", "2025-01-01"))

        detail = auth_client.get("/api/dividends-by-quarter", params={"year": 2024, "quarter": 4}).json()
        assert detail["total"] == 1
        assert detail["data"][0]["ex_dividend_date"] == "2024-10-01"

        summary = auth_client.get("/api/dividends-by-quarter").json()
        assert "total" not in summary
        assert [(row["year"], row["quarter"]) for row in summary["data"]] == [(2025, 1), (2024, 4)]

    def test_by_ticker_summary(self, auth_client):
        auth_client.post("/api/dividends", json=_dividend("KO", "2024-03-01", 0.5, 10))

        summary = auth_client.get("/api/dividends-by-ticker").json()

        assert summary["data"][0]["ticker"] == "KO"
        assert summary["data"][0]["total_dividends_received"] == pytest.approx(5)

    def test_unknown_dividend_is_404(self, auth_client):
        assert auth_client.get("/api/dividends/missing").status_code == status.HTTP_404_NOT_FOUND
