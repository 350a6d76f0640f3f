from datetime import date

import pytest
from fastapi import status

from app.models import NewsType
from app.services import news_service, transaction_service


@pytest.fixture
def earnings(db_session):
    return db_session.query(NewsType).filter(NewsType.type_code == "EARNINGS").one()


def _news(news_type, ticker="AAPL", alert_date=None, **extra):
    return {
        "ticker": ticker,
        "news_type_id": news_type.news_type_id,
        "news_description": f"{ticker} quarterly results",
        "news_date": "2024-05-01",
        "alert_date": alert_date,
        **extra,
    }


class TestAlertBuckets:
    @pytest.mark.parametrize("days, bucket", [
        (-1, "past"),
        (0, "urgent"),
        (3, "urgent"),
        (4, "thisWeek"),
        (7, "thisWeek"),
        (8, "comingSoon"),
    ])
    def test_bucket_boundaries(self, days, bucket):
        assert news_service.alert_bucket(days) == bucket

    def test_alerts_grouped_with_badge_count(self, factory, user, earnings):
        for ticker, alert in (("A", "2024-05-09"), ("B", "2024-05-12"), ("C", "2024-05-20"), ("D", "2024-04-30")):
            news_service.create_news(factory, user.user_id, _news(earnings, ticker, alert))
        news_service.create_news(factory, user.user_id, _news(earnings, "E"))

        result = news_service.alerts(factory, user.user_id, today=date(2024, 5, 8))

        assert [a["ticker"] for a in result["alerts"]["urgent"]] == ["A"]
        assert [a["ticker"] for a in result["alerts"]["thisWeek"]] == ["B"]
        assert [a["ticker"] for a in result["alerts"]["comingSoon"]] == ["C"]
        assert [a["ticker"] for a in result["alerts"]["past"]] == ["D"]
        assert result["badgeCount"] == 2
        assert result["totalAlerts"] == 4


class TestNewsService:
    def test_unknown_news_type_rejected(self, factory, user):
        from app.core.exceptions import ValidationError

        with pytest.raises(ValidationError, match="news_type_id"):
            news_service.create_news(factory, user.user_id, {
                "ticker": "AAPL",
                "news_type_id": 999,
                "news_description": "x",
                "news_date": "2024-05-01",
            })

    def test_update_keeps_unsupplied_fields(self, factory, user, earnings):
        news = news_service.create_news(factory, user.user_id, _news(earnings, news_source="Reuters"))

        updated = news_service.update_news(factory, user.user_id, news.news_id, {"alert_notes": "check guidance"})

        assert updated.news_source == "Reuters"
        assert updated.alert_notes == "check guidance"

    def test_has_open_position(self, factory, user, nasdaq, classify):
        classify("AAPL")
        transaction_service.record_transaction(factory, user.user_id, {
            "ticker": "AAPL",
            "exchange_id": nasdaq.exchange_id,
            "transaction_type": "BUY",
            "transaction_date": "2024-01-02",
            "quantity": 1,
            "price": 100,
        })

        assert news_service.has_open_position(factory, user.user_id, "aapl") is True
        assert news_service.has_open_position(factory, user.user_id, "MSFT") is False


class TestNewsEndpoints:
    def test_types_are_public(self, client):
        response = client.get("/api/news/types")

        assert response.status_code == status.HTTP_200_OK
        assert "EARNINGS" in {t["type_code"] for t in response.json()}

    def test_requires_session(self, client):
        assert client.get("/api/news/all-news").status_code == status.HTTP_401_UNAUTHORIZED
        assert client.get("/api/alerts").status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_list_and_delete(self, auth_client, earnings):
        created = auth_client.post("/api/news", json=_news(earnings))
        assert created.status_code == status.HTTP_201_CREATED
        news_id = created.json()["news_id"]

        page = auth_client.get("/api/news/all-news").json()
        assert page["total"] == 1
        assert page["data"][0]["news_type"]["type_code"] == "EARNINGS"

        assert auth_client.delete(f"/api/news/{news_id}").json() == {"success": True}
        assert auth_client.get(f"/api/news/{news_id}").status_code == status.HTTP_404_NOT_FOUND

    def test_news_by_unknown_type_is_404(self, auth_client):
        response = auth_client.get("/api/news-by-type", params={"typeName": "Gossip"})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_has_open_position_endpoint(self, auth_client):
        response = auth_client.get("/api/has-open-position", params={"ticker": "aapl"})

        assert response.json() == {"ticker": "AAPL", "hasOpenPosition": False}
