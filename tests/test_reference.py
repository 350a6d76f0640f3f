from datetime import date

import pandas as pd
import pytest
from fastapi import status

from app.api.dependencies import get_features
from app.clients import yfinance_client
from app.core.config import Feature, settings
from app.main import app
from app.models import AssetClass, AssetType


def _buy(nasdaq, ticker="AAPL", quantity=10, price=100, fees=1, trade_date="2024-01-10"):
    return {
        "ticker": ticker,
        "exchange_id": nasdaq.exchange_id,
        "transaction_type": "BUY",
        "transaction_date": trade_date,
        "quantity": quantity,
        "price": price,
        "fees": fees,
    }


class TestLookups:
    @pytest.mark.parametrize("path", [
        "/api/asset-classes",
        "/api/asset-types",
        "/api/exchanges",
        "/api/currencies",
        "/api/transaction-types",
    ])
    def test_lookups_are_public(self, client, path):
        response = client.get(path)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()

    def test_asset_types_filtered_by_class(self, client, db_session):
        aggregated = db_session.query(AssetClass).filter(AssetClass.class_code == "AGGREGATED").one()

        types = client.get("/api/asset-types", params={"classId": aggregated.class_id}).json()

        assert [t["type_code"] for t in types] == ["SWING"]

    def test_currencies_include_home_currencies(self, client):
        assert {"AUD", "USD"} <= set(client.get("/api/currencies").json())


class TestClassificationEndpoints:
    def test_requires_session(self, client):
        assert client.get("/api/asset-classifications").status_code == status.HTTP_401_UNAUTHORIZED

    def test_repost_replaces_class_and_type(self, auth_client, nasdaq, stock_type, db_session):
        etf = db_session.query(AssetType).filter(AssetType.type_code == "ETF").one()
        body = {
            "ticker": "vti",
            "exchange_id": nasdaq.exchange_id,
            "class_id": stock_type.class_id,
            "type_id": stock_type.type_id,
        }

        created = auth_client.post("/api/asset-classifications", json=body)
        assert created.status_code == status.HTTP_201_CREATED
        assert created.json()["ticker"] == "VTI"

        replaced = auth_client.post("/api/asset-classifications", json={**body, "type_id": etf.type_id})
        assert replaced.json()["classification_id"] == created.json()["classification_id"]
        assert replaced.json()["type_code"] == "ETF"

        listed = auth_client.get("/api/asset-classifications").json()
        assert [(c["ticker"], c["class_name"]) for c in listed] == [("VTI", "Long Term")]

    def test_type_from_another_class_is_rejected(self, auth_client, nasdaq, stock_type, db_session):
        swing = db_session.query(AssetType).filter(AssetType.type_code == "SWING").one()

        response = auth_client.post("/api/asset-classifications", json={
            "ticker": "AAPL",
            "exchange_id": nasdaq.exchange_id,
            "class_id": stock_type.class_id,
            "type_id": swing.type_id,
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "does not belong" in response.json()["error"]

    def test_delete(self, auth_client, classify):
        classification = classify("AAPL")

        assert auth_client.delete(
            f"/api/asset-classifications/{classification.classification_id}"
        ).json() == {"success": True}
        assert auth_client.delete(
            f"/api/asset-classifications/{classification.classification_id}"
        ).status_code == status.HTTP_404_NOT_FOUND


class TestMarketEndpoints:
    def test_currency_conversion_rounds(self, client, monkeypatch):
        monkeypatch.setattr(yfinance_client, "fetch_spot_rate", lambda base, quote: 0.654321)

        body = client.get("/api/currency-conversion", params={"from": "aud", "to": "usd", "amount": 100}).json()

        assert body["from"] == "AUD"
        assert body["to"] == "USD"
        assert body["convertedAmount"] == pytest.approx(65.43)
        assert body["rate"] == pytest.approx(0.6543)

    def test_same_currency_skips_upstream(self, client, monkeypatch):
        def fail(base, quote):
            raise AssertionError("should not be called")

        monkeypatch.setattr(yfinance_client, "fetch_spot_rate", fail)

        body = client.get("/api/currency-conversion", params={"from": "USD", "to": "USD", "amount": 7}).json()

        assert body["rate"] == 1.0
        assert body["convertedAmount"] == 7.0

    def test_ticker_lookup(self, client, monkeypatch):
        monkeypatch.setattr(yfinance_client, "fetch_ticker_info", lambda ticker: {
            "name": "Apple Inc.",
            "symbol": "AAPL",
            "exchange": "NMS",
            "type": "EQUITY",
            "currency": "USD",
        })

        body = client.get("/api/ticker-lookup", params={"ticker": "aapl"}).json()

        assert body == {"name": "Apple Inc.", "symbol": "AAPL", "exchange": "NMS", "type": "EQUITY"}

    def test_unknown_ticker_is_404(self, client, monkeypatch):
        monkeypatch.setattr(yfinance_client, "fetch_ticker_info", lambda ticker: {})

        response = client.get("/api/ticker-lookup", params={"ticker": "zzzz"})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_yahoo_dividend_matches_nearby_date(self, client, monkeypatch):
        history = pd.DataFrame({
            "date": [date(2024, 2, 9), date(2024, 5, 10), date(2024, 8, 12)],
            "amount": [0.24, 0.25, 0.25],
        })
        monkeypatch.setattr(yfinance_client, "fetch_dividend_history", lambda ticker: history)

        near = client.get("/api/yahoo-dividend", params={"ticker": "AAPL", "exDividendDate": "2024-05-12"})
        far = client.get("/api/yahoo-dividend", params={"ticker": "AAPL", "exDividendDate": "2024-06-20"})
        latest = client.get("/api/yahoo-dividend", params={"ticker": "AAPL"})

        assert near.json() == {"ticker": "AAPL", "amount": 0.25, "date": "2024-05-10"}
        assert far.status_code == status.HTTP_404_NOT_FOUND
        assert latest.json()["date"] == "2024-08-12"

    def test_features(self, client):
        body = client.get("/api/features").json()

        assert set(body) == {"dashboard", "transactions", "positions", "trade_lots"}
        assert body["transactions"]["enabled"] is True


class TestUserEndpoints:
    def test_user_data(self, auth_client, user):
        body = auth_client.get("/api/user/data").json()

        assert body["email"] == user.email
        assert body["home_currency"] == "AUD"

    def test_preferences_default_then_update(self, auth_client):
        defaults = auth_client.get("/api/user/preferences").json()
        assert defaults["default_currency"] == "AUD"
        assert defaults["default_trading_currency"] == settings.DEFAULT_TRADING_CURRENCY
        assert defaults["theme"] == "light"

        updated = auth_client.put("/api/user/preferences", json={"theme": "dark", "default_currency": "usd"}).json()

        assert updated["theme"] == "dark"
        assert updated["default_currency"] == "USD"
        assert updated["decimal_places"] == 2


class TestTradeLots:
    def test_close_lot_books_net_result(self, auth_client, nasdaq, classify):
        classify("AAPL")
        lot_id = auth_client.post("/api/transactions", json=_buy(nasdaq)).json()["trade_lot_id"]

        closed = auth_client.post(f"/api/trade-lots/{lot_id}/close", json={
            "exit_date": "2024-02-09",
            "exit_price": 120,
            "exit_fees": 1,
        })

        body = closed.json()
        assert closed.status_code == status.HTTP_200_OK
        assert body["lot_status"] == "CLOSED"
        assert body["realized_pl"] == pytest.approx(198)
        assert body["realized_pl_percent"] == pytest.approx(198 / 1001 * 100)
        assert body["trade_hold_days"] == 30

        again = auth_client.post(f"/api/trade-lots/{lot_id}/close", json={"exit_date": "2024-02-10", "exit_price": 1})
        assert again.status_code == status.HTTP_400_BAD_REQUEST

    def test_exit_before_entry_is_rejected(self, auth_client, nasdaq, classify):
        classify("AAPL")
        lot_id = auth_client.post("/api/transactions", json=_buy(nasdaq)).json()["trade_lot_id"]

        response = auth_client.post(f"/api/trade-lots/{lot_id}/close", json={
            "exit_date": "2024-01-01",
            "exit_price": 120,
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_list_filters_by_status(self, auth_client, nasdaq, classify):
        classify("AAPL")
        auth_client.post("/api/transactions", json=_buy(nasdaq))

        assert len(auth_client.get("/api/trade-lots", params={"status": "OPEN"}).json()) == 1
        assert auth_client.get("/api/trade-lots", params={"status": "CLOSED"}).json() == []

    def test_realized_history_update_recomputes_totals(self, auth_client, nasdaq, classify):
        classify("AAPL")
        auth_client.post("/api/transactions", json=_buy(nasdaq, fees=0))
        auth_client.post("/api/transactions", json={
            **_buy(nasdaq, quantity=4, price=125, fees=0, trade_date="2024-02-01"),
            "transaction_type": "SELL",
        })
        (record,) = auth_client.get("/api/trades/realized-history").json()

        updated = auth_client.put(f"/api/trades/realized-history/{record['realization_id']}", json={
            "sale_price": 150,
            "realized_pnl": 1,
        }).json()

        assert updated["total_proceeds"] == pytest.approx(600)
        assert updated["realized_pnl"] == pytest.approx(200)

    def test_disabled_feature_is_403(self, auth_client):
        disabled = settings.FEATURES.model_copy(
            update={"trade_lots": Feature(enabled=False, message="Trade lot tracking coming soon")}
        )
        app.dependency_overrides[get_features] = lambda: disabled

        response = auth_client.get("/api/trade-lots")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"error": "Trade lot tracking coming soon"}


class TestTransactionEndpoints:
    def test_only_notes_and_fees_are_editable(self, auth_client, nasdaq, classify):
        classify("AAPL")
        transaction_id = auth_client.post("/api/transactions", json=_buy(nasdaq)).json()["transaction_id"]

        locked = auth_client.patch(f"/api/transactions/{transaction_id}", json={"quantity": 5})
        assert locked.status_code == status.HTTP_400_BAD_REQUEST
        assert "quantity" in locked.json()["error"]

        edited = auth_client.patch(f"/api/transactions/{transaction_id}", json={"notes": "split order", "fees": 2})
        assert edited.json()["notes"] == "split order"
        assert edited.json()["fees"] == pytest.approx(2)

    def test_summary(self, auth_client, nasdaq, classify):
        classify("AAPL")
        auth_client.post("/api/transactions", json=_buy(nasdaq))
        auth_client.post("/api/transactions", json={
            **_buy(nasdaq, quantity=5, price=120, trade_date="2024-02-01"),
            "transaction_type": "SELL",
        })

        summary = auth_client.get("/api/transactions/summary").json()

        assert summary["transactionCount"] == 2
        assert summary["buyCount"] == 1
        assert summary["sellCount"] == 1
        assert summary["totalBought"] == pytest.approx(1000)
        assert summary["totalSold"] == pytest.approx(600)
        assert summary["totalFees"] == pytest.approx(2)

    def test_list_filters_and_delete(self, auth_client, nasdaq, classify):
        classify("AAPL")
        classify("MSFT")
        auth_client.post("/api/transactions", json=_buy(nasdaq))
        msft = auth_client.post("/api/transactions", json=_buy(nasdaq, ticker="MSFT", trade_date="2024-03-01")).json()

        assert [t["ticker"] for t in auth_client.get("/api/transactions", params={"ticker": "msft"}).json()] == ["MSFT"]
        assert len(auth_client.get("/api/transactions", params={"startDate": "2024-02-01"}).json()) == 1

        assert auth_client.delete(f"/api/transactions/{msft['transaction_id']}").json() == {"success": True}
        assert auth_client.get(f"/api/transactions/{msft['transaction_id']}").status_code == status.HTTP_404_NOT_FOUND
