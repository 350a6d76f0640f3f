import pytest
from fastapi import status

from app.core.exceptions import ValidationError
from app.models import ImportStaging, Transaction
from app.services import import_service

CSV = (
    "Date,Type,Ticker,Shares,Price,Fees,Exchange,Strategy\n"
    "2024-01-10,BUY,AAPL,10,100,1,NASDAQ,GROWTH\n"
    "2024-01-11,BUY,MSFT,5,300,0,NASDAQ,\n"
    "2024-01-12,HOLD,AAPL,1,1,0,NASDAQ,GROWTH\n"
    "2024-01-13,BUY,AAPL,2,110,0,MOON,GROWTH\n"
)


def _staged(db_session, ticker, status_=import_service.IMPORTED):
    return (
        db_session.query(ImportStaging)
        .filter(ImportStaging.ticker == ticker, ImportStaging.status == status_)
        .one()
    )


class TestCsvStaging:
    def test_stage_counts_and_statuses(self, factory, user, db_session):
        result = import_service.stage_transactions_csv(factory, user.user_id, CSV.encode())

        assert result["imported"] == 2
        assert result["duplicates"] == 0
        assert result["errors"] == 2
        rejected = _staged(db_session, "AAPL", import_service.REJECTED_ERROR)
        assert rejected.rejection_reason == "Unknown exchange MOON"

    def test_restaging_marks_duplicates(self, factory, user):
        import_service.stage_transactions_csv(factory, user.user_id, CSV.encode())

        again = import_service.stage_transactions_csv(factory, user.user_id, CSV.encode())

        assert again["imported"] == 0
        assert again["duplicates"] == 2

    def test_missing_columns_rejected(self, factory, user):
        with pytest.raises(ValidationError, match="price"):
            import_service.stage_transactions_csv(factory, user.user_id, b"date,type,ticker,quantity\n")

    def test_release_records_transactions_and_rejects_the_rest(self, factory, user, db_session, classify):
        classify("AAPL")
        classify("MSFT")
        import_service.stage_transactions_csv(factory, user.user_id, CSV.encode())
        aapl = _staged(db_session, "AAPL")
        msft = _staged(db_session, "MSFT")

        result = import_service.release_staging(factory, user.user_id, [aapl.staging_id, msft.staging_id])

        assert result["released"] == [aapl.staging_id]
        assert result["rejected"] == [{"staging_id": msft.staging_id, "reason": "Strategy required"}]
        assert db_session.query(Transaction).count() == 1
        db_session.refresh(msft)
        assert msft.status == import_service.REJECTED_ERROR

        cleared = import_service.clear_rejected(factory, user.user_id)
        assert cleared == {"deletedCount": 2}


class TestImportEndpoints:
    def test_upload_and_list(self, auth_client):
        response = auth_client.post(
            "/api/imports/transactions/csv",
            files={"file": ("trades.csv", CSV.encode(), "text/csv")},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["imported"] == 2

        staged = auth_client.get("/api/imports/staging", params={"status": "imported"}).json()
        assert sorted(row["ticker"] for row in staged) == ["AAPL", "MSFT"]

    def test_requires_session(self, client):
        assert client.get("/api/imports/staging").status_code == status.HTTP_401_UNAUTHORIZED
