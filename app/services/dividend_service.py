from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from app.core.config import settings
from app.core.exceptions import NotFound, ValidationError
from app.core.logger import logger
from app.models import Dividend
from app.repositories.factory import RepositoryFactory
from app.services.validators import normalize_code, paginate, parse_date, parse_number, require_fields

REQUIRED_DIVIDEND_FIELDS = ("ticker", "ex_dividend_date", "dividend_per_share", "shares_owned")


def quarter_bounds(year: int, quarter: int) -> Tuple[date, date]:
    """
    Calendar quarter as a half-open range [start, end).
    Quarter q covers months (q-1)*3+1 .. q*3; the fourth quarter ends on January 1 of the next year.
    """
    if quarter not in (1, 2, 3, 4):
        raise ValidationError("quarter must be between 1 and 4")
    start = date(year, (quarter - 1) * 3 + 1, 1)
    end = date(year + 1, 1, 1) if quarter == 4 else date(year, quarter * 3 + 1, 1)
    return start, end


def _dividend_values(values: Dict[str, Any]) -> Dict[str, Any]:
    require_fields(values, REQUIRED_DIVIDEND_FIELDS)

    per_share = parse_number(values["dividend_per_share"], "dividend_per_share", positive=True)
    shares = parse_number(values["shares_owned"], "shares_owned", positive=True)
    dividend_yield = values.get("dividend_yield")

    return {
        "ticker": normalize_code(values["ticker"], "ticker"),
        "ex_dividend_date": parse_date(values["ex_dividend_date"], "ex_dividend_date"),
        "payment_date": parse_date(values.get("payment_date"), "payment_date"),
        "dividend_per_share": per_share,
        "shares_owned": shares,
        "total_dividend_amount": per_share * shares,
        "dividend_yield": parse_number(dividend_yield, "dividend_yield") if dividend_yield is not None else None,
        "currency": normalize_code(values["currency"], "currency") if values.get("currency") else None,
        "notes": values.get("notes") or None,
    }


def create_dividend(factory: RepositoryFactory, user_id: str, fields: Dict[str, Any]) -> Dividend:
    row = _dividend_values(factory.get_dividend_repository().normalize_header([fields])[0])
    row["user_id"] = user_id
    dividend = factory.get_dividend_repository().create(row)
    logger.info(f"Created dividend {dividend.dividend_id} for {dividend.ticker}")
    return dividend


def update_dividend(factory: RepositoryFactory, user_id: str, dividend_id: str, fields: Dict[str, Any]) -> Dividend:
    """Apply the supplied fields; the total is recomputed from per-share amount and shares."""
    repo = factory.get_dividend_repository()
    dividend = repo.get_for_user(dividend_id, user_id)
    if dividend is None:
        raise NotFound("Dividend not found")

    current = {
        "ticker": dividend.ticker,
        "ex_dividend_date": dividend.ex_dividend_date,
        "payment_date": dividend.payment_date,
        "dividend_per_share": dividend.dividend_per_share,
        "shares_owned": dividend.shares_owned,
        "dividend_yield": dividend.dividend_yield,
        "currency": dividend.currency,
        "notes": dividend.notes,
    }
    supplied = repo.normalize_header([fields])[0] if fields else {}
    current.update(supplied)
    return repo.update_obj(dividend, _dividend_values(current))


def get_dividend(factory: RepositoryFactory, user_id: str, dividend_id: str) -> Dividend:
    dividend = factory.get_dividend_repository().get_for_user(dividend_id, user_id)
    if dividend is None:
        raise NotFound("Dividend not found")
    return dividend


def delete_dividend(factory: RepositoryFactory, user_id: str, dividend_id: str) -> None:
    if not factory.get_dividend_repository().delete_for_user(dividend_id, user_id):
        raise NotFound("Dividend not found")


def list_dividends(factory: RepositoryFactory, user_id: str) -> List[Dividend]:
    return factory.get_dividend_repository().get_user_dividends(user_id)


def latest_dividend(factory: RepositoryFactory, user_id: str, ticker: str) -> Dict[str, Any]:
    dividend = factory.get_dividend_repository().get_latest_for_ticker(user_id, ticker)
    if dividend is None:
        return {"last_dividend_per_share": 0, "ex_dividend_date": None, "total_dividend_amount": 0}
    return {
        "last_dividend_per_share": dividend.dividend_per_share,
        "ex_dividend_date": dividend.ex_dividend_date,
        "total_dividend_amount": dividend.total_dividend_amount,
    }


def upcoming_dividends(factory: RepositoryFactory, user_id: str, today: Optional[date] = None) -> List[Dict[str, Any]]:
    today = today or date.today()
    return [
        {
            "dividend_id": d.dividend_id,
            "ticker": d.ticker,
            "ex_dividend_date": d.ex_dividend_date,
            "payment_date": d.payment_date,
            "dividend_per_share": d.dividend_per_share,
            "shares_owned": d.shares_owned,
            "total_dividend_amount": d.total_dividend_amount,
            "days_until": (d.ex_dividend_date - today).days,
        }
        for d in factory.get_dividend_repository().get_upcoming(user_id, today)
    ]


def open_positions_for_dividends(factory: RepositoryFactory, user_id: str) -> List[Dict[str, Any]]:
    return [
        {
            "position_id": p.position_id,
            "ticker": p.ticker,
            "ticker_name": p.ticker_name,
            "exchange_id": p.exchange_id,
            "total_shares": p.total_shares,
            "position_currency": p.position_currency,
        }
        for p in factory.get_position_repository().get_active_positions(user_id)
    ]


def _dividend_frame(factory: RepositoryFactory, user_id: str) -> pd.DataFrame:
    df = factory.get_dividend_repository().read_frame(user_id)
    if df.empty:
        return df

    df["ex_dividend_date"] = pd.to_datetime(df["ex_dividend_date"])
    df["payment_date"] = pd.to_datetime(df["payment_date"])
    df["paid_date"] = df["payment_date"].fillna(df["ex_dividend_date"])
    df["total_dividend_amount"] = df["total_dividend_amount"].fillna(
        df["dividend_per_share"] * df["shares_owned"]
    )
    df["year"] = df["ex_dividend_date"].dt.year
    df["quarter"] = df["ex_dividend_date"].dt.quarter
    return df


def summary_by_ticker(factory: RepositoryFactory, user_id: str) -> List[Dict[str, Any]]:
    df = _dividend_frame(factory, user_id)
    if df.empty:
        return []

    summary = (
        df.groupby("ticker")
        .agg(
            total_dividend_payments=("dividend_id", "count"),
            total_dividends_received=("total_dividend_amount", "sum"),
            avg_dividend_per_share=("dividend_per_share", "mean"),
            latest_dividend_date=("paid_date", "max"),
            earliest_dividend_date=("paid_date", "min"),
        )
        .reset_index()
        .sort_values(["total_dividends_received", "ticker"], ascending=[False, True])
    )
    summary["latest_dividend_date"] = summary["latest_dividend_date"].dt.date
    summary["earliest_dividend_date"] = summary["earliest_dividend_date"].dt.date
    return summary.to_dict(orient="records")


def summary_by_year(factory: RepositoryFactory, user_id: str) -> List[Dict[str, Any]]:
    df = _dividend_frame(factory, user_id)
    if df.empty:
        return []

    summary = (
        df.groupby("year")
        .agg(
            stocks_paid_dividends=("ticker", "nunique"),
            total_dividend_payments=("dividend_id", "count"),
            total_dividends_received=("total_dividend_amount", "sum"),
        )
        .reset_index()
        .sort_values("year", ascending=False)
    )
    return summary.to_dict(orient="records")


def summary_by_quarter(factory: RepositoryFactory, user_id: str, year: Optional[int] = None) -> List[Dict[str, Any]]:
    df = _dividend_frame(factory, user_id)
    if df.empty:
        return []
    if year is not None:
        df = df[df["year"] == year]

    summary = (
        df.groupby(["year", "quarter"])
        .agg(
            stocks_paid_dividends=("ticker", "nunique"),
            total_dividend_payments=("dividend_id", "count"),
            total_dividends_received=("total_dividend_amount", "sum"),
        )
        .reset_index()
        .sort_values(["year", "quarter"], ascending=[False, False])
    )

    records = summary.to_dict(orient="records")
    for record in records:
        start, end = quarter_bounds(int(record["year"]), int(record["quarter"]))
        record["quarter_start_date"] = start
        record["quarter_end_date"] = end - timedelta(days=1)
    return records


def dividends_by_ticker(
    factory: RepositoryFactory,
    user_id: str,
    ticker: Optional[str] = None,
    page: int = 1,
    page_size: int = settings.DEFAULT_PAGE_SIZE,
) -> Dict[str, Any]:
    if not ticker:
        return {"data": summary_by_ticker(factory, user_id)}
    offset, limit = paginate(page, page_size)
    rows, total = factory.get_dividend_repository().get_by_ticker_page(user_id, ticker, offset, limit)
    return {"data": rows, "total": total}


def dividends_by_year(
    factory: RepositoryFactory,
    user_id: str,
    year: Optional[int] = None,
    page: int = 1,
    page_size: int = settings.DEFAULT_PAGE_SIZE,
) -> Dict[str, Any]:
    if year is None:
        return {"data": summary_by_year(factory, user_id)}
    offset, limit = paginate(page, page_size)
    rows, total = factory.get_dividend_repository().get_by_ex_date_range_page(
        user_id, date(year, 1, 1), date(year + 1, 1, 1), offset, limit
    )
    return {"data": rows, "total": total}


def dividends_by_quarter(
    factory: RepositoryFactory,
    user_id: str,
    year: Optional[int] = None,
    quarter: Optional[int] = None,
    page: int = 1,
    page_size: int = settings.DEFAULT_PAGE_SIZE,
) -> Dict[str, Any]:
    if year is None or quarter is None:
        return {"data": summary_by_quarter(factory, user_id)}
    start, end = quarter_bounds(year, quarter)
    offset, limit = paginate(page, page_size)
    rows, total = factory.get_dividend_repository().get_by_ex_date_range_page(user_id, start, end, offset, limit)
    return {"data": rows, "total": total}


def dashboard_dividends(factory: RepositoryFactory, user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    current_year = (today or date.today()).year

    by_ticker = summary_by_ticker(factory, user_id)
    ytd = next((y for y in summary_by_year(factory, user_id) if int(y["year"]) == current_year), None)
    quarterly = summary_by_quarter(factory, user_id, year=current_year)
    names = {
        p.ticker: p.ticker_name
        for p in factory.get_position_repository().get_active_positions(user_id)
        if p.ticker_name
    }

    return {
        "summary": {
            "totalDividends": float(sum(t["total_dividends_received"] for t in by_ticker)),
            "ytdDividends": float(ytd["total_dividends_received"]) if ytd else 0.0,
            "dividendPayingStocks": len(by_ticker),
            "ytdPayments": int(ytd["total_dividend_payments"]) if ytd else 0,
        },
        "breakdown": [
            {
                "ticker": t["ticker"],
                "tickerName": names.get(t["ticker"], t["ticker"]),
                "totalPayments": int(t["total_dividend_payments"]),
                "totalReceived": float(t["total_dividends_received"]),
                "avgPerShare": float(t["avg_dividend_per_share"]),
                "latestDate": t["latest_dividend_date"],
            }
            for t in by_ticker
        ],
        "quarterly": [
            {
                "year": int(q["year"]),
                "quarter": int(q["quarter"]),
                "stocksPaid": int(q["stocks_paid_dividends"]),
                "totalPayments": int(q["total_dividend_payments"]),
                "totalReceived": float(q["total_dividends_received"]),
                "startDate": q["quarter_start_date"],
                "endDate": q["quarter_end_date"],
            }
            for q in quarterly
        ],
    }
