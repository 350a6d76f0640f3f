from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict


class DividendOut(BaseModel):
    dividend_id: str
    ticker: str
    ex_dividend_date: date
    payment_date: date | None = None
    dividend_per_share: float
    shares_owned: float
    total_dividend_amount: float | None = None
    dividend_yield: float | None = None
    currency: str | None = None
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class DividendIn(BaseModel):
    ticker: Optional[str] = None
    ex_dividend_date: Optional[date] = None
    payment_date: Optional[date] = None
    dividend_per_share: Optional[float] = None
    shares_owned: Optional[float] = None
    total_dividend_amount: Optional[float] = None
    dividend_yield: Optional[float] = None
    currency: Optional[str] = None
    notes: Optional[str] = None


class LatestDividendOut(BaseModel):
    last_dividend_per_share: float
    ex_dividend_date: date | None = None
    total_dividend_amount: float


class UpcomingDividendOut(BaseModel):
    dividend_id: str
    ticker: str
    ex_dividend_date: date
    payment_date: date | None = None
    dividend_per_share: float
    shares_owned: float
    total_dividend_amount: float | None = None
    days_until: int


class YahooDividendOut(BaseModel):
    ticker: str
    amount: float
    date: date
