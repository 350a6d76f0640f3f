from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class CashMovementDirectionOut(BaseModel):
    direction_id: int
    direction_code: str
    direction_name: str
    multiplier: int

    model_config = ConfigDict(from_attributes=True)


class CashMovementOut(BaseModel):
    cash_movement_id: str
    home_currency_code: str
    home_currency_value: float
    trading_currency_code: str
    trading_currency_value: float
    spot_rate: float
    spot_rate_is_actual: bool | None = None
    direction_id: int
    direction: CashMovementDirectionOut | None = None
    transaction_date: date
    period_from: date | None = None
    period_to: date | None = None
    notes: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CashMovementIn(BaseModel):
    """All fields optional here; the service reports which required ones are missing."""
    home_currency_value: Optional[float] = None
    spot_rate: Optional[float] = None
    transaction_date: Optional[date] = None
    direction_id: Optional[int] = None
    period_from: Optional[date] = None
    period_to: Optional[date] = None
    spot_rate_is_actual: Optional[bool] = None
    home_currency_code: Optional[str] = None
    trading_currency_code: Optional[str] = None
    notes: Optional[str] = None


class CurrenciesOut(BaseModel):
    home_currency: str
    trading_currency: str
    trading_currencies: List[str]


class PeriodOut(BaseModel):
    period_from: date | None
    period_to: date | None
    is_current: bool
    period_display: str


class PeriodStatOut(PeriodOut):
    total_deposited_home: float
    total_deposited_trading: float
    total_withdrawn_home: float
    total_withdrawn_trading: float
    net_home: float
    net_trading: float
    deposit_count: int
    withdrawal_count: int
    transaction_count: int
    weighted_avg_rate: float | None = None
    cumulative_home: float
    cumulative_trading: float


class FundingOut(BaseModel):
    currencies: CurrenciesOut
    movements: List[CashMovementOut]
    periodStats: List[PeriodStatOut]


class CashMovementResult(BaseModel):
    success: bool = True
    data: CashMovementOut
