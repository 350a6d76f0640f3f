from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PositionOut(BaseModel):
    position_id: str
    ticker: str
    ticker_name: str | None = None
    exchange_id: int
    total_shares: float
    average_cost: float
    capital_invested: float | None = None
    current_market_price: float | None = None
    current_value: float | None = None
    unrealized_pnl: float | None = None
    realized_pnl: float | None = None
    position_currency: str
    is_active: bool
    opened_date: date | None = None
    closed_date: date | None = None
    strategy_id: int | None = None
    class_name: str | None = None
    type_code: str | None = None
    type_name: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TradeStrategyOut(BaseModel):
    strategy_id: int
    strategy_code: str
    strategy_name: str
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UpdateStrategyIn(BaseModel):
    position_id: str
    strategy_id: Optional[int] = None
