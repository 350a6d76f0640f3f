from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class TransactionTypeOut(BaseModel):
    type_id: int
    type_name: str
    type_multiplier: int

    model_config = ConfigDict(from_attributes=True)


class TransactionOut(BaseModel):
    transaction_id: str
    ticker: str
    exchange_id: int
    transaction_type_id: int
    transaction_type: TransactionTypeOut | None = None
    transaction_date: date
    quantity: float
    price: float
    trade_value: float
    fees: float
    transaction_currency: str
    notes: str | None = None
    trade_lot_id: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class TransactionIn(BaseModel):
    ticker: Optional[str] = None
    exchange_id: Optional[int] = None
    transaction_type: Optional[str] = None
    transaction_date: Optional[date] = None
    quantity: Optional[float] = None
    price: Optional[float] = None
    fees: Optional[float] = None
    transaction_currency: Optional[str] = None
    ticker_name: Optional[str] = None
    notes: Optional[str] = None


class TransactionPatch(BaseModel):
    """Any other field present in the body is rejected by the service."""
    notes: Optional[str] = None
    fees: Optional[float] = None
    quantity: Optional[float] = None
    price: Optional[float] = None
    transaction_date: Optional[date] = None
    ticker: Optional[str] = None


class TradeLotOut(BaseModel):
    lot_id: str
    ticker: str
    exchange_id: int
    entry_date: date
    entry_price: float
    quantity: float
    entry_fees: float | None = None
    entry_transaction_id: str | None = None
    exit_date: date | None = None
    exit_price: float | None = None
    exit_fees: float | None = None
    exit_transaction_id: str | None = None
    lot_status: str
    realized_pl: float | None = None
    realized_pl_percent: float | None = None
    trade_hold_days: int | None = None
    trade_strategy: int | None = None
    trade_currency: str
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class CloseTradeLotIn(BaseModel):
    exit_date: Optional[date] = None
    exit_price: Optional[float] = None
    exit_fees: Optional[float] = None
    exit_transaction_id: Optional[str] = None


class RealizedPnLOut(BaseModel):
    realization_id: int
    position_id: str | None = None
    ticker: str
    sale_date: date
    quantity: float
    average_cost: float
    total_cost: float
    sale_price: float
    total_proceeds: float
    realized_pnl: float
    fees: float
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class RealizedPnLIn(BaseModel):
    sale_date: Optional[date] = None
    quantity: Optional[float] = None
    average_cost: Optional[float] = None
    sale_price: Optional[float] = None
    fees: Optional[float] = None
    notes: Optional[str] = None
    total_cost: Optional[float] = None
    total_proceeds: Optional[float] = None
    realized_pnl: Optional[float] = None


class StagingOut(BaseModel):
    staging_id: int
    import_batch_id: str
    status: str
    ticker: str
    exchange_id: int | None = None
    transaction_type_id: int
    transaction_date: date
    quantity: float
    price: float
    trade_value: float
    fees: float
    transaction_currency: str
    strategy_code: str | None = None
    notes: str | None = None
    rejection_reason: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ReleaseStagingIn(BaseModel):
    staging_ids: List[int]
