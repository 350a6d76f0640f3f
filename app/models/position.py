import uuid

from sqlalchemy import Column, String, Integer, Boolean, Numeric, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.core.db import Base


class TradeStrategy(Base):
    __tablename__ = "trade_strategies"

    strategy_id = Column(Integer, primary_key=True, autoincrement=True)
    strategy_code = Column(String, nullable=False, unique=True)
    strategy_name = Column(String, nullable=False)
    description = Column(String, nullable=True)


class Position(Base):
    __tablename__ = "positions"

    position_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    ticker = Column(String, nullable=False, index=True)
    exchange_id = Column(Integer, ForeignKey("exchanges.exchange_id"), nullable=False)
    ticker_name = Column(String, nullable=True)
    total_shares = Column(Numeric(20, 8, asdecimal=False), nullable=False, default=0)
    average_cost = Column(Numeric(20, 8, asdecimal=False), nullable=False, default=0)
    current_market_price = Column(Numeric(20, 8, asdecimal=False), nullable=True)
    current_value = Column(Numeric(20, 8, asdecimal=False), nullable=True)
    unrealized_pnl = Column(Numeric(20, 8, asdecimal=False), nullable=True)
    realized_pnl = Column(Numeric(20, 8, asdecimal=False), nullable=False, default=0)
    position_currency = Column(String(3), nullable=False, default="USD")
    is_active = Column(Boolean, nullable=False, default=True)
    opened_date = Column(Date, nullable=True)
    closed_date = Column(Date, nullable=True)
    strategy_id = Column(Integer, ForeignKey("trade_strategies.strategy_id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    strategy = relationship("TradeStrategy")
