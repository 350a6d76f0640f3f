import uuid

from sqlalchemy import Column, String, Integer, Numeric, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.core.db import Base


class TransactionType(Base):
    __tablename__ = "transaction_types"

    type_id = Column(Integer, primary_key=True, autoincrement=True)
    type_name = Column(String, nullable=False, unique=True)
    type_multiplier = Column(Integer, nullable=False)


class Transaction(Base):
    __tablename__ = "transactions"

    transaction_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    ticker = Column(String, nullable=False, index=True)
    exchange_id = Column(Integer, ForeignKey("exchanges.exchange_id"), nullable=False)
    transaction_type_id = Column(Integer, ForeignKey("transaction_types.type_id"), nullable=False)
    transaction_date = Column(Date, nullable=False)
    quantity = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    price = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    trade_value = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    fees = Column(Numeric(20, 8, asdecimal=False), nullable=False, default=0)
    transaction_currency = Column(String(3), nullable=False, default="USD")
    notes = Column(String, nullable=True)
    trade_lot_id = Column(String, ForeignKey("trade_lots.lot_id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    transaction_type = relationship("TransactionType", lazy="joined")


class TradeLot(Base):
    __tablename__ = "trade_lots"

    lot_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    ticker = Column(String, nullable=False, index=True)
    exchange_id = Column(Integer, ForeignKey("exchanges.exchange_id"), nullable=False)
    entry_date = Column(Date, nullable=False)
    entry_price = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    quantity = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    entry_fees = Column(Numeric(20, 8, asdecimal=False), nullable=False, default=0)
    entry_transaction_id = Column(String, nullable=True)
    exit_date = Column(Date, nullable=True)
    exit_price = Column(Numeric(20, 8, asdecimal=False), nullable=True)
    exit_fees = Column(Numeric(20, 8, asdecimal=False), nullable=True, default=0)
    exit_transaction_id = Column(String, nullable=True)
    lot_status = Column(String, nullable=False, default="OPEN")
    realized_pl = Column(Numeric(20, 8, asdecimal=False), nullable=True)
    realized_pl_percent = Column(Numeric(20, 8, asdecimal=False), nullable=True)
    trade_hold_days = Column(Integer, nullable=True)
    trade_strategy = Column(Integer, ForeignKey("trade_strategies.strategy_id"), nullable=True)
    trade_currency = Column(String(3), nullable=False, default="USD")
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class RealizedPnLHistory(Base):
    __tablename__ = "realized_pnl_history"

    realization_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    position_id = Column(String, ForeignKey("positions.position_id"), nullable=True)
    ticker = Column(String, nullable=False)
    sale_date = Column(Date, nullable=False)
    quantity = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    average_cost = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    total_cost = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    sale_price = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    total_proceeds = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    realized_pnl = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    fees = Column(Numeric(20, 8, asdecimal=False), nullable=False, default=0)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class ImportStaging(Base):
    __tablename__ = "import_staging"

    staging_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    import_batch_id = Column(String, nullable=False)
    status = Column(String, nullable=False, default="imported")
    ticker = Column(String, nullable=False)
    exchange_id = Column(Integer, ForeignKey("exchanges.exchange_id"), nullable=True)
    transaction_type_id = Column(Integer, ForeignKey("transaction_types.type_id"), nullable=False)
    transaction_date = Column(Date, nullable=False)
    quantity = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    price = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    trade_value = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    fees = Column(Numeric(20, 8, asdecimal=False), nullable=False, default=0)
    transaction_currency = Column(String(3), nullable=False, default="USD")
    strategy_code = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    rejection_reason = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
