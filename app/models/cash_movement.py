import uuid

from sqlalchemy import Column, String, Integer, Boolean, Numeric, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.core.db import Base


class CashMovementDirection(Base):
    __tablename__ = "cash_movement_directions"

    direction_id = Column(Integer, primary_key=True, autoincrement=True)
    direction_code = Column(String, nullable=False, unique=True)
    direction_name = Column(String, nullable=False)
    multiplier = Column(Integer, nullable=False)


class CashMovement(Base):
    __tablename__ = "cash_movements"

    cash_movement_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    home_currency_code = Column(String(3), nullable=False)
    home_currency_value = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    trading_currency_code = Column(String(3), nullable=False)
    trading_currency_value = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    spot_rate = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    spot_rate_is_actual = Column(Boolean, nullable=False, default=True)
    direction_id = Column(Integer, ForeignKey("cash_movement_directions.direction_id"), nullable=False)
    transaction_date = Column(Date, nullable=False)
    period_from = Column(Date, nullable=True)
    period_to = Column(Date, nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    direction = relationship("CashMovementDirection", lazy="joined")
