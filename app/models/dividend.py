import uuid

from sqlalchemy import Column, String, Numeric, Date, DateTime, ForeignKey, func
from app.core.db import Base


class Dividend(Base):
    __tablename__ = "dividends"

    dividend_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    ticker = Column(String, nullable=False, index=True)
    ex_dividend_date = Column(Date, nullable=False)
    payment_date = Column(Date, nullable=True)
    dividend_per_share = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    shares_owned = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    total_dividend_amount = Column(Numeric(20, 8, asdecimal=False), nullable=True)
    dividend_yield = Column(Numeric(20, 8, asdecimal=False), nullable=True)
    currency = Column(String(3), nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
