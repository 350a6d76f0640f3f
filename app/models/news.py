import uuid

from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.core.db import Base


class NewsType(Base):
    __tablename__ = "news_types"

    news_type_id = Column(Integer, primary_key=True, autoincrement=True)
    type_code = Column(String, nullable=False, unique=True)
    type_name = Column(String, nullable=False)


class News(Base):
    __tablename__ = "news"

    news_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    ticker = Column(String, nullable=False, index=True)
    exchange_id = Column(Integer, ForeignKey("exchanges.exchange_id"), nullable=True)
    company_name = Column(String, nullable=True)
    news_type_id = Column(Integer, ForeignKey("news_types.news_type_id"), nullable=False)
    news_description = Column(String, nullable=False)
    news_date = Column(Date, nullable=False)
    alert_date = Column(Date, nullable=True)
    alert_notes = Column(String, nullable=True)
    news_source = Column(String, nullable=True)
    news_url = Column(String, nullable=True)
    tags = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    news_type = relationship("NewsType", lazy="joined")
