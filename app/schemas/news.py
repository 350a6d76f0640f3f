from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class NewsTypeOut(BaseModel):
    news_type_id: int
    type_code: str
    type_name: str

    model_config = ConfigDict(from_attributes=True)


class NewsOut(BaseModel):
    news_id: str
    ticker: str
    exchange_id: int | None = None
    company_name: str | None = None
    news_type_id: int
    news_type: NewsTypeOut | None = None
    news_description: str
    news_date: date
    alert_date: date | None = None
    alert_notes: str | None = None
    news_source: str | None = None
    news_url: str | None = None
    tags: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class NewsIn(BaseModel):
    ticker: Optional[str] = None
    exchange_id: Optional[int] = None
    company_name: Optional[str] = None
    news_type_id: Optional[int] = None
    news_description: Optional[str] = None
    news_date: Optional[date] = None
    alert_date: Optional[date] = None
    alert_notes: Optional[str] = None
    news_source: Optional[str] = None
    news_url: Optional[str] = None
    tags: Optional[str] = None
