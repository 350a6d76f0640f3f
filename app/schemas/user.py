from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserOut(BaseModel):
    user_id: str
    first_name: str
    middle_name: str | None = None
    last_name: str
    display_name: str
    email: str
    resident_country: str | None = None
    home_currency: str
    is_active: bool
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PreferencesOut(BaseModel):
    default_currency: str | None = None
    default_trading_currency: str
    decimal_places: int
    date_format: str
    theme: str
    notifications_enabled: bool

    model_config = ConfigDict(from_attributes=True)


class PreferencesIn(BaseModel):
    default_currency: Optional[str] = None
    default_trading_currency: Optional[str] = None
    decimal_places: Optional[int] = None
    date_format: Optional[str] = None
    theme: Optional[str] = None
    notifications_enabled: Optional[bool] = None
