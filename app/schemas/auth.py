from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict


class LoginIn(BaseModel):
    method: Literal["password", "otp", "passkey"]
    email: str
    password: Optional[str] = None
    code: Optional[str] = None
    response: Optional[Dict[str, Any]] = None


class EmailIn(BaseModel):
    email: str


class PasswordSetupIn(BaseModel):
    email: str
    password: str


class PasskeyRegisterIn(BaseModel):
    response: Dict[str, Any]
    device_name: Optional[str] = None


class SessionUserOut(BaseModel):
    user_id: str
    email: str
    first_name: str
    last_name: str
    display_name: str
    home_currency: str

    model_config = ConfigDict(from_attributes=True)


class LoginOut(BaseModel):
    success: bool = True
    token: str
    expiresAt: datetime
    user: SessionUserOut
