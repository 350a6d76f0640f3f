from typing import Optional

from pydantic import BaseModel


class ClassificationOut(BaseModel):
    classification_id: str
    ticker: str
    exchange_id: int
    exchange_code: str | None = None
    class_id: int
    class_name: str | None = None
    type_id: int | None = None
    type_code: str | None = None
    type_name: str | None = None


class ClassificationIn(BaseModel):
    ticker: Optional[str] = None
    exchange_id: Optional[int] = None
    class_id: Optional[int] = None
    type_id: Optional[int] = None
