from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    data: List[T]
    total: int
    page: Optional[int] = None
    page_size: Optional[int] = Field(default=None, alias="pageSize")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class SuccessOut(BaseModel):
    success: bool = True
