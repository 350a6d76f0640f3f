import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

import pandas as pd
from pydantic import BaseModel


def json_serializer(obj: Any):
    """``default`` hook for cached payloads: dates as ISO strings, numbers as floats."""
    if isinstance(obj, (pd.Timestamp, datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    # numpy scalars coming out of pandas aggregations
    if hasattr(obj, "item") and callable(obj.item):
        return obj.item()
    raise TypeError(f"Type {type(obj)} not serializable")


def to_json(data: Any, **kwargs) -> str:
    return json.dumps(data, default=json_serializer, **kwargs)
