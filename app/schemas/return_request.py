# app/schemas/return_request.py
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Base(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class ReturnLineIn(_Base):
    order_item_id: int = Field(ge=1)
    quantity: int = Field(ge=1)


class ReturnCreateIn(_Base):
    order_id: Annotated[str, Field(min_length=1, max_length=36)]
    reason: Annotated[str, Field(min_length=1, max_length=2000)]
    items: Annotated[List[ReturnLineIn], Field(min_length=1)]
    images: Optional[List[Any]] = None


class ReturnItemOut(_Base):
    id: int
    order_item_id: int
    quantity: int


class ReturnOut(_Base):
    id: str
    order_id: str
    user_id: Optional[str] = None
    status: str
    reason: str
    images: Optional[List[Any]] = None
    created_at: datetime
    items: List[ReturnItemOut] = Field(default_factory=list)


class ReturnStatusIn(_Base):
    status: str
