from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import models


class ItemCreate(BaseModel):
    serial_no: str = Field(..., min_length=1, max_length=64)
    model: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("serial_no", mode="before")
    @classmethod
    def _strip_serial(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class ItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    serial_no: str
    model: Optional[str] = None
    status: models.ItemStatusEnum
    reserved_branch_code: Optional[str] = None
    is_broken: bool
    remarks: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ItemPage(BaseModel):
    total: int
    items: List[ItemRead]
