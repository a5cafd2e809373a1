from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stockdb.apps.directory.schemas import BranchRead, DepartmentRead, StaffRead
from stockdb.apps.inventory.schemas import ItemRead

from . import models


class WithdrawalBase(BaseModel):
    type: models.WithdrawalTypeEnum
    for_branch_code: Optional[str] = None
    for_department_code: Optional[str] = None
    created_by_staff_code: str = Field(..., min_length=1)
    date: date
    install_date: Optional[date] = None
    return_by: Optional[date] = None
    remarks: Optional[str] = None

    @field_validator("for_branch_code", "for_department_code", "created_by_staff_code", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class WithdrawalCreate(WithdrawalBase):
    pass


class WithdrawalUpdate(WithdrawalBase):
    pass


class WithdrawalRemarksUpdate(BaseModel):
    remarks: Optional[str] = None


class WithdrawalStatusChange(BaseModel):
    # Free-form so that PENDING and unknown values reach the transition rules
    # and come back as validation errors with a reason.
    status: str


class SerialBatch(BaseModel):
    serial_no: List[str] = Field(..., min_length=1)


class WithdrawalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: models.WithdrawalTypeEnum
    status: models.WithdrawalStatusEnum
    for_branch_code: Optional[str] = None
    for_department_code: Optional[str] = None
    created_by_staff_code: str
    date: date
    install_date: Optional[date] = None
    return_by: Optional[date] = None
    remarks: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class WithdrawalDetail(WithdrawalRead):
    branch: Optional[BranchRead] = None
    department: Optional[DepartmentRead] = None
    created_by: Optional[StaffRead] = None
    serials: List[str] = Field(default_factory=list)


class WithdrawalPage(BaseModel):
    total: int
    items: List[WithdrawalRead]


class WithdrawalItemPage(BaseModel):
    total: int
    items: List[ItemRead]


class WithdrawalFilters(BaseModel):
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    install_from: Optional[date] = None
    install_to: Optional[date] = None
    return_from: Optional[date] = None
    return_to: Optional[date] = None
    type: Optional[models.WithdrawalTypeEnum] = None
    status: Optional[models.WithdrawalStatusEnum] = None
    search: Optional[str] = None


class SerialError(BaseModel):
    subject: str
    reason: str
    code: str


class BatchResultRead(BaseModel):
    updated: List[str]
    errors: List[SerialError]
