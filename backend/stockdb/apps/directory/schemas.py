from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class CustomerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    customer_code: str
    customer_name: str


class BranchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    branch_code: str
    branch_name: str
    owner_customer_code: str
    address: Optional[str] = None
    owner: Optional[CustomerRead] = None


class DepartmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    department_code: str
    department_name: str


class StaffRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    staff_code: str
    staff_name: str
    department_code: Optional[str] = None
