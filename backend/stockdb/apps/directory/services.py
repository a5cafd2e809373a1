from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from . import models


def get_branch(db: Session, branch_code: Optional[str]) -> Optional[models.Branch]:
    if not branch_code:
        return None
    return db.get(models.Branch, branch_code)


def get_department(db: Session, department_code: Optional[str]) -> Optional[models.Department]:
    if not department_code:
        return None
    return db.get(models.Department, department_code)


def get_staff(db: Session, staff_code: Optional[str]) -> Optional[models.Staff]:
    if not staff_code:
        return None
    return db.get(models.Staff, staff_code)
