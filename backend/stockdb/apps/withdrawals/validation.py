from __future__ import annotations

from typing import List

from sqlalchemy.orm import Session

from stockdb.apps.directory import services as directory_services

from . import models, schemas
from .errors import ErrorDetail, ValidationError

WithdrawalType = models.WithdrawalTypeEnum

# Which destination each type is addressed to.
BRANCH_TYPES = frozenset({WithdrawalType.INSTALLATION, WithdrawalType.TRANSFER})
DEPARTMENT_TYPES = frozenset({WithdrawalType.LENDING})


def _check_fields(payload: schemas.WithdrawalBase) -> ErrorDetail:
    errors: List[dict] = []
    wtype = payload.type

    if wtype in BRANCH_TYPES and not payload.for_branch_code:
        errors.append({"subject": "for_branch_code", "reason": f"A branch is required for {wtype.value}."})
    if wtype in DEPARTMENT_TYPES and not payload.for_department_code:
        errors.append({"subject": "for_department_code", "reason": f"A department is required for {wtype.value}."})
    if wtype == WithdrawalType.INSTALLATION and not payload.install_date:
        errors.append({"subject": "install_date", "reason": "Installation date must be provided."})
    if wtype == WithdrawalType.LENDING:
        if not payload.return_by:
            errors.append({"subject": "return_by", "reason": "Return date must be provided."})
        elif payload.return_by < payload.date:
            errors.append({"subject": "return_by", "reason": "Return date cannot be before the withdrawal date."})
    return errors


def _check_references(db: Session, payload: schemas.WithdrawalBase) -> ErrorDetail:
    errors: List[dict] = []
    if payload.type in BRANCH_TYPES and payload.for_branch_code:
        if directory_services.get_branch(db, payload.for_branch_code) is None:
            errors.append({"subject": "for_branch_code", "reason": f"Branch {payload.for_branch_code} does not exist."})
    if payload.type in DEPARTMENT_TYPES and payload.for_department_code:
        if directory_services.get_department(db, payload.for_department_code) is None:
            errors.append(
                {"subject": "for_department_code", "reason": f"Department {payload.for_department_code} does not exist."}
            )
    if directory_services.get_staff(db, payload.created_by_staff_code) is None:
        errors.append({"subject": "created_by_staff_code", "reason": f"Staff {payload.created_by_staff_code} does not exist."})
    return errors


def validate_withdrawal(db: Session, payload: schemas.WithdrawalBase) -> None:
    """Raise ValidationError listing every cross-field or reference problem in `payload`."""
    errors = _check_fields(payload)
    errors.extend(_check_references(db, payload))
    if errors:
        raise ValidationError(detail=errors)


def type_fields(payload: schemas.WithdrawalBase) -> dict:
    """Column values for `payload`, with fields that do not belong to its type nulled."""
    wtype = payload.type
    return {
        "type": wtype,
        "for_branch_code": payload.for_branch_code if wtype in BRANCH_TYPES else None,
        "for_department_code": payload.for_department_code if wtype in DEPARTMENT_TYPES else None,
        "install_date": payload.install_date if wtype == WithdrawalType.INSTALLATION else None,
        "return_by": payload.return_by if wtype == WithdrawalType.LENDING else None,
        "created_by_staff_code": payload.created_by_staff_code,
        "date": payload.date,
    }
