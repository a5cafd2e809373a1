from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from . import models, schemas

logger = logging.getLogger(__name__)


def normalize_serial(serial_no: str) -> str:
    return (serial_no or "").strip()


def get_item(db: Session, serial_no: str) -> Optional[models.Item]:
    return db.get(models.Item, normalize_serial(serial_no))


def register_item(db: Session, *, payload: schemas.ItemCreate) -> models.Item:
    serial_no = normalize_serial(payload.serial_no)
    if get_item(db, serial_no):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Item {serial_no} already exists.",
        )
    item = models.Item(
        serial_no=serial_no,
        model=payload.model,
        remarks=payload.remarks,
        status=models.ItemStatusEnum.IN_STOCK,
        reserved_branch_code=None,
    )
    db.add(item)
    db.flush()
    return item


def mark_broken(db: Session, *, serial_no: str) -> models.Item:
    """Flag an in-stock item as broken. Reserved or withdrawn items must come back first."""
    item = get_item(db, serial_no)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found.")
    if item.status == models.ItemStatusEnum.BROKEN:
        return item
    swapped = compare_and_set_status(
        db,
        serial_no=item.serial_no,
        expected=(models.ItemStatusEnum.IN_STOCK,),
        new_status=models.ItemStatusEnum.BROKEN,
        reserved_branch_code=None,
    )
    if not swapped:
        raise HTTPException(
            status_code=409,
            detail=f"Item {item.serial_no} must be IN_STOCK to be marked broken.",
        )
    db.refresh(item)
    return item


def list_items(
    db: Session,
    *,
    status_filter: Optional[models.ItemStatusEnum] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> Tuple[int, List[models.Item]]:
    query = db.query(models.Item)
    if status_filter is not None:
        query = query.filter(models.Item.status == status_filter)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(models.Item.serial_no.ilike(pattern), models.Item.model.ilike(pattern))
        )
    total = query.count()
    rows = query.order_by(models.Item.serial_no).offset(skip).limit(limit).all()
    return total, rows


def compare_and_set_status(
    db: Session,
    *,
    serial_no: str,
    expected: Iterable[models.ItemStatusEnum],
    new_status: models.ItemStatusEnum,
    reserved_branch_code: Optional[str],
) -> bool:
    """
    Atomically move one item to `new_status` if its current status is in `expected`.

    A single conditional UPDATE, so two callers racing for the same serial
    cannot both win. Returns True when the row was changed.
    """
    if new_status not in models.BRANCH_BOUND_STATUSES and reserved_branch_code is not None:
        raise ValueError(f"{new_status.value} items cannot carry a reserved branch.")
    result = db.execute(
        update(models.Item)
        .where(
            models.Item.serial_no == serial_no,
            models.Item.status.in_(list(expected)),
        )
        .values(status=new_status, reserved_branch_code=reserved_branch_code)
        .execution_options(synchronize_session="evaluate")
    )
    return result.rowcount == 1


def bulk_set_status(
    db: Session,
    *,
    serials: List[str],
    expected: Iterable[models.ItemStatusEnum],
    new_status: models.ItemStatusEnum,
    reserved_branch_code: Optional[str] = None,
) -> int:
    if not serials:
        return 0
    result = db.execute(
        update(models.Item)
        .where(
            models.Item.serial_no.in_(serials),
            models.Item.status.in_(list(expected)),
        )
        .values(status=new_status, reserved_branch_code=reserved_branch_code)
        .execution_options(synchronize_session="evaluate")
    )
    logger.info(
        "Bulk item status change",
        extra={"new_status": new_status.value, "requested": len(serials), "changed": result.rowcount},
    )
    return result.rowcount
