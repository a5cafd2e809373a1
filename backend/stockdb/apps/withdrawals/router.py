from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from stockdb.apps.inventory import models as inventory_models
from stockdb.database import get_db, get_read_db

from . import models, schemas, services
from .results import BatchResult

router = APIRouter(prefix="/withdrawals", tags=["withdrawals"])


def _batch_response(result: BatchResult):
    body = schemas.BatchResultRead(updated=result.updated, errors=result.detail())
    if result.errors:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())
    return body


@router.get("", response_model=schemas.WithdrawalPage)
def list_withdrawals(
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    install_from: Optional[date] = None,
    install_to: Optional[date] = None,
    return_from: Optional[date] = None,
    return_to: Optional[date] = None,
    type: Optional[models.WithdrawalTypeEnum] = None,
    status_filter: Optional[models.WithdrawalStatusEnum] = Query(None, alias="status"),
    search: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_read_db),
):
    filters = schemas.WithdrawalFilters(
        date_from=date_from,
        date_to=date_to,
        install_from=install_from,
        install_to=install_to,
        return_from=return_from,
        return_to=return_to,
        type=type,
        status=status_filter,
        search=search,
    )
    total, rows = services.list_withdrawals(db, filters=filters, skip=skip, limit=limit)
    return {"total": total, "items": rows}


@router.get("/{withdrawal_id}", response_model=schemas.WithdrawalDetail)
def get_withdrawal(withdrawal_id: int, db: Session = Depends(get_read_db)):
    return services.get_withdrawal(db, withdrawal_id)


@router.get("/{withdrawal_id}/items", response_model=schemas.WithdrawalItemPage)
def list_withdrawal_items(
    withdrawal_id: int,
    status_filter: Optional[inventory_models.ItemStatusEnum] = Query(None, alias="status"),
    is_broken: Optional[bool] = None,
    search: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_read_db),
):
    total, rows = services.list_withdrawal_items(
        db,
        withdrawal_id,
        status=status_filter,
        is_broken=is_broken,
        search=search,
        skip=skip,
        limit=limit,
    )
    return {"total": total, "items": rows}


@router.post("", response_model=schemas.WithdrawalRead, status_code=status.HTTP_201_CREATED)
def create_withdrawal(
    payload: schemas.WithdrawalCreate,
    db: Session = Depends(get_db),
    staff_code: Optional[str] = Header(None, alias="X-Staff-Code"),
):
    withdrawal = services.create_withdrawal(db, payload=payload, actor_staff_code=staff_code)
    db.commit()
    db.refresh(withdrawal)
    return withdrawal


@router.put("/{withdrawal_id}", response_model=schemas.WithdrawalRead)
def update_withdrawal(
    withdrawal_id: int,
    payload: schemas.WithdrawalUpdate,
    db: Session = Depends(get_db),
    staff_code: Optional[str] = Header(None, alias="X-Staff-Code"),
):
    withdrawal = services.update_withdrawal(db, withdrawal_id, payload=payload, actor_staff_code=staff_code)
    db.commit()
    db.refresh(withdrawal)
    return withdrawal


@router.put("/{withdrawal_id}/remarks", response_model=schemas.WithdrawalRead)
def update_remarks(
    withdrawal_id: int,
    payload: schemas.WithdrawalRemarksUpdate,
    db: Session = Depends(get_db),
    staff_code: Optional[str] = Header(None, alias="X-Staff-Code"),
):
    withdrawal = services.update_remarks(db, withdrawal_id, remarks=payload.remarks, actor_staff_code=staff_code)
    db.commit()
    db.refresh(withdrawal)
    return withdrawal


@router.put("/{withdrawal_id}/status", response_model=schemas.WithdrawalRead)
def change_status(
    withdrawal_id: int,
    payload: schemas.WithdrawalStatusChange,
    db: Session = Depends(get_db),
    staff_code: Optional[str] = Header(None, alias="X-Staff-Code"),
):
    withdrawal = services.change_status(db, withdrawal_id, payload.status, actor_staff_code=staff_code)
    db.refresh(withdrawal)
    return withdrawal


@router.put("/{withdrawal_id}/items/add", response_model=schemas.BatchResultRead)
def add_items(
    withdrawal_id: int,
    payload: schemas.SerialBatch,
    db: Session = Depends(get_db),
    staff_code: Optional[str] = Header(None, alias="X-Staff-Code"),
):
    result = services.add_items(db, withdrawal_id, payload.serial_no, actor_staff_code=staff_code)
    return _batch_response(result)


@router.put("/{withdrawal_id}/items/remove", response_model=schemas.BatchResultRead)
def remove_items(
    withdrawal_id: int,
    payload: schemas.SerialBatch,
    db: Session = Depends(get_db),
    staff_code: Optional[str] = Header(None, alias="X-Staff-Code"),
):
    result = services.remove_items(db, withdrawal_id, payload.serial_no, actor_staff_code=staff_code)
    return _batch_response(result)


@router.delete("/{withdrawal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_withdrawal(
    withdrawal_id: int,
    db: Session = Depends(get_db),
    staff_code: Optional[str] = Header(None, alias="X-Staff-Code"),
):
    services.delete_withdrawal(db, withdrawal_id, actor_staff_code=staff_code)
