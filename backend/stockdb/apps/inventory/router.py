from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from stockdb.database import get_db, get_read_db

from . import models, schemas, services

router = APIRouter(prefix="/items", tags=["inventory"])


@router.post("", response_model=schemas.ItemRead, status_code=status.HTTP_201_CREATED)
def register_item(payload: schemas.ItemCreate, db: Session = Depends(get_db)):
    item = services.register_item(db, payload=payload)
    db.commit()
    db.refresh(item)
    return item


@router.get("", response_model=schemas.ItemPage)
def list_items(
    status_filter: Optional[models.ItemStatusEnum] = Query(None, alias="status"),
    search: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_read_db),
):
    total, rows = services.list_items(db, status_filter=status_filter, search=search, skip=skip, limit=limit)
    return {"total": total, "items": rows}


@router.get("/{serial_no}", response_model=schemas.ItemRead)
def get_item(serial_no: str, db: Session = Depends(get_read_db)):
    item = services.get_item(db, serial_no)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found.")
    return item


@router.post("/{serial_no}/broken", response_model=schemas.ItemRead)
def mark_broken(serial_no: str, db: Session = Depends(get_db)):
    item = services.mark_broken(db, serial_no=serial_no)
    db.commit()
    db.refresh(item)
    return item
