from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, lazyload

from stockdb.apps.audit import services as audit_services
from stockdb.apps.directory import models as directory_models
from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.inventory import services as inventory_services
from stockdb.database import transaction

from . import models, schemas, transitions, validation
from .errors import (
    NotDeletable,
    PersistenceFailure,
    PreconditionFailed,
    ValidationError,
    WithdrawalNotFound,
    detail_for,
)
from .policies import RETURN_POLICY, ReservationContext, SerialHook, policy_for
from .results import BatchResult

logger = logging.getLogger(__name__)

Status = models.WithdrawalStatusEnum
ItemStatus = inventory_models.ItemStatusEnum

ENTITY_TYPE = "withdrawal"


def _subject(withdrawal_id: int) -> str:
    return f"withdrawal:{withdrawal_id}"


def _jsonable(fields: dict) -> dict:
    out = {}
    for key, value in fields.items():
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        out[key] = getattr(value, "value", value)
    return out


def _audit(
    db: Session,
    withdrawal_id: int,
    action: str,
    *,
    actor_staff_code: Optional[str],
    before: Optional[dict] = None,
    after: Optional[dict] = None,
    critical: bool = False,
) -> None:
    audit_services.log_event(
        db,
        entity_type=ENTITY_TYPE,
        entity_id=str(withdrawal_id),
        action=action,
        actor_staff_code=actor_staff_code,
        before=before,
        after=after,
        critical=critical,
    )


# -------------------------------------------------------------------
# LOOKUPS
# -------------------------------------------------------------------

def _get_withdrawal(db: Session, withdrawal_id: int, *, lock: bool = False) -> models.Withdrawal:
    query = db.query(models.Withdrawal).filter(models.Withdrawal.id == withdrawal_id)
    if lock:
        # Row lock for the rest of the transaction; eager joins are dropped so the
        # lock never lands on the nullable side of an outer join.
        query = (
            query.options(lazyload("*"))
            .with_for_update(of=models.Withdrawal)
            .populate_existing()
        )
    withdrawal = query.one_or_none()
    if withdrawal is None:
        raise WithdrawalNotFound(detail=detail_for(_subject(withdrawal_id), "Withdrawal not found."))
    return withdrawal


def get_withdrawal(db: Session, withdrawal_id: int) -> models.Withdrawal:
    return _get_withdrawal(db, withdrawal_id)


def _linked_serials(db: Session, withdrawal_id: int) -> List[str]:
    rows = (
        db.query(models.WithdrawalItem.serial_no)
        .filter(models.WithdrawalItem.withdrawal_id == withdrawal_id)
        .order_by(models.WithdrawalItem.id)
        .all()
    )
    return [row.serial_no for row in rows]


# -------------------------------------------------------------------
# ASSOCIATION BOOKKEEPING
# -------------------------------------------------------------------

def _attach(withdrawal_id: int) -> SerialHook:
    def hook(db: Session, serial_no: str) -> None:
        db.add(models.WithdrawalItem(withdrawal_id=withdrawal_id, serial_no=serial_no))
        db.flush()

    return hook


def _detach(withdrawal_id: int) -> SerialHook:
    def hook(db: Session, serial_no: str) -> None:
        db.execute(
            delete(models.WithdrawalItem)
            .where(
                models.WithdrawalItem.withdrawal_id == withdrawal_id,
                models.WithdrawalItem.serial_no == serial_no,
            )
            .execution_options(synchronize_session=False)
        )

    return hook


def _purge_links(db: Session, withdrawal: models.Withdrawal) -> int:
    result = db.execute(
        delete(models.WithdrawalItem)
        .where(models.WithdrawalItem.withdrawal_id == withdrawal.id)
        .execution_options(synchronize_session=False)
    )
    db.expire(withdrawal, ["item_links"])
    return result.rowcount


def _release_items(db: Session, withdrawal: models.Withdrawal, serials: List[str]) -> None:
    """Put every linked item back in stock, then drop the links."""
    inventory_services.bulk_set_status(
        db,
        serials=serials,
        expected=tuple(ItemStatus),
        new_status=ItemStatus.IN_STOCK,
        reserved_branch_code=None,
    )
    _purge_links(db, withdrawal)


def _swap_status(db: Session, withdrawal: models.Withdrawal, current: Status, target: Status) -> None:
    """Compare-and-set on the header so two racing transitions cannot both land."""
    result = db.execute(
        update(models.Withdrawal)
        .where(models.Withdrawal.id == withdrawal.id, models.Withdrawal.status == current)
        .values(status=target)
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount != 1:
        raise PreconditionFailed(
            detail=detail_for("status", f"Withdrawal {withdrawal.id} is no longer {current.value}.")
        )


# -------------------------------------------------------------------
# STATUS TRANSITIONS
# -------------------------------------------------------------------

def change_status(
    db: Session,
    withdrawal_id: int,
    target_status,
    *,
    actor_staff_code: Optional[str] = None,
) -> models.Withdrawal:
    """
    Move a withdrawal to CONFIRMED or CANCELLED.

    CONFIRMED runs the type's confirm cascade over every linked item. CANCELLED
    returns every linked item to stock and removes the links. Either way the
    cascade and the status write commit together or not at all.
    """
    target = transitions.parse_target(target_status)

    try:
        with transaction(db):
            withdrawal = _get_withdrawal(db, withdrawal_id, lock=True)
            current = withdrawal.status
            transitions.ensure_transition(current, target)

            serials = _linked_serials(db, withdrawal.id)
            if target == Status.CONFIRMED:
                policy_for(withdrawal.type).confirm(db, serials)
            else:
                _release_items(db, withdrawal, serials)
            _swap_status(db, withdrawal, current, target)

            _audit(
                db,
                withdrawal.id,
                "transition",
                actor_staff_code=actor_staff_code,
                before={"status": current.value},
                after={"status": target.value, "serials": serials},
                critical=True,
            )
    except PreconditionFailed:
        logger.warning(
            "Rejected withdrawal status change",
            extra={"withdrawal_id": withdrawal_id, "target": target.value},
        )
        raise
    except SQLAlchemyError as exc:
        logger.exception("Withdrawal status change rolled back", extra={"withdrawal_id": withdrawal_id})
        raise PersistenceFailure(
            detail=detail_for(_subject(withdrawal_id), f"Could not change status to {target.value}.")
        ) from exc

    logger.info(
        "Withdrawal status changed",
        extra={"withdrawal_id": withdrawal_id, "from": current.value, "to": target.value, "items": len(serials)},
    )
    return withdrawal


# -------------------------------------------------------------------
# ITEM MEMBERSHIP
# -------------------------------------------------------------------

def add_items(
    db: Session,
    withdrawal_id: int,
    serials: Iterable[str],
    *,
    actor_staff_code: Optional[str] = None,
) -> BatchResult:
    """
    Reserve `serials` for a PENDING withdrawal and link them to it.

    Each serial is reserved and linked in one SAVEPOINT, so an item is never left
    reserved without its link. Rejected serials are reported, not raised.
    """
    try:
        with transaction(db):
            withdrawal = _get_withdrawal(db, withdrawal_id, lock=True)
            transitions.ensure_status(withdrawal.status, Status.PENDING, "add items")

            policy = policy_for(withdrawal.type)
            context = ReservationContext(withdrawal_id=withdrawal.id, branch_code=withdrawal.for_branch_code)
            result = policy.reserve(db, serials, context, on_reserved=_attach(withdrawal.id))

            if result.updated:
                _audit(
                    db,
                    withdrawal.id,
                    "add_items",
                    actor_staff_code=actor_staff_code,
                    after={"serials": result.updated, "status": policy.reserved_status.value},
                )
            db.expire(withdrawal, ["item_links"])
    except SQLAlchemyError as exc:
        logger.exception("Adding items rolled back", extra={"withdrawal_id": withdrawal_id})
        raise PersistenceFailure(detail=detail_for(_subject(withdrawal_id), "Items could not be added.")) from exc

    if result.errors:
        logger.warning(
            "Some items were not added to the withdrawal",
            extra={"withdrawal_id": withdrawal_id, "rejected": sorted(result.errors)},
        )
    return result


def remove_items(
    db: Session,
    withdrawal_id: int,
    serials: Iterable[str],
    *,
    actor_staff_code: Optional[str] = None,
) -> BatchResult:
    try:
        with transaction(db):
            withdrawal = _get_withdrawal(db, withdrawal_id, lock=True)
            transitions.ensure_status(withdrawal.status, Status.PENDING, "remove items")

            context = ReservationContext(withdrawal_id=withdrawal.id)
            result = RETURN_POLICY.reserve(db, serials, context, on_returned=_detach(withdrawal.id))

            if result.updated:
                _audit(
                    db,
                    withdrawal.id,
                    "remove_items",
                    actor_staff_code=actor_staff_code,
                    after={"serials": result.updated, "status": ItemStatus.IN_STOCK.value},
                )
            db.expire(withdrawal, ["item_links"])
    except SQLAlchemyError as exc:
        logger.exception("Removing items rolled back", extra={"withdrawal_id": withdrawal_id})
        raise PersistenceFailure(detail=detail_for(_subject(withdrawal_id), "Items could not be removed.")) from exc

    if result.errors:
        logger.warning(
            "Some items were not removed from the withdrawal",
            extra={"withdrawal_id": withdrawal_id, "rejected": sorted(result.errors)},
        )
    return result


# -------------------------------------------------------------------
# DELETE
# -------------------------------------------------------------------

def _delete_header(db: Session, withdrawal: models.Withdrawal) -> None:
    db.delete(withdrawal)
    db.flush()


def delete_withdrawal(
    db: Session,
    withdrawal_id: int,
    *,
    actor_staff_code: Optional[str] = None,
) -> None:
    try:
        with transaction(db):
            withdrawal = _get_withdrawal(db, withdrawal_id, lock=True)
            transitions.ensure_status(withdrawal.status, Status.CANCELLED, "delete it")
            purged = _purge_links(db, withdrawal)
            _delete_header(db, withdrawal)
            _audit(
                db,
                withdrawal_id,
                "delete",
                actor_staff_code=actor_staff_code,
                before={"status": Status.CANCELLED.value, "links_purged": purged},
            )
    except SQLAlchemyError as exc:
        logger.warning("Withdrawal delete rolled back", extra={"withdrawal_id": withdrawal_id}, exc_info=True)
        raise NotDeletable(detail=detail_for(_subject(withdrawal_id), "This withdrawal cannot be deleted.")) from exc

    logger.info("Withdrawal deleted", extra={"withdrawal_id": withdrawal_id})


# -------------------------------------------------------------------
# HEADER CRUD
# -------------------------------------------------------------------

def create_withdrawal(
    db: Session,
    *,
    payload: schemas.WithdrawalCreate,
    actor_staff_code: Optional[str] = None,
) -> models.Withdrawal:
    validation.validate_withdrawal(db, payload)
    withdrawal = models.Withdrawal(
        **validation.type_fields(payload),
        status=Status.PENDING,
        remarks=payload.remarks,
    )
    db.add(withdrawal)
    db.flush()
    _audit(
        db,
        withdrawal.id,
        "create",
        actor_staff_code=actor_staff_code or payload.created_by_staff_code,
        after={"type": withdrawal.type.value, "status": Status.PENDING.value},
    )
    return withdrawal


def update_withdrawal(
    db: Session,
    withdrawal_id: int,
    *,
    payload: schemas.WithdrawalUpdate,
    actor_staff_code: Optional[str] = None,
) -> models.Withdrawal:
    withdrawal = _get_withdrawal(db, withdrawal_id, lock=True)
    transitions.ensure_status(withdrawal.status, Status.PENDING, "edit it")
    if payload.type != withdrawal.type:
        raise ValidationError(detail=detail_for("type", "The type of a withdrawal cannot be changed."))
    validation.validate_withdrawal(db, payload)

    fields = validation.type_fields(payload)
    old_branch = withdrawal.for_branch_code
    for key, value in fields.items():
        setattr(withdrawal, key, value)
    db.flush()

    new_branch = withdrawal.for_branch_code
    if policy_for(withdrawal.type).binds_branch and new_branch != old_branch:
        # Reserved items follow the withdrawal to its new destination.
        db.execute(
            update(inventory_models.Item)
            .where(inventory_models.Item.serial_no.in_(_linked_serials(db, withdrawal.id)))
            .values(reserved_branch_code=new_branch)
            .execution_options(synchronize_session="evaluate")
        )

    _audit(
        db,
        withdrawal.id,
        "update",
        actor_staff_code=actor_staff_code,
        before={"for_branch_code": old_branch},
        after=_jsonable(fields),
    )
    return withdrawal


def update_remarks(
    db: Session,
    withdrawal_id: int,
    *,
    remarks: Optional[str],
    actor_staff_code: Optional[str] = None,
) -> models.Withdrawal:
    withdrawal = _get_withdrawal(db, withdrawal_id)
    withdrawal.remarks = remarks
    db.flush()
    _audit(db, withdrawal.id, "update_remarks", actor_staff_code=actor_staff_code, after={"remarks": remarks})
    return withdrawal


# -------------------------------------------------------------------
# LISTING
# -------------------------------------------------------------------

def list_withdrawals(
    db: Session,
    *,
    filters: schemas.WithdrawalFilters,
    skip: int = 0,
    limit: int = 50,
) -> Tuple[int, List[models.Withdrawal]]:
    W = models.Withdrawal
    query = (
        db.query(W)
        .outerjoin(directory_models.Branch, W.for_branch_code == directory_models.Branch.branch_code)
        .outerjoin(
            directory_models.Customer,
            directory_models.Branch.owner_customer_code == directory_models.Customer.customer_code,
        )
        .outerjoin(directory_models.Department, W.for_department_code == directory_models.Department.department_code)
        .join(directory_models.Staff, W.created_by_staff_code == directory_models.Staff.staff_code)
    )

    if filters.date_from:
        query = query.filter(W.date >= filters.date_from)
    if filters.date_to:
        query = query.filter(W.date <= filters.date_to)
    if filters.install_from:
        query = query.filter(W.install_date >= filters.install_from)
    if filters.install_to:
        query = query.filter(W.install_date <= filters.install_to)
    if filters.return_from:
        query = query.filter(W.return_by >= filters.return_from)
    if filters.return_to:
        query = query.filter(W.return_by <= filters.return_to)
    if filters.type:
        query = query.filter(W.type == filters.type)
    if filters.status:
        query = query.filter(W.status == filters.status)
    if filters.search:
        pattern = f"%{filters.search.strip()}%"
        query = query.filter(
            or_(
                directory_models.Customer.customer_code.ilike(pattern),
                directory_models.Customer.customer_name.ilike(pattern),
                directory_models.Branch.branch_code.ilike(pattern),
                directory_models.Branch.branch_name.ilike(pattern),
                directory_models.Department.department_code.ilike(pattern),
                directory_models.Department.department_name.ilike(pattern),
                directory_models.Staff.staff_name.ilike(pattern),
            )
        )

    total = query.count()
    rows = query.order_by(W.date.desc(), W.id.desc()).offset(skip).limit(limit).all()
    return total, rows


def list_withdrawal_items(
    db: Session,
    withdrawal_id: int,
    *,
    status: Optional[ItemStatus] = None,
    is_broken: Optional[bool] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
) -> Tuple[int, List[inventory_models.Item]]:
    _get_withdrawal(db, withdrawal_id)
    Item = inventory_models.Item
    query = (
        db.query(Item)
        .join(models.WithdrawalItem, models.WithdrawalItem.serial_no == Item.serial_no)
        .filter(models.WithdrawalItem.withdrawal_id == withdrawal_id)
    )
    if status is not None:
        query = query.filter(Item.status == status)
    if is_broken is not None:
        query = query.filter((Item.status == ItemStatus.BROKEN) if is_broken else (Item.status != ItemStatus.BROKEN))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Item.serial_no.ilike(pattern), Item.model.ilike(pattern)))
    total = query.count()
    rows = query.order_by(Item.serial_no).offset(skip).limit(limit).all()
    return total, rows
