from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.inventory import services as inventory_services

from . import models
from .errors import ITEM_PERSISTENCE_FAILURE, PersistenceFailure, ValidationError, detail_for
from .results import BatchResult

logger = logging.getLogger(__name__)

ItemStatus = inventory_models.ItemStatusEnum

# Called inside the per-serial SAVEPOINT after the item row changed.
SerialHook = Callable[[Session, str], None]


@dataclass(frozen=True)
class ReservationContext:
    withdrawal_id: int
    branch_code: Optional[str] = None


class _Rejected(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def _unique(serials: Iterable[str]) -> List[str]:
    normalized = (inventory_services.normalize_serial(raw) for raw in serials)
    return list(dict.fromkeys(serial_no for serial_no in normalized if serial_no))


def _current_status(db: Session, serial_no: str) -> Optional[ItemStatus]:
    return (
        db.query(inventory_models.Item.status)
        .filter(inventory_models.Item.serial_no == serial_no)
        .scalar()
    )


def _ineligible_reason(serial_no: str, current: Optional[ItemStatus]) -> str:
    if current is None:
        return f"Item {serial_no} does not exist."
    if current in (ItemStatus.RESERVED, ItemStatus.TRANSFERRED):
        return f"Item {serial_no} is already reserved."
    if current == ItemStatus.BROKEN:
        return f"Item {serial_no} is broken."
    return f"Item {serial_no} is {current.value}; only IN_STOCK items can be withdrawn."


def _run_per_serial(
    db: Session,
    serials: Iterable[str],
    step: Callable[[str], None],
) -> BatchResult:
    """
    Apply `step` to every serial in its own SAVEPOINT.

    A rejection or store error undoes that serial's changes only; siblings keep theirs.
    """
    result = BatchResult()
    for serial_no in _unique(serials):
        try:
            with db.begin_nested():
                step(serial_no)
        except _Rejected as exc:
            result.fail(serial_no, exc.reason)
        except SQLAlchemyError:
            logger.warning("Per-serial step failed", extra={"serial_no": serial_no}, exc_info=True)
            result.fail(
                serial_no,
                f"Item {serial_no} could not be saved against the withdrawal.",
                code=ITEM_PERSISTENCE_FAILURE,
            )
        else:
            result.succeed(serial_no)
    return result


class ReservationPolicy:
    """
    Rules for one withdrawal type: which items may be reserved, the status they
    move to while the withdrawal is pending, and where confirmation takes them.
    """

    withdrawal_type: models.WithdrawalTypeEnum
    reserved_status: ItemStatus = ItemStatus.RESERVED
    # None leaves reserved items untouched on confirmation.
    confirmed_status: Optional[ItemStatus] = None
    binds_branch: bool = False

    def _branch_for(self, context: ReservationContext) -> Optional[str]:
        if not self.binds_branch:
            return None
        if not context.branch_code:
            raise ValidationError(
                detail=detail_for(
                    "for_branch_code",
                    f"{self.withdrawal_type.value} withdrawals need a destination branch.",
                )
            )
        return context.branch_code

    def reserve(
        self,
        db: Session,
        serials: Iterable[str],
        context: ReservationContext,
        on_reserved: Optional[SerialHook] = None,
    ) -> BatchResult:
        branch_code = self._branch_for(context)

        def step(serial_no: str) -> None:
            swapped = inventory_services.compare_and_set_status(
                db,
                serial_no=serial_no,
                expected=(ItemStatus.IN_STOCK,),
                new_status=self.reserved_status,
                reserved_branch_code=branch_code,
            )
            if not swapped:
                raise _Rejected(_ineligible_reason(serial_no, _current_status(db, serial_no)))
            if on_reserved is not None:
                on_reserved(db, serial_no)

        return _run_per_serial(db, serials, step)

    def confirm(self, db: Session, serials: List[str]) -> int:
        if self.confirmed_status is None or not serials:
            return len(serials)
        changed = inventory_services.bulk_set_status(
            db,
            serials=serials,
            expected=(self.reserved_status,),
            new_status=self.confirmed_status,
            reserved_branch_code=None,
        )
        if changed != len(serials):
            raise PersistenceFailure(
                detail=detail_for(
                    "items",
                    f"Only {changed} of {len(serials)} items were {self.reserved_status.value}; "
                    "nothing was confirmed.",
                )
            )
        return changed


class InstallationPolicy(ReservationPolicy):
    withdrawal_type = models.WithdrawalTypeEnum.INSTALLATION
    reserved_status = ItemStatus.RESERVED
    confirmed_status = ItemStatus.INSTALLED
    binds_branch = True


class TransferPolicy(ReservationPolicy):
    withdrawal_type = models.WithdrawalTypeEnum.TRANSFER
    reserved_status = ItemStatus.TRANSFERRED
    confirmed_status = None
    binds_branch = True


class LendingPolicy(ReservationPolicy):
    withdrawal_type = models.WithdrawalTypeEnum.LENDING
    reserved_status = ItemStatus.RESERVED
    confirmed_status = ItemStatus.LENT
    binds_branch = False


class ReturnPolicy:
    """Puts items attached to a withdrawal back in stock, whatever they were reserved as."""

    def reserve(
        self,
        db: Session,
        serials: Iterable[str],
        context: ReservationContext,
        on_returned: Optional[SerialHook] = None,
    ) -> BatchResult:
        def step(serial_no: str) -> None:
            linked = (
                db.query(models.WithdrawalItem.id)
                .filter(
                    models.WithdrawalItem.withdrawal_id == context.withdrawal_id,
                    models.WithdrawalItem.serial_no == serial_no,
                )
                .first()
            )
            if linked is None:
                raise _Rejected(f"Item {serial_no} is not part of withdrawal {context.withdrawal_id}.")
            inventory_services.compare_and_set_status(
                db,
                serial_no=serial_no,
                expected=tuple(ItemStatus),
                new_status=ItemStatus.IN_STOCK,
                reserved_branch_code=None,
            )
            if on_returned is not None:
                on_returned(db, serial_no)

        return _run_per_serial(db, serials, step)


POLICIES: Dict[models.WithdrawalTypeEnum, ReservationPolicy] = {
    models.WithdrawalTypeEnum.INSTALLATION: InstallationPolicy(),
    models.WithdrawalTypeEnum.TRANSFER: TransferPolicy(),
    models.WithdrawalTypeEnum.LENDING: LendingPolicy(),
}

RETURN_POLICY = ReturnPolicy()


def policy_for(withdrawal_type: models.WithdrawalTypeEnum) -> ReservationPolicy:
    policy = POLICIES.get(withdrawal_type)
    if policy is None:
        raise ValidationError(detail=detail_for("type", f"Withdrawal type {withdrawal_type} is invalid."))
    return policy
