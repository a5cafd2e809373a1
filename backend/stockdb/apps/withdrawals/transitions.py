from __future__ import annotations

from typing import Dict, FrozenSet

from .errors import PreconditionFailed, ValidationError, detail_for
from .models import WithdrawalStatusEnum

Status = WithdrawalStatusEnum

TRANSITIONS: Dict[Status, FrozenSet[Status]] = {
    Status.PENDING: frozenset({Status.CONFIRMED, Status.CANCELLED}),
    Status.CONFIRMED: frozenset(),
    Status.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)

# PENDING is only ever an initial state.
REQUESTABLE_STATUSES = frozenset({Status.CONFIRMED, Status.CANCELLED})


def parse_target(value) -> Status:
    try:
        target = Status(value)
    except ValueError:
        raise ValidationError(detail=detail_for("status", f"'{value}' is not a withdrawal status.")) from None
    if target not in REQUESTABLE_STATUSES:
        raise ValidationError(detail=detail_for("status", f"Cannot change status to {target.value}."))
    return target


def ensure_transition(current: Status, target: Status) -> None:
    if current in TERMINAL_STATUSES:
        raise PreconditionFailed(
            detail=detail_for("status", f"Withdrawal is already {current.value} and can no longer change status.")
        )
    if target not in TRANSITIONS.get(current, frozenset()):
        raise PreconditionFailed(
            detail=detail_for("status", f"Cannot transition from {current.value} to {target.value}.")
        )


def ensure_status(current: Status, required: Status, action: str) -> None:
    if current != required:
        raise PreconditionFailed(
            detail=detail_for("status", f"This withdrawal must be {required.value} to {action}.")
        )
