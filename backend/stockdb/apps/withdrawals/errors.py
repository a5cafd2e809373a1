from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

ErrorDetail = List[Dict[str, str]]


def detail_for(subject: str, reason: str) -> ErrorDetail:
    return [{"subject": subject, "reason": reason}]


@dataclass
class WithdrawalError(Exception):
    """Base error for withdrawal operations. `detail` is a list of {subject, reason} pairs."""

    detail: ErrorDetail = field(default_factory=list)
    code: str = "withdrawal_error"

    def __str__(self) -> str:
        reasons = "; ".join(f"{d.get('subject')}: {d.get('reason')}" for d in self.detail)
        return f"{self.code}: {reasons}" if reasons else self.code


@dataclass
class ValidationError(WithdrawalError):
    code: str = "validation_error"


@dataclass
class PreconditionFailed(WithdrawalError):
    code: str = "precondition_failed"


@dataclass
class WithdrawalNotFound(WithdrawalError):
    code: str = "not_found"


@dataclass
class PersistenceFailure(WithdrawalError):
    code: str = "persistence_failure"


@dataclass
class NotDeletable(WithdrawalError):
    code: str = "not_deletable"


# Per-serial failure codes carried in BatchResult.errors.
ITEM_INELIGIBLE = "item_ineligible"
ITEM_PERSISTENCE_FAILURE = "persistence_failure"
