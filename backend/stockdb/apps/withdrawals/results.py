from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .errors import ErrorDetail, ITEM_INELIGIBLE


@dataclass
class SerialFailure:
    code: str
    reason: str


@dataclass
class BatchResult:
    """
    Outcome of a per-serial batch (reserve / return).

    `updated` keeps request order; `errors` maps each failed serial to why it failed.
    A serial appears in exactly one of the two.
    """

    updated: List[str] = field(default_factory=list)
    errors: Dict[str, SerialFailure] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def succeed(self, serial_no: str) -> None:
        self.errors.pop(serial_no, None)
        if serial_no not in self.updated:
            self.updated.append(serial_no)

    def fail(self, serial_no: str, reason: str, code: str = ITEM_INELIGIBLE) -> None:
        if serial_no in self.updated:
            self.updated.remove(serial_no)
        self.errors[serial_no] = SerialFailure(code=code, reason=reason)

    def detail(self) -> ErrorDetail:
        return [
            {"subject": serial_no, "reason": failure.reason, "code": failure.code}
            for serial_no, failure in self.errors.items()
        ]
