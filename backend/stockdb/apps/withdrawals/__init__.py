"""
Withdrawals module.

Withdrawal headers, their item links, the status transition rules and the
per-type reservation policies that move items in and out of stock.
"""

from .router import router  # noqa: F401
from . import models  # noqa: F401
from .errors import (  # noqa: F401
    NotDeletable,
    PersistenceFailure,
    PreconditionFailed,
    ValidationError,
    WithdrawalError,
    WithdrawalNotFound,
)
