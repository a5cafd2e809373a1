# backend/stockdb/__init__.py
"""
Import ORM models from each app so that:

- Alembic and Base.metadata.create_all() see all tables.
- Relationship targets referenced by name ("Branch", "Item", ...) are registered.

The actual model classes are kept in stockdb/apps/*/models.py.
"""

from .apps.directory import models as directory_models      # customers / branches / departments / staff
from .apps.inventory import models as inventory_models      # serialised items
from .apps.withdrawals import models as withdrawal_models   # withdrawal headers + item links
from .apps.audit import models as audit_models              # audit trail

__all__ = [
    "directory_models",
    "inventory_models",
    "withdrawal_models",
    "audit_models",
]
